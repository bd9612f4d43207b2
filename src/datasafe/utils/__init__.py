"""Utility functions and exceptions."""

from .exceptions import (
    AmbiguousMatchError,
    DataSafeError,
    InvalidIdentifierError,
    InvalidLifecycleStateError,
    MatchCandidate,
    MissingScopeError,
    NotFoundError,
    RemoteFetchError,
    ScopeNotFoundError,
    ValidationError,
)

__all__ = [
    "DataSafeError",
    "ValidationError",
    "InvalidIdentifierError",
    "InvalidLifecycleStateError",
    "MissingScopeError",
    "ScopeNotFoundError",
    "NotFoundError",
    "AmbiguousMatchError",
    "MatchCandidate",
    "RemoteFetchError",
]
