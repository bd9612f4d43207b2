"""Lifecycle state filters.

Filters arrive as free text ("active, needs_attention") from the command line
or configuration. They are normalized once, at the boundary, into a frozenset
of ``LifecycleState`` members; the cache key is derived from that set so the
same filter always maps to the same cached listing.
"""

from collections.abc import Iterable
from enum import Enum

from ..utils.exceptions import InvalidLifecycleStateError


class LifecycleState(str, Enum):
    """Lifecycle states of Data Safe target databases and on-prem connectors."""

    CREATING = "CREATING"
    UPDATING = "UPDATING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETING = "DELETING"
    DELETED = "DELETED"
    NEEDS_ATTENTION = "NEEDS_ATTENTION"
    FAILED = "FAILED"


LifecycleFilter = frozenset[LifecycleState]

ALL_STATES: LifecycleFilter = frozenset()


def normalize_lifecycle_filter(
    value: str | Iterable[str | LifecycleState] | None,
) -> LifecycleFilter:
    """
    Normalize a lifecycle filter into a set of states.

    Accepts None, a comma-separated string, or an iterable of strings and/or
    enum members. Tokens are stripped and upper-cased; empty tokens are
    ignored. An empty result means "all states".

    Raises:
        InvalidLifecycleStateError: If a token is not a known state
    """
    if value is None:
        return ALL_STATES

    if isinstance(value, str):
        tokens: Iterable[str | LifecycleState] = value.split(",")
    else:
        tokens = value

    states: set[LifecycleState] = set()
    for token in tokens:
        if isinstance(token, LifecycleState):
            states.add(token)
            continue
        name = token.strip().upper()
        if not name:
            continue
        try:
            states.add(LifecycleState(name))
        except ValueError as e:
            raise InvalidLifecycleStateError(
                token.strip(), [s.value for s in LifecycleState]
            ) from e
    return frozenset(states)


def lifecycle_filter_key(states: LifecycleFilter) -> str:
    """Canonical string form of a filter: sorted, comma-joined; "" for all states."""
    return ",".join(sorted(state.value for state in states))
