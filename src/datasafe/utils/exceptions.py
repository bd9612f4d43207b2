"""Custom exceptions for the Data Safe toolkit.

Exception Hierarchy:
-------------------
DataSafeError (base)
├── ValidationError
│   ├── InvalidIdentifierError      # Value is not an OCID where one is required
│   └── InvalidLifecycleStateError  # Unknown lifecycle state token in a filter
├── MissingScopeError               # No compartment given and DS_ROOT_COMP unset
├── ScopeNotFoundError              # Compartment name does not exist
├── NotFoundError                   # Name matched nothing at any tier
├── AmbiguousMatchError             # Substring match produced several candidates
└── RemoteFetchError                # OCI API call failed (never retried)

Usage Guidelines:
----------------
1. Catch AmbiguousMatchError to show the candidate table to the operator.
2. Use DataSafeError as catch-all for toolkit errors in the CLI.
3. RemoteFetchError wraps oci.exceptions.ServiceError and transport failures;
   the operator re-runs the command to retry.
"""

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class MatchCandidate:
    """A (display name, OCID) pair produced while matching names."""

    display_name: str
    identifier: str


class DataSafeError(Exception):
    """Base exception for all Data Safe toolkit errors."""

    pass


class ValidationError(DataSafeError):
    """Raised when an input value fails validation."""

    def __init__(self, message: str, value: str | None = None) -> None:
        """
        Initialize ValidationError.

        Args:
            message: Error message.
            value: Optional offending input value.
        """
        super().__init__(message)
        self.value = value


class InvalidIdentifierError(ValidationError):
    """Raised when a value expected to be an OCID does not look like one."""

    def __init__(self, value: str, resource_type: str = "resource") -> None:
        super().__init__(f"Invalid {resource_type} OCID: {value!r}", value=value)
        self.resource_type = resource_type


class InvalidLifecycleStateError(ValidationError):
    """Raised when a lifecycle filter contains an unknown state."""

    def __init__(self, value: str, allowed: list[str]) -> None:
        super().__init__(
            f"Unknown lifecycle state {value!r} (expected one of: {', '.join(allowed)})",
            value=value,
        )
        self.allowed = allowed


class MissingScopeError(DataSafeError):
    """Raised when no compartment was supplied and no default is configured."""

    def __init__(self, value: str | None = None) -> None:
        """
        Initialize MissingScopeError.

        Args:
            value: The name being resolved when the scope was needed, if any.
        """
        if value:
            message = (
                f"Compartment required to resolve {value!r}: pass --compartment "
                "or set DS_ROOT_COMP"
            )
        else:
            message = "DS_ROOT_COMP not set. Please configure it or pass --compartment"
        super().__init__(message)
        self.value = value


class ScopeNotFoundError(DataSafeError):
    """Raised when a compartment name does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Compartment not found: {name}")
        self.name = name


class NotFoundError(DataSafeError):
    """Raised when name resolution produced zero candidates at every tier."""

    def __init__(self, resource_type: str, value: str, scope: str | None = None) -> None:
        """
        Initialize NotFoundError.

        Args:
            resource_type: Kind of resource searched (e.g. "target").
            value: Original search input.
            scope: Compartment OCID searched, if any.
        """
        message = f"{resource_type.capitalize()} not found: {value}"
        if scope:
            message += f" (compartment {scope})"
        super().__init__(message)
        self.resource_type = resource_type
        self.value = value
        self.scope = scope


class AmbiguousMatchError(DataSafeError):
    """
    Raised when substring matching produced more than one candidate.

    The resolver never picks the first match silently. The candidate list is
    sorted by display name so the operator sees a stable table.
    """

    def __init__(
        self,
        resource_type: str,
        value: str,
        candidates: list[MatchCandidate],
        scope: str | None = None,
    ) -> None:
        """
        Initialize AmbiguousMatchError.

        Args:
            resource_type: Kind of resource searched (e.g. "target").
            value: Original search input.
            candidates: Every matching (display name, OCID) pair.
            scope: Compartment OCID searched, if any.
        """
        self.candidates = sorted(candidates)
        lines = [
            f"{resource_type.capitalize()} name {value!r} is ambiguous, "
            f"{len(self.candidates)} candidates:"
        ]
        lines.extend(f"  {c.display_name}  {c.identifier}" for c in self.candidates)
        super().__init__("\n".join(lines))
        self.resource_type = resource_type
        self.value = value
        self.scope = scope


class RemoteFetchError(DataSafeError):
    """Raised when an OCI API call fails."""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        """
        Initialize RemoteFetchError.

        Args:
            operation: Client operation that failed (e.g. "list_targets").
            message: Message text returned by the platform or transport.
            status_code: Optional HTTP status code from the service.
        """
        status = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"OCI call {operation} failed{status}: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code
