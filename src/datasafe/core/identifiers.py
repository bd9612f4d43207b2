"""OCID recognition."""

from ..constants import OCID_PREFIX
from ..utils.exceptions import InvalidIdentifierError


def is_ocid(value: object) -> bool:
    """
    Check whether a value is an OCI resource identifier.

    Only the ``ocid1.`` prefix is checked (case-sensitive, anchored at the
    start). Existence is never verified here; whoever consumes the OCID
    finds out whether it is real.
    """
    return isinstance(value, str) and value.startswith(OCID_PREFIX)


def require_ocid(value: str, resource_type: str = "resource") -> str:
    """
    Return ``value`` if it is an OCID.

    Raises:
        InvalidIdentifierError: If the value does not carry the OCID prefix
    """
    if not is_ocid(value):
        raise InvalidIdentifierError(value, resource_type)
    return value
