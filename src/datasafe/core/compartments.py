"""Compartment (scope) name to OCID resolution."""

from typing import TYPE_CHECKING

import structlog

from ..utils.exceptions import MissingScopeError, ScopeNotFoundError
from .identifiers import is_ocid, require_ocid

if TYPE_CHECKING:
    from ..cloud.client import DirectoryClient

logger = structlog.get_logger(__name__)


class CompartmentResolver:
    """
    Resolve compartment names to OCIDs.

    Compartment names are configured values, so only exact, case-sensitive
    matches count; there is no fuzzy tier here. The configured root
    compartment is resolved at most once per resolver instance.
    """

    def __init__(self, client: "DirectoryClient", root_compartment: str | None = None) -> None:
        """
        Args:
            client: Remote directory client
            root_compartment: Default scope (DS_ROOT_COMP), name or OCID
        """
        self.client = client
        self.root_compartment = root_compartment
        self._root_ocid: str | None = None

    def resolve(self, value: str) -> str:
        """
        Resolve a compartment name or OCID to an OCID.

        Raises:
            ScopeNotFoundError: If no compartment has exactly this name
            RemoteFetchError: If listing compartments failed
        """
        if is_ocid(value):
            return value

        logger.debug("Resolving compartment name", name=value)
        matches = [c for c in self.client.list_compartments() if c.name == value]
        if not matches:
            raise ScopeNotFoundError(value)
        if len(matches) > 1:
            logger.warning(
                "Compartment name is not unique, using first match",
                name=value,
                ocids=[c.id for c in matches],
            )

        logger.debug("Resolved compartment", name=value, ocid=matches[0].id)
        return matches[0].id

    def root_compartment_ocid(self) -> str:
        """
        Resolve the configured root compartment, memoized.

        Raises:
            MissingScopeError: If no root compartment is configured
            ScopeNotFoundError: If the configured name does not exist
        """
        if self._root_ocid is not None:
            return self._root_ocid

        if not self.root_compartment:
            raise MissingScopeError()

        resolved = self.resolve(self.root_compartment)
        logger.debug("Resolved DS_ROOT_COMP", value=self.root_compartment, ocid=resolved)
        self._root_ocid = resolved
        return resolved

    def resolve_or_root(self, value: str | None, for_value: str | None = None) -> str:
        """
        Resolve ``value`` if given, else fall back to the root compartment.

        Args:
            value: Compartment name/OCID or None
            for_value: Name being resolved, only used in the MissingScopeError message
        """
        if value:
            return self.resolve(value)
        if not self.root_compartment:
            raise MissingScopeError(for_value)
        return self.root_compartment_ocid()

    def compartment_name(self, ocid: str) -> str:
        """Look up the name of a compartment OCID."""
        require_ocid(ocid, "compartment")
        return self.client.get_compartment(ocid).name
