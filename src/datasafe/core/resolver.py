"""Target and connector name to OCID resolution."""

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from ..utils.exceptions import AmbiguousMatchError, MatchCandidate, NotFoundError, ValidationError
from .compartments import CompartmentResolver
from .identifiers import is_ocid, require_ocid
from .listing_cache import ListingCache

logger = structlog.get_logger(__name__)


def require_name(value: str, resource_type: str = "target") -> None:
    """Reject blank names, which would be a substring of every display name."""
    if not value or not value.strip():
        raise ValidationError(f"{resource_type.capitalize()} name must not be empty", value=value)


def match_display_name(
    records: Sequence[Any],
    value: str,
    resource_type: str = "target",
    scope: str | None = None,
) -> Any:
    """
    Pick the single record whose display name matches ``value``.

    Matching runs from strict to loose and stops at the first tier with
    exactly one hit:

    1. exact, case-sensitive
    2. exact, case-insensitive
    3. case-insensitive substring

    Records without a display name never match.

    Args:
        records: Listing records with ``display_name`` and ``id``
        value: Name (or part of one) typed by the operator
        resource_type: Used in error messages
        scope: Compartment OCID searched, used in error messages

    Returns:
        The matching record

    Raises:
        ValidationError: If ``value`` is empty or whitespace
        NotFoundError: If the substring tier finds nothing
        AmbiguousMatchError: If the substring tier finds several records
    """
    require_name(value, resource_type)
    named = [r for r in records if r.display_name is not None]

    exact = [r for r in named if r.display_name == value]
    if len(exact) == 1:
        logger.debug("Exact match", value=value, ocid=exact[0].id)
        return exact[0]

    folded = value.casefold()
    insensitive = [r for r in named if r.display_name.casefold() == folded]
    if len(insensitive) == 1:
        logger.debug("Case-insensitive match", value=value, match=insensitive[0].display_name)
        return insensitive[0]

    partial = [r for r in named if folded in r.display_name.casefold()]
    if not partial:
        raise NotFoundError(resource_type, value, scope)
    if len(partial) > 1:
        raise AmbiguousMatchError(
            resource_type,
            value,
            [MatchCandidate(r.display_name, r.id) for r in partial],
            scope,
        )

    logger.info(
        "Using partial name match",
        resource_type=resource_type,
        value=value,
        match=partial[0].display_name,
        ocid=partial[0].id,
    )
    return partial[0]


class TargetResolver:
    """
    Convert human-readable target and connector names to OCIDs.

    OCIDs pass straight through without any remote or cache access, even if
    they do not exist; the operation consuming them reports that. Names are
    matched against the full (unfiltered) listing of the compartment subtree,
    served by the listing cache.
    """

    def __init__(self, listing_cache: ListingCache, compartments: CompartmentResolver) -> None:
        """
        Args:
            listing_cache: Cache in front of the directory client
            compartments: Resolver for compartment names and the root compartment
        """
        self.listing_cache = listing_cache
        self.compartments = compartments

    @property
    def client(self):
        return self.listing_cache.client

    def resolve_target_ocid(self, value: str, compartment: str | None = None) -> str:
        """
        Resolve a target name or OCID to an OCID.

        Args:
            value: Target display name (or part of one) or OCID
            compartment: Compartment name/OCID; defaults to DS_ROOT_COMP

        Raises:
            ValidationError: If ``value`` is empty or whitespace
            MissingScopeError: If a name needs a compartment and none is known
            NotFoundError: If nothing matches
            AmbiguousMatchError: If several targets match the name
            RemoteFetchError: If the listing could not be fetched
        """
        if is_ocid(value):
            return value
        require_name(value, "target")

        scope_id = self.compartments.resolve_or_root(compartment, for_value=value)
        logger.debug("Resolving target name", value=value, compartment_id=scope_id)

        targets = self.listing_cache.get_targets(scope_id)
        target = match_display_name(targets, value, "target", scope_id)

        logger.debug("Resolved target", value=value, ocid=target.id)
        return target.id

    def resolve_targets(self, values: Iterable[str], compartment: str | None = None) -> list[str]:
        """
        Resolve several names/OCIDs, preserving order and dropping duplicates.

        Comma-separated entries are split, so ``["a,b", "c"]`` resolves three names.
        """
        resolved: list[str] = []
        for raw in values:
            for value in (v.strip() for v in raw.split(",")):
                if not value:
                    continue
                ocid = self.resolve_target_ocid(value, compartment)
                if ocid not in resolved:
                    resolved.append(ocid)
        return resolved

    def resolve_connector_ocid(self, value: str, compartment: str | None = None) -> str:
        """Resolve an on-prem connector name or OCID to an OCID (same tiers as targets)."""
        if is_ocid(value):
            return value
        require_name(value, "connector")

        scope_id = self.compartments.resolve_or_root(compartment, for_value=value)
        logger.debug("Resolving connector name", value=value, compartment_id=scope_id)

        connectors = self.listing_cache.get_connectors(scope_id)
        return match_display_name(connectors, value, "connector", scope_id).id

    def resolve_target_name(self, ocid: str) -> str:
        """
        Look up the display name of a target OCID.

        Raises:
            InvalidIdentifierError: If ``ocid`` is not an OCID
            NotFoundError: If the target has no display name
        """
        require_ocid(ocid, "target")
        target = self.client.get_target(ocid)
        if not target.display_name:
            raise NotFoundError("target", ocid)
        return target.display_name

    def get_target_compartment(self, ocid: str) -> str:
        """Look up the compartment OCID a target lives in."""
        require_ocid(ocid, "target")
        target = self.client.get_target(ocid)
        if not target.compartment_id:
            raise NotFoundError("target compartment", ocid)
        return target.compartment_id
