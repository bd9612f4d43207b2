"""Core components of the Data Safe toolkit.

This package contains OCID recognition, lifecycle filter normalization,
the listing cache, compartment and target name resolution, target
selection helpers, grouping by on-prem connector and mutating target
operations.
"""

from .identifiers import is_ocid, require_ocid
from .lifecycle import LifecycleState, lifecycle_filter_key, normalize_lifecycle_filter
from .listing_cache import CacheStats, ListingCache, ListingKey
from .compartments import CompartmentResolver
from .resolver import TargetResolver, match_display_name, require_name
from .connector_summary import ConnectorGroup, group_by_connector
from .operations import TargetOperations

__all__ = [
    "is_ocid",
    "require_ocid",
    "LifecycleState",
    "lifecycle_filter_key",
    "normalize_lifecycle_filter",
    "CacheStats",
    "ListingCache",
    "ListingKey",
    "CompartmentResolver",
    "TargetResolver",
    "match_display_name",
    "require_name",
    "ConnectorGroup",
    "group_by_connector",
    "TargetOperations",
]
