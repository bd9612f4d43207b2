"""Configuration constants for the Data Safe toolkit."""

import tempfile
from pathlib import Path

# -----------------------------------------------------------------------------
# Identifiers
# -----------------------------------------------------------------------------

# Every OCI resource identifier starts with this literal prefix.
OCID_PREFIX: str = "ocid1."


# -----------------------------------------------------------------------------
# Listing cache
# -----------------------------------------------------------------------------

# Seconds a cached listing stays valid. 0 disables caching entirely.
DEFAULT_CACHE_TTL: int = 300

DEFAULT_CACHE_DIR: Path = Path(tempfile.gettempdir()) / "odb_datasafe" / "listing_cache"

# Listing kinds, used as the third component of a cache key
KIND_TARGET_DATABASE: str = "target_database"
KIND_ON_PREM_CONNECTOR: str = "on_prem_connector"


# -----------------------------------------------------------------------------
# OCI CLI compatible defaults
# -----------------------------------------------------------------------------

DEFAULT_OCI_PROFILE: str = "DEFAULT"
DEFAULT_OCI_CONFIG_FILE: Path = Path("~/.oci/config")


# -----------------------------------------------------------------------------
# Reporting
# -----------------------------------------------------------------------------

DEFAULT_TAG_NAMESPACE: str = "DBSec"

DEFAULT_LIST_FIELDS: tuple[str, ...] = (
    "display-name",
    "lifecycle-state",
    "infrastructure-type",
)

OUTPUT_FORMATS: frozenset[str] = frozenset({"table", "json", "csv"})

# Placeholder connector id/name for targets reached without an on-prem connector
NO_CONNECTOR_ID: str = "no-connector"
NO_CONNECTOR_NAME: str = "No Connector (Cloud)"
UNKNOWN_CONNECTOR_NAME: str = "Unknown Connector"


# -----------------------------------------------------------------------------
# Target operations
# -----------------------------------------------------------------------------

# Work request states that end a waited-for refresh
REFRESH_DONE_STATES: tuple[str, ...] = ("SUCCEEDED", "FAILED")

# Upper bound for a waited-for refresh, in seconds
DEFAULT_REFRESH_WAIT_SECONDS: int = 1200
