"""
Session wiring - builds the client, cache and resolvers from configuration.

One session per command invocation. Everything that holds state (the
in-process listing slot, the memoized root compartment) hangs off the
session object, so two sessions never share cached state except through the
on-disk listing cache.
"""

import structlog

from .cloud.client import OCIDataSafeClient
from .config import DataSafeConfig
from .core.compartments import CompartmentResolver
from .core.listing_cache import ListingCache
from .core.operations import TargetOperations
from .core.resolver import TargetResolver

logger = structlog.get_logger(__name__)


class DataSafeSession:
    """Owns every component needed by one command run."""

    def __init__(
        self,
        config: DataSafeConfig,
        client: OCIDataSafeClient | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            config: Toolkit configuration
            client: Directory client; built from ``config.oci`` when omitted
        """
        self.config = config
        self.client = client or OCIDataSafeClient(config.oci)
        self.listing_cache = ListingCache(self.client, config.cache)
        self.compartments = CompartmentResolver(self.client, config.root_compartment)
        self.resolver = TargetResolver(self.listing_cache, self.compartments)
        self.operations = TargetOperations(
            self.client, self.listing_cache, dry_run=config.dry_run
        )

        logger.debug(
            "Session ready",
            profile=config.oci.profile,
            region=config.oci.region,
            cache_ttl=config.cache.ttl_seconds,
            dry_run=config.dry_run,
        )

    def __enter__(self) -> "DataSafeSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.listing_cache.close()
