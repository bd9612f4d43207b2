"""Two-tier cache for target and connector listings."""

import hashlib
import sqlite3
import time
import zlib
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import diskcache
import structlog
from pydantic import BaseModel

from ..cloud.response_models import OnPremConnector, TargetDatabase
from ..config import CacheConfig
from ..constants import KIND_ON_PREM_CONNECTOR, KIND_TARGET_DATABASE
from .lifecycle import ALL_STATES, LifecycleFilter, lifecycle_filter_key

if TYPE_CHECKING:
    from ..cloud.client import DirectoryClient

logger = structlog.get_logger(__name__)

Listing = list[Any]


@dataclass(frozen=True)
class ListingKey:
    """Identifies one cached listing: scope OCID, canonical lifecycle filter, kind."""

    scope_id: str
    lifecycle_filter: str = ""
    kind: str = KIND_TARGET_DATABASE

    def digest(self) -> str:
        """Deterministic disk address for this key."""
        raw = f"{self.kind}\0{self.scope_id}\0{self.lifecycle_filter}".encode()
        return hashlib.sha1(raw, usedforsecurity=False).hexdigest()


@dataclass
class CacheStats:
    """Statistics for listing cache performance."""

    memory_hits: int = 0
    disk_hits: int = 0
    misses: int = 0

    @property
    def total_queries(self) -> int:
        return self.memory_hits + self.disk_hits + self.misses

    def hit_rate(self) -> float:
        """
        Calculate cache hit rate.

        Returns:
            float: Hit rate as a decimal (0.0 to 1.0).
        """
        if self.total_queries == 0:
            return 0.0
        return (self.memory_hits + self.disk_hits) / self.total_queries


_MODELS: dict[str, type[BaseModel]] = {
    KIND_TARGET_DATABASE: TargetDatabase,
    KIND_ON_PREM_CONNECTOR: OnPremConnector,
}

# Errors that mean "the disk tier is unusable right now", never fatal
_DISK_ERRORS = (OSError, ValueError, TypeError, KeyError, sqlite3.Error, zlib.error)


class ListingCache:
    """
    Cache full resource listings so that resolving or listing many targets in
    a short window costs one remote fetch.

    Design Decisions:
    - L1 is a single in-process slot, overwritten on every miss and never aged:
      it lives as long as the call graph that filled it
    - L2 is a diskcache directory shared by every invocation on the host, one
      entry per key, stored with JSONDisk (no pickle) and a created_at stamp;
      an entry exactly ``ttl_seconds`` old is still valid
    - ttl_seconds == 0 disables both tiers; the disk is never opened
    - Unreadable or corrupt disk entries are a miss, followed by a fresh fetch
    - Concurrent processes may both miss and both fetch; last writer wins
    """

    def __init__(
        self,
        client: "DirectoryClient",
        cache_config: CacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the listing cache.

        Args:
            client: Remote directory client used on a miss
            cache_config: TTL and directory settings (defaults: 300s, tmp dir)
            clock: Time source in epoch seconds
        """
        self.client = client
        self.cache_config = cache_config or CacheConfig()
        self.cache_dir = Path(self.cache_config.directory)
        self.clock = clock

        self._memory: tuple[ListingKey, Listing] | None = None
        self._disk: diskcache.Cache | None = None

        self.stats = CacheStats()

    @property
    def ttl_seconds(self) -> int:
        return self.cache_config.ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.cache_config.enabled

    @property
    def disk(self) -> diskcache.Cache:
        """Disk tier, opened on first use."""
        if self._disk is None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._disk = diskcache.Cache(str(self.cache_dir), disk=diskcache.JSONDisk)
        return self._disk

    def close(self) -> None:
        if self._disk is not None:
            self._disk.close()
            self._disk = None

    def __enter__(self) -> "ListingCache":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public lookups
    # ------------------------------------------------------------------

    def get_targets(
        self, scope_id: str, lifecycle_states: LifecycleFilter = ALL_STATES
    ) -> list[TargetDatabase]:
        """
        Get the target listing for a compartment subtree.

        Args:
            scope_id: Compartment OCID
            lifecycle_states: Normalized lifecycle filter (empty = all)

        Returns:
            Target records, from memory, disk or a fresh fetch

        Raises:
            RemoteFetchError: If a fetch was needed and failed
        """
        key = ListingKey(scope_id, lifecycle_filter_key(lifecycle_states), KIND_TARGET_DATABASE)
        return self.get_listing(key, lambda: self.client.list_targets(scope_id, lifecycle_states))

    def get_connectors(self, scope_id: str) -> list[OnPremConnector]:
        """Get the on-prem connector listing for a compartment subtree."""
        key = ListingKey(scope_id, "", KIND_ON_PREM_CONNECTOR)
        return self.get_listing(key, lambda: self.client.list_connectors(scope_id))

    def get_listing(self, key: ListingKey, fetch: Callable[[], Listing]) -> Listing:
        """
        Return the listing for ``key``, fetching it only when no tier has it.

        Args:
            key: Cache key
            fetch: Zero-argument callable performing the remote fetch

        Returns:
            The listing
        """
        if not self.enabled:
            logger.debug("Listing cache disabled, fetching", kind=key.kind, scope_id=key.scope_id)
            return fetch()

        if self._memory is not None and self._memory[0] == key:
            self.stats.memory_hits += 1
            logger.debug("Listing memory hit", kind=key.kind, scope_id=key.scope_id)
            return self._memory[1]

        listing = self._read_disk(key)
        if listing is not None:
            self.stats.disk_hits += 1
            logger.debug(
                "Listing disk hit", kind=key.kind, scope_id=key.scope_id, records=len(listing)
            )
            self._memory = (key, listing)
            return listing

        self.stats.misses += 1
        logger.debug("Listing cache miss", kind=key.kind, scope_id=key.scope_id)
        listing = fetch()

        self._memory = (key, listing)
        self._write_disk(key, listing)
        return listing

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, key: ListingKey | None = None) -> None:
        """
        Drop a cached listing from both tiers.

        Args:
            key: Listing to drop; None drops every listing
        """
        if key is None or (self._memory is not None and self._memory[0] == key):
            self._memory = None

        if not self.enabled:
            return

        try:
            if key is None:
                self.disk.clear()
            else:
                self.disk.delete(key.digest())
        except _DISK_ERRORS as e:
            logger.warning("Listing cache invalidation failed", error=str(e))

    def clear(self) -> int:
        """
        Remove every listing from both tiers, regardless of TTL settings.

        Returns:
            Number of disk entries removed
        """
        self._memory = None
        if not self.cache_dir.exists():
            return 0
        return self.disk.clear()

    # ------------------------------------------------------------------
    # Disk tier
    # ------------------------------------------------------------------

    def _read_disk(self, key: ListingKey) -> Listing | None:
        try:
            entry = self.disk.get(key.digest())
        except _DISK_ERRORS as e:
            logger.warning("Listing cache read failed, treating as miss", error=str(e))
            self._discard(key)
            return None

        if entry is None:
            return None

        try:
            age = self.clock() - float(entry["created_at"])
            if age > self.ttl_seconds:
                logger.debug("Listing disk entry expired", kind=key.kind, age=round(age, 1))
                return None
            model = _MODELS[key.kind]
            return [model.model_validate(record) for record in entry["records"]]
        except _DISK_ERRORS as e:
            # pydantic.ValidationError is a ValueError
            logger.warning(
                "Listing cache entry corrupt, treating as miss", kind=key.kind, error=str(e)
            )
            self._discard(key)
            return None

    def _discard(self, key: ListingKey) -> None:
        try:
            self.disk.delete(key.digest())
        except _DISK_ERRORS as e:
            logger.warning("Could not drop unreadable listing entry", error=str(e))

    def _write_disk(self, key: ListingKey, listing: Listing) -> None:
        entry = {
            "created_at": self.clock(),
            "scope_id": key.scope_id,
            "lifecycle_filter": key.lifecycle_filter,
            "kind": key.kind,
            "records": [record.model_dump(mode="json") for record in listing],
        }
        try:
            self.disk.set(key.digest(), entry)
        except _DISK_ERRORS as e:
            logger.warning("Listing cache write failed, continuing without cache", error=str(e))
