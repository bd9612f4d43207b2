"""Unit tests for the two-tier listing cache."""

import uuid
from unittest.mock import MagicMock

import pytest
from conftest import make_target

from src.datasafe.config import CacheConfig
from src.datasafe.constants import KIND_ON_PREM_CONNECTOR, KIND_TARGET_DATABASE
from src.datasafe.core.lifecycle import normalize_lifecycle_filter
from src.datasafe.core.listing_cache import CacheStats, ListingCache, ListingKey
from src.datasafe.utils.exceptions import RemoteFetchError

SCOPE = "ocid1.compartment.oc1..root"


class TestListingKey:
    """Test cache key addressing."""

    def test_digest_is_deterministic(self):
        assert ListingKey(SCOPE, "ACTIVE").digest() == ListingKey(SCOPE, "ACTIVE").digest()

    def test_digest_distinguishes_components(self):
        digests = {
            ListingKey(SCOPE).digest(),
            ListingKey(SCOPE, "ACTIVE").digest(),
            ListingKey("ocid1.compartment.oc1..other").digest(),
            ListingKey(SCOPE, "", KIND_ON_PREM_CONNECTOR).digest(),
        }

        assert len(digests) == 4

    def test_default_kind(self):
        assert ListingKey(SCOPE).kind == KIND_TARGET_DATABASE


class TestCacheStats:
    """Test cache statistics."""

    def test_hit_rate_empty(self):
        assert CacheStats().hit_rate() == 0.0

    def test_hit_rate(self):
        stats = CacheStats(memory_hits=2, disk_hits=1, misses=1)

        assert stats.total_queries == 4
        assert stats.hit_rate() == 0.75


class TestListingCacheTiers:
    """Test memory and disk tiers."""

    def test_first_call_fetches(self, listing_cache, mock_client, sample_targets):
        result = listing_cache.get_targets(SCOPE)

        assert [t.id for t in result] == [t.id for t in sample_targets]
        mock_client.list_targets.assert_called_once_with(SCOPE, frozenset())
        assert listing_cache.stats.misses == 1

    def test_second_call_served_from_memory(self, listing_cache, mock_client):
        first = listing_cache.get_targets(SCOPE)
        second = listing_cache.get_targets(SCOPE)

        assert second is first
        assert mock_client.list_targets.call_count == 1
        assert listing_cache.stats.memory_hits == 1

    def test_disk_entry_shared_between_instances(
        self, mock_client, cache_config, clock, sample_targets
    ):
        with ListingCache(mock_client, cache_config, clock=clock) as first:
            first.get_targets(SCOPE)

        with ListingCache(mock_client, cache_config, clock=clock) as second:
            result = second.get_targets(SCOPE)

            assert second.stats.disk_hits == 1

        assert mock_client.list_targets.call_count == 1
        assert [t.display_name for t in result] == [t.display_name for t in sample_targets]
        assert result[2].defined_tags == {"DBSec": {"Environment": "test"}}

    def test_memory_holds_single_listing(self, listing_cache, mock_client):
        """A different key overwrites the memory slot; the first key then comes from disk."""
        listing_cache.get_targets(SCOPE)
        listing_cache.get_targets("ocid1.compartment.oc1..other")
        listing_cache.get_targets(SCOPE)

        assert mock_client.list_targets.call_count == 2
        assert listing_cache.stats.disk_hits == 1
        assert listing_cache.stats.memory_hits == 0

    def test_lifecycle_filter_is_part_of_key(self, listing_cache, mock_client):
        listing_cache.get_targets(SCOPE)
        listing_cache.get_targets(SCOPE, normalize_lifecycle_filter("ACTIVE"))
        listing_cache.get_targets(SCOPE, normalize_lifecycle_filter("active"))

        assert mock_client.list_targets.call_count == 2

    def test_connectors_cached_separately(self, listing_cache, mock_client):
        listing_cache.get_targets(SCOPE)
        connectors = listing_cache.get_connectors(SCOPE)
        listing_cache.get_connectors(SCOPE)

        assert [c.display_name for c in connectors] == ["dc1-connector", "dc2-connector"]
        mock_client.list_connectors.assert_called_once_with(SCOPE)


class TestListingCacheTtl:
    """Test TTL expiry on the disk tier."""

    def _fresh(self, mock_client, cache_config, clock):
        return ListingCache(mock_client, cache_config, clock=clock)

    def test_entry_exactly_ttl_old_is_valid(self, mock_client, cache_config, clock):
        with self._fresh(mock_client, cache_config, clock) as cache:
            cache.get_targets(SCOPE)

        clock.advance(300)
        with self._fresh(mock_client, cache_config, clock) as cache:
            cache.get_targets(SCOPE)

        assert mock_client.list_targets.call_count == 1

    def test_entry_older_than_ttl_is_expired(self, mock_client, cache_config, clock):
        with self._fresh(mock_client, cache_config, clock) as cache:
            cache.get_targets(SCOPE)

        clock.advance(301)
        with self._fresh(mock_client, cache_config, clock) as cache:
            cache.get_targets(SCOPE)
            assert cache.stats.misses == 1

        assert mock_client.list_targets.call_count == 2

    def test_memory_tier_is_not_aged(self, listing_cache, mock_client, clock):
        listing_cache.get_targets(SCOPE)
        clock.advance(10_000)
        listing_cache.get_targets(SCOPE)

        assert mock_client.list_targets.call_count == 1

    def test_zero_ttl_disables_both_tiers(self, mock_client, tmp_path, clock):
        cache_dir = tmp_path / "disabled"
        cache = ListingCache(
            mock_client, CacheConfig(ttl_seconds=0, directory=cache_dir), clock=clock
        )

        cache.get_targets(SCOPE)
        cache.get_targets(SCOPE)

        assert mock_client.list_targets.call_count == 2
        assert cache.enabled is False
        assert not cache_dir.exists()

    def test_enabled_follows_config_changes(self, listing_cache, mock_client):
        listing_cache.cache_config.ttl_seconds = 0

        listing_cache.get_targets(SCOPE)
        listing_cache.get_targets(SCOPE)

        assert listing_cache.enabled is False
        assert listing_cache.ttl_seconds == 0
        assert mock_client.list_targets.call_count == 2


class TestListingCacheFailures:
    """Test error handling in the cache."""

    def test_fetch_error_propagates_and_is_not_cached(self, listing_cache, mock_client):
        mock_client.list_targets.side_effect = RemoteFetchError("list_targets", "boom", 500)

        with pytest.raises(RemoteFetchError):
            listing_cache.get_targets(SCOPE)

        mock_client.list_targets.side_effect = None
        mock_client.list_targets.return_value = [make_target("db", "ocid1.t..1")]

        assert [t.id for t in listing_cache.get_targets(SCOPE)] == ["ocid1.t..1"]

    def test_corrupt_entry_is_a_miss(self, listing_cache, mock_client):
        listing_cache.disk.set(ListingKey(SCOPE).digest(), {"created_at": "not-a-time"})

        result = listing_cache.get_targets(SCOPE)

        assert len(result) == 3
        mock_client.list_targets.assert_called_once()

    def test_entry_with_invalid_records_is_a_miss(self, listing_cache, mock_client, clock):
        listing_cache.disk.set(
            ListingKey(SCOPE).digest(),
            {"created_at": clock(), "records": [{"display_name": "no id"}]},
        )

        listing_cache.get_targets(SCOPE)

        mock_client.list_targets.assert_called_once()

    def test_disk_read_error_is_a_miss(self, listing_cache, mock_client):
        listing_cache._disk = MagicMock()
        listing_cache._disk.get.side_effect = OSError("disk gone")
        listing_cache._disk.set.side_effect = OSError("disk gone")

        result = listing_cache.get_targets(SCOPE)

        assert len(result) == 3
        assert listing_cache.get_targets(SCOPE) is result

    def test_truncated_value_file_is_a_miss(self, mock_client, cache_config, clock):
        """A large listing lives in its own value file; a partial write must not stick."""
        many = [
            make_target(uuid.uuid4().hex, f"ocid1.datasafetargetdatabase.oc1..{uuid.uuid4().hex}")
            for _ in range(3000)
        ]
        mock_client.list_targets.return_value = many
        with ListingCache(mock_client, cache_config, clock=clock) as writer:
            writer.get_targets(SCOPE)

        value_files = list(cache_config.directory.rglob("*.val"))
        assert len(value_files) == 1
        value_files[0].write_bytes(value_files[0].read_bytes()[:100])

        with ListingCache(mock_client, cache_config, clock=clock) as reader:
            result = reader.get_targets(SCOPE)
            assert len(result) == 3000
            assert reader.stats.misses == 1

        with ListingCache(mock_client, cache_config, clock=clock) as healed:
            assert len(healed.get_targets(SCOPE)) == 3000
            assert healed.stats.disk_hits == 1

        assert mock_client.list_targets.call_count == 2

    def test_corrupt_entry_is_dropped(self, listing_cache, mock_client):
        digest = ListingKey(SCOPE).digest()
        listing_cache.disk.set(digest, {"created_at": "not-a-time"})
        mock_client.list_targets.side_effect = RemoteFetchError("list_targets", "boom", 500)

        with pytest.raises(RemoteFetchError):
            listing_cache.get_targets(SCOPE)

        assert digest not in listing_cache.disk


class TestInvalidation:
    """Test invalidate and clear."""

    def test_invalidate_key(self, listing_cache, mock_client):
        listing_cache.get_targets(SCOPE)
        listing_cache.invalidate(ListingKey(SCOPE))
        listing_cache.get_targets(SCOPE)

        assert mock_client.list_targets.call_count == 2

    def test_invalidate_all(self, listing_cache, mock_client):
        listing_cache.get_targets(SCOPE)
        listing_cache.get_connectors(SCOPE)
        listing_cache.invalidate()
        listing_cache.get_targets(SCOPE)
        listing_cache.get_connectors(SCOPE)

        assert mock_client.list_targets.call_count == 2
        assert mock_client.list_connectors.call_count == 2

    def test_clear_counts_entries(self, listing_cache):
        listing_cache.get_targets(SCOPE)
        listing_cache.get_connectors(SCOPE)

        assert listing_cache.clear() == 2
        assert listing_cache.clear() == 0

    def test_clear_without_cache_dir(self, mock_client, tmp_path):
        cache = ListingCache(mock_client, CacheConfig(directory=tmp_path / "never-created"))

        assert cache.clear() == 0
