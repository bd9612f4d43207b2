"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing the Data Safe toolkit.
Fixtures are organized by category:
- Data fixtures: Target, connector and compartment records
- Mock fixtures: Pre-configured mock directory client
- Infrastructure fixtures: Cache directory, fake clock, wired components
"""

from typing import Any
from unittest.mock import MagicMock

import oci
import pytest

from src.datasafe.cloud.client import OCIDataSafeClient
from src.datasafe.cloud.response_models import Compartment, OnPremConnector, TargetDatabase
from src.datasafe.config import CacheConfig
from src.datasafe.core.compartments import CompartmentResolver
from src.datasafe.core.listing_cache import ListingCache
from src.datasafe.core.resolver import TargetResolver

ROOT_COMPARTMENT_ID = "ocid1.compartment.oc1..root"
PROD_COMPARTMENT_ID = "ocid1.compartment.oc1..prod"


def make_target(name: str | None, ocid: str, **fields: Any) -> TargetDatabase:
    """Build a TargetDatabase record with sensible defaults."""
    data: dict[str, Any] = {
        "id": ocid,
        "display_name": name,
        "compartment_id": PROD_COMPARTMENT_ID,
        "lifecycle_state": "ACTIVE",
        "database_details": {
            "database_type": "AUTONOMOUS_DATABASE",
            "infrastructure_type": "ORACLE_CLOUD",
        },
    }
    data.update(fields)
    return TargetDatabase.model_validate(data)


def make_summary_target(name: str, ocid: str, **fields: Any) -> TargetDatabase:
    """Build a record the way list_targets does, from an SDK TargetDatabaseSummary."""
    kwargs: dict[str, Any] = {
        "id": ocid,
        "display_name": name,
        "compartment_id": PROD_COMPARTMENT_ID,
        "lifecycle_state": "ACTIVE",
        "database_type": "INSTALLED_DATABASE",
        "infrastructure_type": "ON_PREMISES",
    }
    kwargs.update(fields)
    summary = oci.data_safe.models.TargetDatabaseSummary(**kwargs)
    return TargetDatabase.model_validate(oci.util.to_dict(summary))


def make_connector(name: str, ocid: str, **fields: Any) -> OnPremConnector:
    data: dict[str, Any] = {"id": ocid, "display_name": name, "lifecycle_state": "ACTIVE"}
    data.update(fields)
    return OnPremConnector.model_validate(data)


class FakeClock:
    """Controllable epoch-seconds clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def sample_targets() -> list[TargetDatabase]:
    """Three targets, two of which share the 'db1' suffix."""
    return [
        make_target("Prod-DB1", "ocid1.datasafetargetdatabase.oc1..a"),
        make_target("prod-db2", "ocid1.datasafetargetdatabase.oc1..b", lifecycle_state="INACTIVE"),
        make_target(
            "Test-DB1",
            "ocid1.datasafetargetdatabase.oc1..c",
            lifecycle_state="NEEDS_ATTENTION",
            defined_tags={"DBSec": {"Environment": "test"}},
        ),
    ]


@pytest.fixture
def sample_connectors() -> list[OnPremConnector]:
    return [
        make_connector("dc1-connector", "ocid1.datasafeonpremconnector.oc1..x"),
        make_connector("dc2-connector", "ocid1.datasafeonpremconnector.oc1..y"),
    ]


@pytest.fixture
def sample_compartments() -> list[Compartment]:
    return [
        Compartment(id=ROOT_COMPARTMENT_ID, name="DataSafe"),
        Compartment(id=PROD_COMPARTMENT_ID, name="Production"),
    ]


# =============================================================================
# Mock Client Fixtures
# =============================================================================


@pytest.fixture
def mock_client(sample_targets, sample_connectors, sample_compartments) -> MagicMock:
    """Create a pre-configured mock directory client.

    Returns a MagicMock with spec=OCIDataSafeClient. Listings return the
    sample records; individual tests can override specific methods.

    Example:
        def test_something(mock_client):
            mock_client.list_targets.return_value = []
    """
    client = MagicMock(spec=OCIDataSafeClient)
    client.list_targets.return_value = sample_targets
    client.list_connectors.return_value = sample_connectors
    client.list_compartments.return_value = sample_compartments
    client.get_target.side_effect = lambda ocid: next(
        (t for t in sample_targets if t.id == ocid), make_target(None, ocid)
    )
    return client


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_config(tmp_path) -> CacheConfig:
    """Default TTL with the disk tier in a temp directory."""
    return CacheConfig(ttl_seconds=300, directory=tmp_path / "listing_cache")


@pytest.fixture
def listing_cache(mock_client, cache_config, clock):
    cache = ListingCache(mock_client, cache_config, clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def compartments(mock_client) -> CompartmentResolver:
    """Compartment resolver with DS_ROOT_COMP set to the root compartment name."""
    return CompartmentResolver(mock_client, root_compartment="DataSafe")


@pytest.fixture
def resolver(listing_cache, compartments) -> TargetResolver:
    return TargetResolver(listing_cache, compartments)
