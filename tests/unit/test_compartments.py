"""Unit tests for compartment resolution."""

from unittest.mock import MagicMock

import pytest
from conftest import PROD_COMPARTMENT_ID, ROOT_COMPARTMENT_ID

from src.datasafe.cloud.response_models import Compartment
from src.datasafe.core.compartments import CompartmentResolver
from src.datasafe.utils.exceptions import (
    InvalidIdentifierError,
    MissingScopeError,
    ScopeNotFoundError,
)


class TestCompartmentResolver:
    """Test CompartmentResolver."""

    def test_ocid_passthrough(self, mock_client):
        resolver = CompartmentResolver(mock_client)

        assert resolver.resolve("ocid1.compartment.oc1..x") == "ocid1.compartment.oc1..x"
        mock_client.list_compartments.assert_not_called()

    def test_resolve_name(self, mock_client):
        assert CompartmentResolver(mock_client).resolve("Production") == PROD_COMPARTMENT_ID

    def test_name_match_is_case_sensitive(self, mock_client):
        with pytest.raises(ScopeNotFoundError, match="production"):
            CompartmentResolver(mock_client).resolve("production")

    def test_duplicate_names_use_first(self, mock_client):
        mock_client.list_compartments.return_value = [
            Compartment(id="ocid1.compartment.oc1..first", name="Shared"),
            Compartment(id="ocid1.compartment.oc1..second", name="Shared"),
        ]

        assert CompartmentResolver(mock_client).resolve("Shared") == "ocid1.compartment.oc1..first"

    def test_root_compartment_memoized(self, compartments, mock_client):
        assert compartments.root_compartment_ocid() == ROOT_COMPARTMENT_ID
        assert compartments.root_compartment_ocid() == ROOT_COMPARTMENT_ID

        mock_client.list_compartments.assert_called_once()

    def test_root_compartment_missing(self, mock_client):
        with pytest.raises(MissingScopeError):
            CompartmentResolver(mock_client).root_compartment_ocid()

    def test_resolve_or_root_prefers_explicit_value(self, compartments):
        assert compartments.resolve_or_root("Production") == PROD_COMPARTMENT_ID

    def test_resolve_or_root_falls_back(self, compartments):
        assert compartments.resolve_or_root(None) == ROOT_COMPARTMENT_ID
        assert compartments.resolve_or_root("") == ROOT_COMPARTMENT_ID

    def test_resolve_or_root_missing_scope(self, mock_client):
        with pytest.raises(MissingScopeError, match="prod-db1"):
            CompartmentResolver(mock_client).resolve_or_root(None, for_value="prod-db1")

    def test_compartment_name(self):
        client = MagicMock()
        client.get_compartment.return_value = Compartment(id="ocid1.compartment.oc1..a", name="Prod")

        assert CompartmentResolver(client).compartment_name("ocid1.compartment.oc1..a") == "Prod"

    def test_compartment_name_requires_ocid(self, mock_client):
        with pytest.raises(InvalidIdentifierError):
            CompartmentResolver(mock_client).compartment_name("Prod")
