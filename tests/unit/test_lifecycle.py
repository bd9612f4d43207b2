"""Unit tests for lifecycle filter normalization."""

import pytest

from src.datasafe.core.lifecycle import (
    ALL_STATES,
    LifecycleState,
    lifecycle_filter_key,
    normalize_lifecycle_filter,
)
from src.datasafe.utils.exceptions import InvalidLifecycleStateError


class TestNormalizeLifecycleFilter:
    """Test normalize_lifecycle_filter."""

    def test_none_means_all(self):
        assert normalize_lifecycle_filter(None) == ALL_STATES

    def test_empty_string_means_all(self):
        assert normalize_lifecycle_filter("") == ALL_STATES
        assert normalize_lifecycle_filter(" , ,") == ALL_STATES

    def test_comma_string_is_trimmed_and_uppercased(self):
        states = normalize_lifecycle_filter(" active , needs_attention ")

        assert states == {LifecycleState.ACTIVE, LifecycleState.NEEDS_ATTENTION}

    def test_iterable_with_enum_members(self):
        states = normalize_lifecycle_filter([LifecycleState.FAILED, "deleted"])

        assert states == {LifecycleState.FAILED, LifecycleState.DELETED}

    def test_duplicates_collapse(self):
        assert normalize_lifecycle_filter("ACTIVE,active") == {LifecycleState.ACTIVE}

    def test_unknown_state_raises(self):
        with pytest.raises(InvalidLifecycleStateError) as exc_info:
            normalize_lifecycle_filter("ACTIVE,RUNNING")

        assert exc_info.value.value == "RUNNING"
        assert "ACTIVE" in exc_info.value.allowed


class TestLifecycleFilterKey:
    """Test canonical filter keys used for cache addressing."""

    def test_all_states_key_is_empty(self):
        assert lifecycle_filter_key(ALL_STATES) == ""

    def test_key_is_order_independent(self):
        a = normalize_lifecycle_filter("NEEDS_ATTENTION,ACTIVE")
        b = normalize_lifecycle_filter(["active", "needs_attention"])

        assert lifecycle_filter_key(a) == lifecycle_filter_key(b) == "ACTIVE,NEEDS_ATTENTION"
