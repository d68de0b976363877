"""Unit tests for kinship.foundation.application.discovery."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from kinship.foundation.application.discovery import (
    GROUP_ROUTERS,
    DiscoveredContribution,
    discover,
)


def _entry_point(name: str, value: object = None, error: Exception | None = None) -> MagicMock:
    ep = MagicMock()
    ep.name = name
    if error is not None:
        ep.load.side_effect = error
    else:
        ep.load.return_value = value
    return ep


class TestDiscoveredContribution:
    @pytest.mark.unit
    def test_frozen_immutable(self) -> None:
        contrib = DiscoveredContribution(name="test", group="test.group", value=42)
        with pytest.raises(AttributeError):
            contrib.name = "other"  # type: ignore[misc]


class TestDiscover:
    @pytest.mark.unit
    def test_empty_group_returns_empty_list(self) -> None:
        assert discover("kinship.nonexistent.group.for.testing") == []

    @pytest.mark.unit
    def test_loads_sorted_by_name(self) -> None:
        eps = [_entry_point("zeta", 1), _entry_point("alpha", 2)]
        with patch("kinship.foundation.application.discovery.entry_points", return_value=eps):
            result = discover(GROUP_ROUTERS)
        assert [c.name for c in result] == ["alpha", "zeta"]
        assert [c.value for c in result] == [2, 1]
        assert all(c.group == GROUP_ROUTERS for c in result)

    @pytest.mark.unit
    def test_exclude_names_filters_entries(self) -> None:
        excluded = _entry_point("auth", "x")
        eps = [excluded, _entry_point("chores", "y")]
        with patch("kinship.foundation.application.discovery.entry_points", return_value=eps):
            result = discover(GROUP_ROUTERS, exclude_names=frozenset({"auth"}))
        assert [c.name for c in result] == ["chores"]
        excluded.load.assert_not_called()

    @pytest.mark.unit
    def test_failed_load_is_skipped(self) -> None:
        eps = [_entry_point("broken", error=ImportError("nope")), _entry_point("ok", 1)]
        with patch("kinship.foundation.application.discovery.entry_points", return_value=eps):
            result = discover(GROUP_ROUTERS)
        assert [c.name for c in result] == ["ok"]
