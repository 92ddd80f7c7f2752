"""Tests for pping.models dataclasses."""

import dataclasses

import pytest

from pping.models import FAILURE_SENTINEL, STAT_NAMES, ProbeResult, ProbeStats


class TestProbeStats:
    """Tests for the ProbeStats dataclass."""

    def test_defaults_describe_a_failed_probe(self) -> None:
        stats = ProbeStats()

        assert stats.loss == 100.0
        assert stats.min == FAILURE_SENTINEL
        assert stats.avg == FAILURE_SENTINEL
        assert stats.max == FAILURE_SENTINEL
        assert stats.mdev == FAILURE_SENTINEL

    def test_as_dict_order(self) -> None:
        stats = ProbeStats(loss=0.0, min=1.0, avg=2.0, max=3.0, mdev=0.5)

        assert list(stats.as_dict()) == list(STAT_NAMES)
        assert stats.as_dict() == {
            "loss": 0.0,
            "min": 1.0,
            "avg": 2.0,
            "max": 3.0,
            "mdev": 0.5,
        }

    def test_frozen(self) -> None:
        stats = ProbeStats(loss=0.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            stats.loss = 50.0  # type: ignore[misc]


class TestProbeResult:
    """Tests for the ProbeResult dataclass."""

    def test_minimal_construction(self) -> None:
        result = ProbeResult(
            origin="probe-1",
            destination="example.com",
            hostname="example.com",
            address_family="ipv4",
            timestamp=1700000000,
        )

        assert result.stats == ProbeStats()
        assert result.succeeded is False

    def test_frozen(self) -> None:
        result = ProbeResult(
            origin="probe-1",
            destination="example.com",
            hostname="example.com",
            address_family="ipv6",
            timestamp=1700000000,
        )
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.destination = "other"  # type: ignore[misc]

    def test_asdict_nests_stats(self) -> None:
        result = ProbeResult(
            origin="probe-1",
            destination="example.com",
            hostname="example.com",
            address_family="ipv4",
            timestamp=1700000000,
            stats=ProbeStats(loss=0.0, min=1.0, avg=2.0, max=3.0, mdev=0.5),
            succeeded=True,
        )

        data = dataclasses.asdict(result)

        assert data["stats"]["avg"] == 2.0
        assert data["succeeded"] is True
