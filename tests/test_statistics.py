"""Unit tests for latency, accuracy and usage statistics."""

import pytest

from resonance_touch.modules.statistics import (
    PerformanceWindow,
    UsageTable,
    update_ema,
)


class TestPerformanceWindow:
    """Test the sliding latency window."""

    def test_average_covers_last_hundred_samples(self):
        window = PerformanceWindow()
        for latency in range(1, 151):
            window.push(float(latency))

        assert len(window) == 100
        # Average of 51..150
        assert window.average == pytest.approx(100.5)
        assert window.last_latency == 150.0

    def test_push_returns_average(self):
        window = PerformanceWindow(size=3)
        assert window.push(3.0) == 3.0
        assert window.push(6.0) == 4.5

    def test_reset(self):
        window = PerformanceWindow()
        window.push(5.0)
        window.reset()
        assert len(window) == 0
        assert window.average == 0.0


class TestAccuracyEma:
    def test_update_ema(self):
        value = update_ema(0.0, 1.0)
        assert value == pytest.approx(0.1)
        assert update_ema(value, 1.0) == pytest.approx(0.19)


class TestUsageTable:
    """Test the ranked usage table."""

    def test_percentages_sum_to_hundred(self):
        table = UsageTable()
        names = [
            "creation",
            "blessing",
            "creation",
            "alteration",
            "creation",
            "blessing",
            "destruction",
        ]
        for name in names:
            table.record(name)

        entries = table.entries()
        assert sum(e.percentage for e in entries) == pytest.approx(100.0)
        assert sum(e.count for e in entries) == table.total == 7

    def test_sorted_by_count_with_stable_ties(self):
        table = UsageTable()
        for name in ["blessing", "creation", "alteration", "creation"]:
            table.record(name)

        assert [e.name for e in table.entries()] == ["creation", "blessing", "alteration"]
        assert table.counts() == {"creation": 2, "blessing": 1, "alteration": 1}

    def test_entries_are_copies(self):
        table = UsageTable()
        table.record("creation")
        table.entries()[0].count = 99
        assert table.counts() == {"creation": 1}

    def test_clear(self):
        table = UsageTable()
        table.record("creation")
        table.clear()
        assert table.entries() == []
        assert table.total == 0
