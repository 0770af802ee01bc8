"""
Tests for core.time — Clock protocol implementations.
"""

import pytest
from datetime import datetime, timezone

from core.time.clock import FixedClock, SystemClock


# ── Clock Tests ──────────────────────────────────────────────

class TestSystemClock:
    def test_returns_utc_datetime(self):
        dt = SystemClock().now_utc()
        assert dt.tzinfo == timezone.utc

    def test_time_advances(self):
        clock = SystemClock()
        t1 = clock.now_utc()
        t2 = clock.now_utc()
        assert t2 >= t1


class TestFixedClock:
    def test_returns_fixed_time(self):
        fixed = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        assert clock.now_utc() == fixed
        assert clock.now_utc() == fixed  # Same every time

    def test_advance(self):
        clock = FixedClock(datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc))
        clock.advance(90)
        assert clock.now_utc() == datetime(2025, 6, 15, 12, 1, 30, tzinfo=timezone.utc)

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2025, 6, 15, 12, 0, 0))
