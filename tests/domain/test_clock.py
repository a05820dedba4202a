"""Tests for the injectable clocks."""

from datetime import datetime, timedelta, timezone

from sales_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_fixed_until_advanced(self):
        clock = DeterministicClock(datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc))
        assert clock.now() == clock.now()
        assert clock.tick() == datetime(2024, 3, 15, 10, 30, 1, tzinfo=timezone.utc)

    def test_epoch_millis(self):
        clock = DeterministicClock(datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc))
        assert clock.epoch_millis() == 1710498600000
        clock.advance(0.5)
        assert clock.epoch_millis() == 1710498600500

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2025, 1, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_now_utc_normalizes(self):
        local = timezone(timedelta(hours=5))
        clock = DeterministicClock(datetime(2024, 1, 1, 5, 0, tzinfo=local))
        assert clock.now_utc() == datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
        assert clock.now_utc().tzinfo == timezone.utc


class TestSystemClock:

    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
        assert SystemClock().epoch_millis() > 1700000000000
