"""Tests for size-based and time-based rotation policies."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from pyrotator.clock import FixedClock
from pyrotator.errors import ConfigurationError, PolicyStateError, ProbeError
from pyrotator.policy import Boundary, SizeBasedRotationPolicy, TimeBasedRotationPolicy

MIB = 1024 * 1024


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestSizeBasedConstruction:
    """Test validation of size-based policy parameters."""

    def test_rejects_negative_interval(self):
        with pytest.raises(ConfigurationError, match="invalid interval"):
            SizeBasedRotationPolicy(-1, 1024)

    @pytest.mark.parametrize("max_byte_count", [0, -5])
    def test_rejects_non_positive_size(self, max_byte_count):
        with pytest.raises(ConfigurationError, match="invalid size"):
            SizeBasedRotationPolicy(0, max_byte_count)

    def test_rejects_non_integer_parameters(self):
        with pytest.raises(ConfigurationError):
            SizeBasedRotationPolicy(True, 1024)
        with pytest.raises(ConfigurationError):
            SizeBasedRotationPolicy(0, "1024")

    def test_write_sensitivity_follows_interval(self):
        assert SizeBasedRotationPolicy(0, 1).is_write_sensitive() is True
        assert SizeBasedRotationPolicy(1000, 1).is_write_sensitive() is False

    def test_structural_equality(self):
        assert SizeBasedRotationPolicy(0, 10) == SizeBasedRotationPolicy(0, 10)
        assert SizeBasedRotationPolicy(0, 10) != SizeBasedRotationPolicy(1, 10)
        assert len({SizeBasedRotationPolicy(0, 10), SizeBasedRotationPolicy(0, 10)}) == 1


class TestSizeBasedWrites:
    """Test the write-sensitive path of the size-based policy."""

    def test_accept_write_before_start_fails(self):
        policy = SizeBasedRotationPolicy(0, 10)
        with pytest.raises(PolicyStateError, match="not started"):
            policy.accept_write(11)

    def test_start_twice_fails(self, make_config, spy_rotatable):
        policy = SizeBasedRotationPolicy(0, 10)
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)
        with pytest.raises(PolicyStateError, match="already started"):
            policy.start(rotatable)

    def test_write_sensitive_policy_is_not_scheduled(
        self, make_config, spy_rotatable, scheduler
    ):
        policy = SizeBasedRotationPolicy(0, 10)
        policy.start(spy_rotatable(make_config([policy])))
        assert scheduler.armed == []

    def test_does_not_rotate_at_threshold(self, make_config, spy_rotatable, callback):
        """Test equality with the threshold never triggers."""
        policy = SizeBasedRotationPolicy(0, 10)
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        policy.accept_write(9)
        policy.accept_write(10)

        assert callback.events == []
        assert rotatable.rotations == []

    def test_rotates_above_threshold(self, make_config, spy_rotatable, callback, clock):
        """Test exceeding the threshold triggers once with the current time."""
        policy = SizeBasedRotationPolicy(0, 10)
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        policy.accept_write(11)

        assert callback.events == [("trigger", policy, clock.now())]
        assert rotatable.rotations == [(policy, clock.now())]


class TestSizeBasedScheduledCheck:
    """Test the polled path of the size-based policy."""

    def test_rotates_once_file_exceeds_threshold(
        self, make_config, spy_rotatable, scheduler, callback, clock
    ):
        """Test a 1 KiB probe is ignored and a 32 MiB + 1 probe rotates."""
        policy = SizeBasedRotationPolicy(30_000, 32 * MIB)
        config = make_config([policy])
        config.file.write_bytes(b"x" * 1024)
        rotatable = spy_rotatable(config)
        policy.start(rotatable)

        # First tick: armed immediately, file is small.
        task, delay = scheduler.run_next()
        assert delay == 0
        assert rotatable.rotations == []
        assert callback.events == []

        # Second tick: armed after the period, file has grown.
        with open(config.file, "r+b") as f:
            f.truncate(32 * MIB + 1)
        probing_instant = clock.advance(timedelta(seconds=30))
        task, delay = scheduler.run_next()
        assert delay == 30.0

        assert rotatable.rotations == [(policy, probing_instant)]
        assert callback.events == [("trigger", policy, probing_instant)]
        assert task.run_count == 2

    def test_polled_size_at_threshold_does_not_rotate(
        self, make_config, spy_rotatable, scheduler, callback
    ):
        """Test a polled size equal to the threshold never triggers."""
        policy = SizeBasedRotationPolicy(30_000, 1024)
        config = make_config([policy])
        config.file.write_bytes(b"x" * 1024)
        rotatable = spy_rotatable(config)
        policy.start(rotatable)

        scheduler.run_next()

        assert callback.events == []
        assert rotatable.rotations == []
        assert len(scheduler.armed) == 1

    def test_probe_failure_reports_and_keeps_scheduling(
        self, make_config, spy_rotatable, scheduler, callback, clock, monkeypatch
    ):
        """Test an unreadable size is reported once and does not rotate."""
        policy = SizeBasedRotationPolicy(1000, 10)
        config = make_config([policy])
        rotatable = spy_rotatable(config)
        policy.start(rotatable)

        def fail(path):
            raise PermissionError("denied")

        monkeypatch.setattr("pyrotator.policy.os.path.getsize", fail)
        scheduler.run_next()

        failures = callback.of_kind("failure")
        assert len(failures) == 1
        _, failed_policy, instant, file, error = failures[0]
        assert failed_policy is policy
        assert instant == clock.now()
        assert file == config.file
        assert isinstance(error, ProbeError)
        assert isinstance(error.__cause__, PermissionError)
        assert callback.of_kind("trigger") == []
        assert rotatable.rotations == []
        assert len(scheduler.armed) == 1

    def test_missing_file_does_not_rotate(
        self, make_config, spy_rotatable, scheduler, callback
    ):
        policy = SizeBasedRotationPolicy(1000, 10)
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        scheduler.run_next()

        assert callback.events == []
        assert rotatable.rotations == []

    def test_stop_cancels_check(self, make_config, spy_rotatable, scheduler):
        policy = SizeBasedRotationPolicy(1000, 10)
        policy.start(spy_rotatable(make_config([policy])))
        task, _ = scheduler.armed[0]

        policy.stop()

        assert task.cancelled
        scheduler.run_next()
        assert task.run_count == 0
        assert scheduler.armed == []

    def test_logs_through_configured_logger(
        self, make_config, spy_rotatable, caplog
    ):
        policy = SizeBasedRotationPolicy(0, 10)
        custom = logging.getLogger("custom.rotation")
        policy.start(spy_rotatable(make_config([policy], logger=custom)))

        with caplog.at_level(logging.DEBUG, logger="custom.rotation"):
            policy.accept_write(11)

        assert any(
            record.name == "custom.rotation" and "triggering" in record.getMessage()
            for record in caplog.records
        )


class TestTimeBased:
    """Test the daily and weekly policies."""

    def test_structural_equality(self):
        assert TimeBasedRotationPolicy.daily() == TimeBasedRotationPolicy(Boundary.DAILY)
        assert TimeBasedRotationPolicy.daily() != TimeBasedRotationPolicy.weekly()
        assert len({TimeBasedRotationPolicy.weekly(), TimeBasedRotationPolicy.weekly()}) == 1

    def test_rejects_unknown_boundary(self):
        with pytest.raises(ConfigurationError):
            TimeBasedRotationPolicy("hourly")

    def test_never_write_sensitive(self):
        policy = TimeBasedRotationPolicy.daily()
        assert policy.is_write_sensitive() is False
        policy.accept_write(10**12)

    def test_trigger_date_time_per_boundary(self):
        clock = FixedClock(utc(2017, 12, 27, 15))
        assert TimeBasedRotationPolicy.daily().get_trigger_date_time(clock) == utc(2017, 12, 28)
        assert TimeBasedRotationPolicy.weekly().get_trigger_date_time(clock) == utc(2018, 1, 1)

    def test_daily_rotation_rearms_from_live_clock(
        self, make_config, spy_rotatable, scheduler, callback, clock
    ):
        """Test each firing rotates at the boundary and re-arms to the next one."""
        clock.advance(timedelta(hours=12))
        policy = TimeBasedRotationPolicy.daily()
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        assert scheduler.armed[0][1] == 12 * 3600

        clock.advance(timedelta(hours=12))
        scheduler.run_next()

        assert rotatable.rotations == [(policy, utc(2018, 1, 1))]
        assert callback.events == [("trigger", policy, utc(2018, 1, 1))]
        # Fired exactly on the boundary: the next one is a full day away.
        assert scheduler.armed[0][1] == 24 * 3600

        clock.advance(timedelta(hours=24))
        scheduler.run_next()
        assert rotatable.rotations[-1] == (policy, utc(2018, 1, 2))

    def test_early_firing_does_not_repeat_boundary(
        self, make_config, spy_rotatable, scheduler, clock
    ):
        """Test a firing seen just before the boundary re-arms for the next one."""
        policy = TimeBasedRotationPolicy.daily()
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        clock.advance(timedelta(days=1) - timedelta(milliseconds=1))
        scheduler.run_next()

        assert rotatable.rotations == [(policy, utc(2018, 1, 1))]
        assert scheduler.armed[0][1] == pytest.approx(24 * 3600 + 0.001)

        clock.advance(timedelta(days=1, milliseconds=1))
        scheduler.run_next()
        assert rotatable.rotations == [
            (policy, utc(2018, 1, 1)),
            (policy, utc(2018, 1, 2)),
        ]

    def test_weekly_early_firing_moves_to_following_week(
        self, make_config, spy_rotatable, scheduler, clock
    ):
        policy = TimeBasedRotationPolicy.weekly()
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        clock.advance(timedelta(days=1) - timedelta(seconds=1))
        scheduler.run_next()

        assert rotatable.rotations == [(policy, utc(2018, 1, 1))]
        assert scheduler.armed[0][1] == pytest.approx(7 * 24 * 3600 + 1)

    def test_weekly_rotation_delay(self, make_config, spy_rotatable, scheduler):
        clock = FixedClock(utc(2017, 12, 25, 6))
        policy = TimeBasedRotationPolicy.weekly()
        policy.start(spy_rotatable(make_config([policy], clock=clock)))

        assert scheduler.armed[0][1] == timedelta(days=6, hours=18).total_seconds()

    def test_past_boundary_is_clamped_to_immediate(
        self, make_config, spy_rotatable, scheduler
    ):
        class LaggingClock(FixedClock):
            def midnight(self):
                return self.now() - timedelta(seconds=1)

        clock = LaggingClock(utc(2020, 1, 1, 12))
        policy = TimeBasedRotationPolicy.daily()
        policy.start(spy_rotatable(make_config([policy], clock=clock)))

        assert scheduler.armed[0][1] == 0.0

    def test_stop_cancels_rearming(self, make_config, spy_rotatable, scheduler):
        policy = TimeBasedRotationPolicy.daily()
        rotatable = spy_rotatable(make_config([policy]))
        policy.start(rotatable)

        policy.stop()
        scheduler.run_next()

        assert rotatable.rotations == []
        assert scheduler.armed == []
