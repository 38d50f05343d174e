"""Shared fixtures and test doubles for pyrotator tests."""

from datetime import datetime, timezone

import pytest

from pyrotator.callback import RotationCallback
from pyrotator.clock import FixedClock
from pyrotator.config import RotationConfig
from pyrotator.pattern import RotatingFilePattern
from pyrotator.scheduler import RotationScheduler


class RecordingScheduler(RotationScheduler):
    """Scheduler that never starts a thread; tests fire tasks by hand."""

    def __init__(self):
        super().__init__(name="recording")
        self.armed = []

    def _arm(self, task):
        if task.cancelled:
            return
        delay = task._next_delay()
        if delay is not None:
            self.armed.append((task, delay))

    def run_next(self):
        """Run the oldest armed task and return ``(task, delay)``."""
        task, delay = self.armed.pop(0)
        if not task.cancelled:
            task.run_count += 1
            task._action()
            self._arm(task)
        return task, delay


class RecordingCallback(RotationCallback):
    """Callback keeping every notification in order."""

    def __init__(self):
        self.events = []

    def on_trigger(self, policy, instant):
        self.events.append(("trigger", policy, instant))

    def on_success(self, policy, instant, file):
        self.events.append(("success", policy, instant, file))

    def on_failure(self, policy, instant, file, error):
        self.events.append(("failure", policy, instant, file, error))

    def of_kind(self, kind):
        return [event for event in self.events if event[0] == kind]


class SpyRotatable:
    """Rotatable that only records what it was asked to rotate."""

    def __init__(self, config):
        self.config = config
        self.rotations = []

    def rotate(self, policy, instant):
        self.rotations.append((policy, instant))


@pytest.fixture
def clock():
    """Clock fixed at 2017-12-31T00:00:00Z (a Sunday)."""
    return FixedClock(datetime(2017, 12, 31, tzinfo=timezone.utc))


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture
def make_config(tmp_path, clock, scheduler, callback):
    """Build a RotationConfig around ``tmp_path/app.log``."""

    def make(policies, **overrides):
        options = dict(
            file=tmp_path / "app.log",
            file_pattern=RotatingFilePattern(
                str(tmp_path / "app-%d{yyyyMMdd-HHmmss}.log"), "en_US"
            ),
            clock=clock,
            scheduler=scheduler,
            policies=policies,
            callback=callback,
        )
        options.update(overrides)
        return RotationConfig(**options)

    return make


@pytest.fixture
def spy_rotatable():
    return SpyRotatable
