"""Background scheduler running the rotation checks of every policy."""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

Action = Callable[[], None]
DelayFunction = Callable[[], Optional[float]]


class ScheduledTask:
    """Handle of a task submitted to a :class:`RotationScheduler`.

    ``next_delay`` is asked for the delay (in seconds) before every run,
    including the first one; returning ``None`` retires the task.
    """

    def __init__(self, action: Action, next_delay: DelayFunction, name: str):
        self._action = action
        self._next_delay = next_delay
        self._cancelled = threading.Event()
        self.name = name
        self.run_count = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Prevent any further run of this task."""
        self._cancelled.set()

    def __repr__(self) -> str:
        return f"ScheduledTask(name={self.name!r}, runs={self.run_count})"


def _one_shot(delay: float) -> DelayFunction:
    delays: Iterator[float] = iter([delay])
    return lambda: next(delays, None)


def _periodic(initial_delay: float, period: float) -> DelayFunction:
    delays = itertools.chain([initial_delay], itertools.repeat(period))
    return lambda: next(delays)


class RotationScheduler:
    """Single-threaded timer shared by all policies of a process.

    Tasks run one after another on a daemon worker thread. An exception
    raised by a task is logged and neither stops the worker nor cancels the
    task.

    Example:
    -------
        scheduler = RotationScheduler()
        scheduler.start()
        task = scheduler.schedule_periodic(check_size, 0, 30.0)
        # ...
        task.cancel()
        scheduler.stop()

    """

    def __init__(self, name: str = "RotationScheduler"):
        self.name = name
        self._queue: list = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the worker thread is running."""
        return self._running

    def start(self) -> None:
        """Start the worker thread; does nothing if already running."""
        with self._condition:
            if self._running:
                logger.warning("Rotation scheduler is already running")
                return
            self._running = True
            self._thread = threading.Thread(
                target=self._run_scheduler, name=self.name, daemon=True
            )
            self._thread.start()
        logger.info("Rotation scheduler started (name=%s)", self.name)

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Stop the worker thread.

        Pending tasks stay queued and resume if the scheduler is restarted.

        Args:
        ----
            timeout: Maximum time to wait for the worker thread to exit.
                    If None, waits indefinitely.

        Returns:
        -------
            True if the worker stopped, False if it timed out.

        """
        with self._condition:
            if not self._running:
                return True
            self._running = False
            self._condition.notify_all()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Rotation scheduler did not stop within timeout")
                return False

        self._thread = None
        logger.info("Rotation scheduler stopped (name=%s)", self.name)
        return True

    def schedule(self, action: Action, delay: float, name: str = "") -> ScheduledTask:
        """Run ``action`` once after ``delay`` seconds."""
        return self._submit(ScheduledTask(action, _one_shot(delay), name or "once"))

    def schedule_periodic(
        self, action: Action, initial_delay: float, period: float, name: str = ""
    ) -> ScheduledTask:
        """Run ``action`` after ``initial_delay``, then every ``period`` seconds."""
        if period <= 0:
            raise ValueError("period must be positive")
        return self._submit(
            ScheduledTask(action, _periodic(initial_delay, period), name or "periodic")
        )

    def schedule_with_dynamic_delay(
        self, action: Action, next_delay: DelayFunction, name: str = ""
    ) -> ScheduledTask:
        """Run ``action`` repeatedly, asking ``next_delay`` before each run.

        The delay is recomputed right before every arming, so callers can
        derive it from a live clock instead of accumulating a fixed period.
        """
        return self._submit(ScheduledTask(action, next_delay, name or "dynamic"))

    def pending_count(self) -> int:
        """Return the number of queued, non-cancelled tasks."""
        with self._condition:
            return sum(1 for _, _, task in self._queue if not task.cancelled)

    def _submit(self, task: ScheduledTask) -> ScheduledTask:
        self._arm(task)
        return task

    def _arm(self, task: ScheduledTask) -> None:
        if task.cancelled:
            return
        try:
            delay = task._next_delay()
        except Exception:
            logger.exception("Could not compute next delay, dropping task %s", task)
            return
        if delay is None:
            logger.debug("Task %s retired", task)
            return
        due = time.monotonic() + max(0.0, delay)
        with self._condition:
            heapq.heappush(self._queue, (due, next(self._sequence), task))
            self._condition.notify_all()

    def _next_due_task(self) -> Optional[ScheduledTask]:
        with self._condition:
            while self._running:
                if not self._queue:
                    self._condition.wait()
                    continue
                remaining = self._queue[0][0] - time.monotonic()
                if remaining > 0:
                    self._condition.wait(remaining)
                    continue
                _, _, task = heapq.heappop(self._queue)
                if not task.cancelled:
                    return task
            return None

    def _run_scheduler(self) -> None:
        """Worker loop executing due tasks until stopped."""
        logger.debug("Rotation scheduler thread started")
        while True:
            task = self._next_due_task()
            if task is None:
                break
            task.run_count += 1
            try:
                task._action()
            except Exception:
                logger.exception("Error in scheduled task %s", task)
            self._arm(task)
        logger.debug("Rotation scheduler thread exiting")

    def __enter__(self) -> "RotationScheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"RotationScheduler(name={self.name!r}, running={self._running})"
