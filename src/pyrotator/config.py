"""Immutable configuration shared by a rotatable and its policies."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from .callback import RotationCallback
from .clock import Clock
from .errors import ConfigurationError
from .pattern import RotatingFilePattern
from .policy import RotationPolicy
from .scheduler import RotationScheduler

_CLOCK_METHODS = ("now", "midnight", "sunday_midnight")
_SCHEDULER_METHODS = ("schedule", "schedule_periodic", "schedule_with_dynamic_delay")
_CALLBACK_METHODS = ("on_trigger", "on_success", "on_failure")


@dataclass(frozen=True)
class RotationConfig:
    """Everything a rotatable needs: target, naming, timing and observers.

    All of ``file``, ``file_pattern``, ``clock``, ``scheduler``, ``policies``
    and ``callback`` are required; leaving one out raises
    :class:`~pyrotator.errors.ConfigurationError`. ``logger`` overrides the
    logger policies report their decisions to.
    """

    file: Optional[Union[str, Path]] = None
    file_pattern: Optional[RotatingFilePattern] = None
    clock: Optional[Clock] = None
    scheduler: Optional[RotationScheduler] = None
    policies: Sequence[RotationPolicy] = ()
    callback: Optional[RotationCallback] = None
    append: bool = True
    logger: Optional[logging.Logger] = None

    def __post_init__(self):
        for name in ("file", "file_pattern", "clock", "scheduler", "callback"):
            if getattr(self, name) is None:
                raise ConfigurationError(f"missing configuration field: {name}")
        object.__setattr__(self, "file", Path(self.file))

        if not isinstance(self.file_pattern, RotatingFilePattern):
            raise ConfigurationError(
                f"file_pattern must be a RotatingFilePattern, got {self.file_pattern!r}"
            )
        _require_methods("clock", self.clock, _CLOCK_METHODS)
        _require_methods("scheduler", self.scheduler, _SCHEDULER_METHODS)
        _require_methods("callback", self.callback, _CALLBACK_METHODS)

        policies = tuple(self.policies or ())
        if not policies:
            raise ConfigurationError("missing configuration field: policies")
        for policy in policies:
            if not isinstance(policy, RotationPolicy):
                raise ConfigurationError(f"invalid policy: {policy!r}")
        object.__setattr__(self, "policies", policies)

    @property
    def write_sensitive_policies(self) -> tuple:
        return tuple(policy for policy in self.policies if policy.is_write_sensitive())


def _require_methods(name: str, value: Any, methods: Sequence[str]) -> None:
    missing = [method for method in methods if not callable(getattr(value, method, None))]
    if missing:
        raise ConfigurationError(
            f"invalid {name} {value!r}: missing {', '.join(missing)}"
        )
