"""Policy-driven rotation of continuously written files."""

from .callback import LoggingRotationCallback, RotationCallback
from .clock import Clock, FixedClock, SystemClock
from .config import RotationConfig
from .errors import (
    ConfigurationError,
    PatternCompileError,
    PolicyStateError,
    ProbeError,
    RotatorError,
)
from .pattern import RotatingFilePattern, compile_pattern
from .policy import (
    Boundary,
    Rotatable,
    RotationPolicy,
    SizeBasedRotationPolicy,
    TimeBasedRotationPolicy,
)
from .scheduler import RotationScheduler, ScheduledTask
from .writer import RotatingFileWriter

__all__ = [
    "Boundary",
    "Clock",
    "ConfigurationError",
    "FixedClock",
    "LoggingRotationCallback",
    "PatternCompileError",
    "PolicyStateError",
    "ProbeError",
    "Rotatable",
    "RotatingFilePattern",
    "RotatingFileWriter",
    "RotationCallback",
    "RotationConfig",
    "RotationPolicy",
    "RotationScheduler",
    "RotatorError",
    "ScheduledTask",
    "SizeBasedRotationPolicy",
    "SystemClock",
    "TimeBasedRotationPolicy",
    "compile_pattern",
]
