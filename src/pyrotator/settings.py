"""Settings file loading: JSON validated with pydantic, turned into a RotationConfig."""

import json
import logging
from pathlib import Path
from typing import List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .callback import LoggingRotationCallback, RotationCallback
from .clock import Clock, SystemClock
from .config import RotationConfig
from .errors import ConfigurationError
from .pattern import RotatingFilePattern
from .policy import RotationPolicy, SizeBasedRotationPolicy, TimeBasedRotationPolicy
from .scheduler import RotationScheduler

logger = logging.getLogger(__name__)


class SizePolicySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["size"]
    check_interval_millis: int = Field(default=0, ge=0)
    max_byte_count: int = Field(ge=1)

    def build(self) -> RotationPolicy:
        return SizeBasedRotationPolicy(self.check_interval_millis, self.max_byte_count)


class TimePolicySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["daily", "weekly"]

    def build(self) -> RotationPolicy:
        if self.type == "daily":
            return TimeBasedRotationPolicy.daily()
        return TimeBasedRotationPolicy.weekly()


class RotationSettings(BaseModel):
    """Serializable description of a rotating file."""

    model_config = ConfigDict(extra="forbid")

    file: str
    file_pattern: str
    locale: Optional[str] = None
    timezone: Optional[str] = None
    append: bool = True
    policies: List[Union[SizePolicySettings, TimePolicySettings]] = Field(min_length=1)


def load_settings(path: Union[str, Path]) -> RotationSettings:
    """Read and validate a JSON settings file.

    Raises
    ------
        ConfigurationError: If the file is unreadable, not JSON, or invalid.

    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"could not read settings file {path}: {e}") from e
    return parse_settings(data)


def parse_settings(data: dict) -> RotationSettings:
    try:
        return RotationSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid settings: {e}") from e


def build_config(
    settings: RotationSettings,
    scheduler: RotationScheduler,
    callback: Optional[RotationCallback] = None,
    clock: Optional[Clock] = None,
) -> RotationConfig:
    """Build a :class:`RotationConfig` from validated settings.

    Args:
    ----
        settings: Validated settings
        scheduler: Scheduler running the policies' checks
        callback: Observer, defaults to a :class:`LoggingRotationCallback`
        clock: Clock, defaults to a system clock in ``settings.timezone``,
            or in the local zone when that is unset

    """
    if clock is None and settings.timezone is None:
        clock = SystemClock()
    elif clock is None:
        try:
            clock = SystemClock(ZoneInfo(settings.timezone))
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"unknown timezone: {settings.timezone}") from e
    config = RotationConfig(
        file=settings.file,
        file_pattern=RotatingFilePattern(settings.file_pattern, settings.locale),
        clock=clock,
        scheduler=scheduler,
        policies=[policy.build() for policy in settings.policies],
        callback=callback or LoggingRotationCallback(),
        append=settings.append,
    )
    logger.debug("Built rotation config for %s", config.file)
    return config
