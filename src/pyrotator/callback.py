"""Observer hooks notified about rotation triggers and outcomes."""

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .policy import RotationPolicy

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class RotationCallback:
    """No-op callback; override only the notifications you care about."""

    def on_trigger(self, policy: "RotationPolicy", instant: datetime) -> None:
        """Call when ``policy`` decided to rotate, before the rotation runs."""

    def on_success(
        self, policy: "RotationPolicy", instant: datetime, file: PathLike
    ) -> None:
        """Call after the file was rotated to ``file``."""

    def on_failure(
        self,
        policy: "RotationPolicy",
        instant: datetime,
        file: Optional[PathLike],
        error: BaseException,
    ) -> None:
        """Call when a size probe or the rotation itself failed."""


class LoggingRotationCallback(RotationCallback):
    """Callback reporting every notification through a logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.logger = log or logger

    def on_trigger(self, policy, instant):
        self.logger.debug("rotation triggered (policy=%s, instant=%s)", policy, instant)

    def on_success(self, policy, instant, file):
        self.logger.info(
            "rotation succeeded (policy=%s, instant=%s, file=%s)", policy, instant, file
        )

    def on_failure(self, policy, instant, file, error):
        self.logger.error(
            "rotation failed (policy=%s, instant=%s, file=%s): %s",
            policy,
            instant,
            file,
            error,
        )
