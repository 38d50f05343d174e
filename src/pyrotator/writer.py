"""Append-only file writer that rotates itself according to its policies."""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .config import RotationConfig
from .policy import RotationPolicy

logger = logging.getLogger(__name__)


class RotatingFileWriter:
    """Binary file writer implementing the rotatable side of the policies.

    Writes go to ``config.file``. On rotation the file is renamed to the path
    rendered from ``config.file_pattern`` for the trigger instant and a fresh
    file is opened in its place. Writes and rotations serialize on one
    re-entrant lock, so a size check and a calendar boundary firing together
    rotate one after the other.

    Example:
    -------
        config = RotationConfig(
            file="/tmp/app.log",
            file_pattern=RotatingFilePattern("/tmp/app-%d{yyyyMMdd-HHmmss}.log"),
            clock=SystemClock(),
            scheduler=scheduler,
            policies=[SizeBasedRotationPolicy(0, 1024 * 1024)],
            callback=LoggingRotationCallback(),
        )
        with RotatingFileWriter(config) as writer:
            writer.write(b"hello\\n")

    """

    def __init__(self, config: RotationConfig):
        self._config = config
        self._lock = threading.RLock()
        self._stream: Optional[BinaryIO] = None
        self._byte_count = 0
        self._write_sensitive_policies = config.write_sensitive_policies
        self._open(append=config.append)
        started = []
        try:
            for policy in config.policies:
                policy.start(self)
                started.append(policy)
        except Exception:
            # Policies bound elsewhere keep their own schedule.
            for policy in started:
                policy.stop()
            self._close_stream()
            raise

    @property
    def config(self) -> RotationConfig:
        return self._config

    @property
    def file(self) -> Path:
        return self._config.file

    @property
    def byte_count(self) -> int:
        """Number of bytes in the current file."""
        return self._byte_count

    @property
    def closed(self) -> bool:
        return self._stream is None

    def _open(self, append: bool) -> None:
        """Open the target file, creating parent directories as needed."""
        self.file.parent.mkdir(parents=True, exist_ok=True)
        self._stream = open(self.file, "ab" if append else "wb")
        self._stream.seek(0, 2)
        self._byte_count = self._stream.tell()
        logger.debug("Opened file: %s, size: %d", self.file, self._byte_count)

    def write(self, data: Union[bytes, str]) -> int:
        """Append ``data`` and let write-sensitive policies inspect the new size.

        Strings are encoded as UTF-8. Returns the number of bytes written.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            if self._stream is None:
                raise ValueError("write to closed RotatingFileWriter")
            self._stream.write(data)
            self._byte_count += len(data)
            for policy in self._write_sensitive_policies:
                policy.accept_write(self._byte_count)
        return len(data)

    def flush(self) -> None:
        with self._lock:
            if self._stream is not None:
                self._stream.flush()

    def rotate(self, policy: RotationPolicy, instant: datetime) -> None:
        """Rotate the current file to the name rendered for ``instant``.

        Failures are reported through ``config.callback.on_failure`` and the
        original file is reopened for appending.
        """
        callback = self._config.callback
        with self._lock:
            if self._stream is None:
                logger.debug("Writer closed, skipping rotation (policy=%s)", policy)
                return
            if self._byte_count == 0:
                logger.debug("Empty file, skipping rotation (policy=%s)", policy)
                return

            rotated_file = self._config.file_pattern.create(instant)
            try:
                self._stream.close()
                self._stream = None
                if rotated_file.exists():
                    raise FileExistsError(f"rotated file already exists: {rotated_file}")
                rotated_file.parent.mkdir(parents=True, exist_ok=True)
                self.file.rename(rotated_file)
            except OSError as error:
                logger.error("Rotation of %s to %s failed: %s", self.file, rotated_file, error)
                self._reopen_after_failure()
                callback.on_failure(policy, instant, rotated_file, error)
                return

            try:
                self._open(append=False)
            except OSError as error:
                logger.error("Could not reopen %s after rotation: %s", self.file, error)
                callback.on_failure(policy, instant, self.file, error)
                return

        logger.info("Rotated %s to %s (policy=%s)", self.file, rotated_file, policy)
        callback.on_success(policy, instant, rotated_file)

    def _reopen_after_failure(self) -> None:
        if self._stream is not None:
            return
        try:
            self._open(append=True)
        except OSError as error:
            logger.error("Could not reopen %s: %s", self.file, error)

    def close(self) -> None:
        """Stop the policies' scheduled checks and close the file."""
        for policy in self._config.policies:
            policy.stop()
        self._close_stream()

    def _close_stream(self) -> None:
        with self._lock:
            if self._stream is not None:
                self._stream.close()
                self._stream = None

    def __enter__(self) -> "RotatingFileWriter":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RotatingFileWriter(file={str(self.file)!r})"
