"""
Size-bounded append-only log file.

The file never grows past the configured ``max_bytes``: before a line is
appended, the oldest content is dropped from the front of the file. The
limit lives in a ``LogConfigStore`` owned by the service lifecycle, so the
API can change it at runtime without touching module state.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.config import Settings


class LogConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_bytes: int = Field(alias="maxBytes", gt=0)


class LogConfigStore:
    """Loads, holds and persists the log size limit."""

    def __init__(self, path: Path, default_max_bytes: int, min_bytes: int = 1024) -> None:
        self._path = Path(path)
        self._default = LogConfig(max_bytes=default_max_bytes)
        self._min_bytes = min_bytes
        self._current = self._read()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LogConfigStore":
        return cls(settings.log_config_path, settings.log_max_bytes, settings.log_min_bytes)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> LogConfig:
        return self._current

    @property
    def min_bytes(self) -> int:
        return self._min_bytes

    def _read(self) -> LogConfig:
        try:
            raw = self._path.read_text(encoding="utf-8")
            return LogConfig.model_validate(json.loads(raw))
        except (OSError, ValueError, ValidationError):
            return self._default

    def reload(self) -> LogConfig:
        """Re-read the config file; invalid or missing content yields the default."""
        self._current = self._read()
        return self._current

    def update(self, max_bytes: int) -> LogConfig:
        """Validate, persist and activate a new size limit."""
        if max_bytes <= self._min_bytes:
            raise ValueError(f"maxBytes must be > {self._min_bytes}")
        config = LogConfig(max_bytes=max_bytes)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(config.model_dump(by_alias=True), indent=2), encoding="utf-8"
        )
        self._current = config
        return config


class BoundedFileHandler(logging.Handler):
    """Appends formatted records to a file kept under the configured size."""

    def __init__(self, path: Path, config: LogConfigStore, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._path = Path(path)
        self._config = config

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_size_limit(self, extra_bytes: int) -> None:
        max_bytes = self._config.current.max_bytes
        try:
            size = self._path.stat().st_size
        except FileNotFoundError:
            return
        if size + extra_bytes <= max_bytes:
            return
        keep = max_bytes - extra_bytes
        if keep <= 0:
            self._path.write_bytes(b"")
            return
        tail = self._path.read_bytes()[-keep:]
        # drop the partial first line left by the cut
        newline = tail.find(b"\n")
        if newline != -1:
            tail = tail[newline + 1:]
        self._path.write_bytes(tail)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            data = (self.format(record) + "\n").encode("utf-8")
            max_bytes = self._config.current.max_bytes
            if len(data) > max_bytes:
                # keep the head of an oversized record, cut on a character boundary
                head = data[: max_bytes - 1].decode("utf-8", errors="ignore")
                data = head.encode("utf-8") + b"\n"
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_size_limit(len(data))
            with open(self._path, "ab") as fh:
                fh.write(data)
        except Exception:
            self.handleError(record)


def read_log_text(path: Path) -> str:
    """Return the log file content, or an empty string when it does not exist yet."""
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return ""
