from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from traffic_indicator.core.config import load_yaml
from traffic_indicator.core.exceptions import ConfigError


class ConnectivityCheck(Protocol):
    def is_connected(self) -> bool: ...


@dataclass
class ConnectivityWatcher:
    check: ConnectivityCheck
    poll_seconds: float = 1.0
    last_connected: bool | None = None
    _last_poll_ms: int | None = None

    def poll(self, now_ms: int) -> bool | None:
        """
        Returns the new connectivity state when it changed since the last poll.
        The first poll always reports.
        """
        if self._last_poll_ms is not None and now_ms - self._last_poll_ms < self.poll_seconds * 1000:
            return None
        self._last_poll_ms = now_ms
        connected = bool(self.check.is_connected())
        if connected == self.last_connected:
            return None
        self.last_connected = connected
        return connected


@dataclass
class ConfigFileWatcher:
    path: Path
    poll_seconds: float = 2.0
    _last_mtime_ns: int | None = None
    _last_poll_ms: int | None = None
    _missing: bool = False

    def __post_init__(self) -> None:
        self._log = logging.getLogger("traffic_indicator.watcher")
        try:
            self._last_mtime_ns = self.path.stat().st_mtime_ns
        except OSError:
            self._last_mtime_ns = None

    def poll(self, now_ms: int) -> dict[str, Any] | None:
        """Returns the raw YAML mapping when the file changed on disk."""
        if self._last_poll_ms is not None and now_ms - self._last_poll_ms < self.poll_seconds * 1000:
            return None
        self._last_poll_ms = now_ms
        try:
            mtime = self.path.stat().st_mtime_ns
        except OSError as exc:
            if self._missing:
                return None
            self._missing = True
            raise ConfigError(f"Config file unavailable: {self.path}") from exc
        self._missing = False
        if mtime == self._last_mtime_ns:
            return None
        # Recorded before parsing so a broken file is reported once per edit.
        self._last_mtime_ns = mtime
        self._log.info("config file changed", extra={"path": str(self.path)})
        return load_yaml(self.path)
