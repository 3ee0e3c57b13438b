from __future__ import annotations

import dataclasses
import json
import logging
import os
import platform
import sys
import time
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping

import psutil

TEXT_LOG = "indicator.log"
JSON_LOG = "indicator.jsonl"
_ROTATION = {TEXT_LOG: 2_000_000, JSON_LOG: 5_000_000}
_BACKUPS = 3

_HUMAN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def _jsonable(o: Any) -> Any:
    if isinstance(o, Enum):
        return o.value
    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return dataclasses.asdict(o)
    if hasattr(o, "model_dump"):
        return o.model_dump(mode="json")
    return str(o)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_jsonable, ensure_ascii=False, separators=(",", ":"))


def _rotating(log_dir: Path, name: str, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler = RotatingFileHandler(
        log_dir / name, maxBytes=_ROTATION[name], backupCount=_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: str, level: str = "INFO", *, console: bool = True) -> None:
    """Configure the root logger.

    The console handler writes to stdout and must stay off while the TUI owns
    the terminal; the text and JSONL files are always written.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    level_num = logging.getLevelName(level.upper())
    if not isinstance(level_num, int):
        level_num = logging.INFO

    human = logging.Formatter(fmt=_HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers = [
        _rotating(directory, TEXT_LOG, human, level_num),
        _rotating(directory, JSON_LOG, JsonFormatter(), level_num),
    ]
    if console:
        stream = logging.StreamHandler(stream=sys.stdout)
        stream.setLevel(level_num)
        stream.setFormatter(human)
        handlers.insert(0, stream)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level_num)
    for handler in handlers:
        root.addHandler(handler)

    # textual and asyncio are chatty at DEBUG
    for noisy in ("asyncio", "textual"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    return default if raw is None else raw.strip().lower() in _TRUTHY


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


def platform_summary() -> Mapping[str, Any]:
    return {
        "python": platform.python_version(),
        "platform": platform.platform(),
        "psutil": psutil.__version__,
        "interfaces": sorted(psutil.net_if_stats()),
    }
