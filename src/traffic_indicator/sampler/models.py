from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    DOWN = "down"
    UP = "up"


@dataclass(frozen=True)
class Counters:
    """Cumulative bytes since boot, as reported by the OS."""

    rx: int
    tx: int


@dataclass(frozen=True)
class Sample:
    total_rx: int
    total_tx: int
    timestamp_ms: int


@dataclass(frozen=True)
class RenderResult:
    visible: bool = False
    value_text: str = ""
    unit_text: str = ""
    direction: Direction | None = None

    @classmethod
    def shown(cls, value_text: str, unit_text: str, direction: Direction) -> RenderResult:
        return cls(visible=True, value_text=value_text, unit_text=unit_text, direction=direction)

    @property
    def text(self) -> str:
        if not self.visible:
            return ""
        return f"{self.value_text}\n{self.unit_text}"


HIDDEN = RenderResult()

