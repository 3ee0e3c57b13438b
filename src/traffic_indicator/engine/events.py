from __future__ import annotations

import queue
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class IndicatorEvent:
    kind: str  # attach | detach | tick | config_changed | connectivity_changed | layout_changed | quit
    payload: dict[str, Any] = field(default_factory=dict)


class EventQueue:
    def __init__(self) -> None:
        self._q: "queue.Queue[IndicatorEvent]" = queue.Queue()

    def put(self, event: IndicatorEvent) -> None:
        self._q.put(event)

    def get(self, timeout: float | None = None) -> IndicatorEvent | None:
        try:
            return self._q.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> IndicatorEvent | None:
        try:
            return self._q.get_nowait()
        except queue.Empty:
            return None
