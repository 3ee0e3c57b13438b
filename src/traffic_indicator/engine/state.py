from __future__ import annotations

from dataclasses import dataclass, field

from traffic_indicator.sampler.models import HIDDEN, RenderResult


@dataclass
class IndicatorSnapshot:
    attached: bool = False
    active: bool = False
    connected: bool = False
    restores_quickly: bool = False
    result: RenderResult = field(default=HIDDEN)

    total_rx: int | None = None
    total_tx: int | None = None
    rx_bps: int = 0
    tx_bps: int = 0
    ticks: int = 0
    last_tick_ms: int | None = None
    next_tick_ms: int | None = None

    indicator_mode: str = "auto"
    autohide_threshold_kbps: int = 0
    refresh_interval_seconds: int = 1
    config_revision: int = 0
    config_source: str = "startup"

    last_events: list[str] = field(default_factory=list)
    last_errors: list[str] = field(default_factory=list)
