from __future__ import annotations

from dataclasses import dataclass, field

from traffic_indicator.core.config import IndicatorConfig
from traffic_indicator.sampler.formatter import KB, format_rate
from traffic_indicator.sampler.models import HIDDEN, Counters, Direction, RenderResult, Sample

DEBOUNCE_FACTOR = 0.95
# Substituted for time deltas under 1 ms so the computed rate collapses to ~0.
CLAMPED_TIME_DELTA_MS = 2**63 - 1


@dataclass(frozen=True)
class Rates:
    rx_bps: int
    tx_bps: int

    @property
    def rx_kbps(self) -> int:
        return self.rx_bps // KB

    @property
    def tx_kbps(self) -> int:
        return self.tx_bps // KB


def is_active(config: IndicatorConfig) -> bool:
    return bool(config.enabled) and config.location == "shown"


def restores_quickly(config: IndicatorConfig, connected: bool) -> bool:
    """True when the label can be shown straight away after a reset."""
    return connected and config.autohide_threshold_kbps == 0


def measure(counters: Counters, now_ms: int, previous: Sample | None) -> Rates:
    if previous is None:
        previous = Sample(total_rx=counters.rx, total_tx=counters.tx, timestamp_ms=now_ms)

    time_delta = now_ms - previous.timestamp_ms
    if time_delta < 1:
        time_delta = CLAMPED_TIME_DELTA_MS

    # A counter that went backwards was reset (reboot, interface re-created).
    rx_delta = max(0, counters.rx - previous.total_rx)
    tx_delta = max(0, counters.tx - previous.total_tx)

    seconds = time_delta / 1000
    return Rates(rx_bps=int(rx_delta / seconds), tx_bps=int(tx_delta / seconds))


def should_hide(config: IndicatorConfig, rates: Rates, *, connected: bool) -> bool:
    if not is_active(config) or not connected:
        return True
    threshold = config.autohide_threshold_kbps
    return rates.rx_kbps < threshold and rates.tx_kbps < threshold


def pick_direction(config: IndicatorConfig, rates: Rates) -> Direction:
    if config.indicator_mode == "auto":
        return Direction.UP if rates.tx_kbps > rates.rx_kbps else Direction.DOWN
    if config.indicator_mode == "upload_only":
        return Direction.UP
    return Direction.DOWN


def render(config: IndicatorConfig, rates: Rates, *, connected: bool) -> RenderResult:
    if should_hide(config, rates, connected=connected):
        return HIDDEN
    direction = pick_direction(config, rates)
    speed = rates.tx_bps if direction is Direction.UP else rates.rx_bps
    value_text, unit_text = format_rate(speed)
    return RenderResult.shown(value_text, unit_text, direction)


def tick(
    counters: Counters,
    now_ms: int,
    config: IndicatorConfig,
    previous: Sample | None,
    *,
    connected: bool,
    forced: bool = False,
    last: RenderResult = HIDDEN,
) -> tuple[RenderResult, Sample]:
    """Run one sampling step.

    Derives a rate from the delta against the previous sample, decides
    visibility and direction, and formats the chosen rate. No I/O is done;
    the caller owns the previous sample and the last result.

    Returns the result to display and the sample to keep for the next call.
    A debounced call returns ``last`` and the very same ``previous`` object,
    so callers can detect the no-op with an identity check. Without a previous
    sample the call is always computed, against a zero-delta baseline.
    """
    if previous is not None and not forced:
        time_delta = now_ms - previous.timestamp_ms
        if time_delta < DEBOUNCE_FACTOR * config.refresh_interval_seconds * 1000:
            return last, previous

    rates = measure(counters, now_ms, previous)
    result = render(config, rates, connected=connected)
    return result, Sample(total_rx=counters.rx, total_tx=counters.tx, timestamp_ms=now_ms)


@dataclass
class SamplerState:
    """Previous sample and last result, owned by whoever drives the ticks."""

    previous: Sample | None = None
    last: RenderResult = field(default=HIDDEN)
    rates: Rates = field(default_factory=lambda: Rates(0, 0))

    def step(
        self,
        counters: Counters,
        now_ms: int,
        config: IndicatorConfig,
        *,
        connected: bool,
        forced: bool = False,
    ) -> bool:
        """Advance by one tick; returns False when the call was debounced."""
        previous = self.previous
        result, sample = tick(
            counters,
            now_ms,
            config,
            previous,
            connected=connected,
            forced=forced,
            last=self.last,
        )
        if previous is not None and sample is previous:
            return False
        self.rates = measure(counters, now_ms, previous)
        self.previous = sample
        self.last = result
        return True
