from __future__ import annotations

import logging
import threading
from collections import deque
from pathlib import Path
from typing import Any, Callable, Protocol

from pydantic import ValidationError

from traffic_indicator.core.config import AppConfig, SourceConfig
from traffic_indicator.core.exceptions import ConfigError, CounterSourceError
from traffic_indicator.core.utils import monotonic_ms
from traffic_indicator.engine.events import EventQueue, IndicatorEvent
from traffic_indicator.engine.state import IndicatorSnapshot
from traffic_indicator.engine.watchers import ConfigFileWatcher, ConnectivityWatcher
from traffic_indicator.sampler.models import HIDDEN, Counters
from traffic_indicator.sampler.rate_sampler import SamplerState, is_active, restores_quickly

# Upper bound on how long the loop blocks waiting for events.
MAX_WAIT_SECONDS = 0.25


class CounterSource(Protocol):
    def read(self) -> Counters: ...

    def is_connected(self) -> bool: ...


class IndicatorEngine:
    """Drives the rate sampler from a single event queue on its own thread.

    Periodic ticks, connectivity changes, config changes and layout changes
    all arrive as events; only this thread touches the sampler state. Readers
    get copies through get_snapshot().
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        source: CounterSource,
        config_path: str | Path | None = None,
        source_factory: Callable[[SourceConfig], CounterSource] | None = None,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self.config = config
        self._source = source
        self._source_factory = source_factory
        self._clock = clock

        self._log = logging.getLogger("traffic_indicator.engine")
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="indicator-engine", daemon=True)

        self._snapshot_lock = threading.Lock()
        self._snapshot = IndicatorSnapshot()
        self._events: deque[str] = deque(maxlen=50)
        self._errors: deque[str] = deque(maxlen=50)

        self.events = EventQueue()
        self._state = SamplerState()
        self._attached = False
        self._connected = False
        self._next_tick_ms: int | None = None
        self._ticks = 0
        self._last_tick_ms: int | None = None
        self._totals: Counters | None = None
        self._config_revision = 0
        self._config_source = "startup"

        self._connectivity = ConnectivityWatcher(
            source, poll_seconds=config.runtime.connectivity_poll_seconds
        )
        self._config_watcher: ConfigFileWatcher | None = None
        if config_path is not None and config.runtime.watch_config_file:
            self._config_watcher = ConfigFileWatcher(
                Path(config_path), poll_seconds=config.runtime.config_poll_seconds
            )
        self._publish()

    def start(self) -> None:
        if self._thread.is_alive():
            return
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)

    def is_running(self) -> bool:
        return self._thread.is_alive()

    def request_stop(self) -> None:
        self._stop.set()

    def enqueue(self, event: IndicatorEvent) -> None:
        self.events.put(event)

    def get_snapshot(self) -> IndicatorSnapshot:
        with self._snapshot_lock:
            snap = IndicatorSnapshot(**self._snapshot.__dict__)
        return snap

    @property
    def state(self) -> SamplerState:
        return self._state

    # ----------------- event handling -----------------

    def handle(self, event: IndicatorEvent, *, now_ms: int) -> None:
        kind = event.kind
        if kind == "tick":
            if self._attached and is_active(self.config.indicator):
                self._run_tick(now_ms, forced=bool(event.payload.get("forced", False)))
            else:
                self._next_tick_ms = None
        elif kind == "connectivity_changed":
            self._connected = bool(event.payload.get("connected", False))
            self._event("network connected" if self._connected else "network disconnected")
            self._publish()
            if self._attached and is_active(self.config.indicator):
                self._run_tick(now_ms, forced=False)
        elif kind == "config_changed":
            if self._apply_config(event.payload.get("config"), source=str(event.payload.get("source", "ui"))):
                self._reset(now_ms)
        elif kind == "layout_changed":
            self._reset(now_ms)
        elif kind == "attach":
            if not self._attached:
                self._attached = True
                self._event("attached")
            self._reset(now_ms)
        elif kind == "detach":
            if self._attached:
                self._attached = False
                self._event("detached")
            self._next_tick_ms = None
            self._state = SamplerState()
            self._publish()
        elif kind == "quit":
            self.request_stop()
        else:
            self._log.warning("unknown event", extra={"kind": kind})

    def _apply_config(self, config: Any, *, source: str) -> bool:
        if isinstance(config, AppConfig):
            cfg = config
        else:
            try:
                cfg = AppConfig.model_validate(config or {})
            except ValidationError as exc:
                self._record_error(f"invalid config from {source}: {exc}")
                return False

        if cfg.source != self.config.source and self._source_factory is not None:
            self._source = self._source_factory(cfg.source)
            self._connectivity = ConnectivityWatcher(self._source)
        self._connectivity.poll_seconds = cfg.runtime.connectivity_poll_seconds
        if self._config_watcher is not None:
            self._config_watcher.poll_seconds = cfg.runtime.config_poll_seconds

        self.config = cfg
        self._config_revision += 1
        self._config_source = source
        self._event(f"config applied ({source})")
        return True

    def _reset(self, now_ms: int) -> None:
        """Blank the display, drop the previous sample and recompute at once."""
        self._state = SamplerState()
        self._next_tick_ms = None
        self._publish()
        if self._attached and is_active(self.config.indicator):
            self._run_tick(now_ms, forced=True)

    def _run_tick(self, now_ms: int, *, forced: bool) -> None:
        indicator = self.config.indicator
        try:
            counters = self._source.read()
            self._connected = bool(self._source.is_connected())
        except CounterSourceError as exc:
            self._schedule(now_ms)
            self._record_error(str(exc))
            return

        before = self._state.last
        if not self._state.step(counters, now_ms, indicator, connected=self._connected, forced=forced):
            if self._next_tick_ms is None and self._state.previous is not None:
                self._schedule(self._state.previous.timestamp_ms)
            # Result is unchanged but connectivity may have been re-read.
            self._publish()
            return

        self._ticks += 1
        self._last_tick_ms = now_ms
        self._totals = counters
        if self._state.last != before:
            self._log.debug(
                "display changed",
                extra={"text": self._state.last.text, "visible": self._state.last.visible},
            )

        self._schedule(now_ms)
        self._publish()

    def _schedule(self, now_ms: int) -> None:
        indicator = self.config.indicator
        if self._attached and is_active(indicator):
            self._next_tick_ms = now_ms + indicator.refresh_interval_seconds * 1000
        else:
            self._next_tick_ms = None
            self._state.last = HIDDEN

    # ----------------- internals -----------------

    def _publish(self) -> None:
        indicator = self.config.indicator
        with self._snapshot_lock:
            s = self._snapshot
            s.attached = self._attached
            s.active = is_active(indicator)
            s.connected = self._connected
            s.restores_quickly = restores_quickly(indicator, self._connected)
            s.result = self._state.last
            s.total_rx = self._totals.rx if self._totals else None
            s.total_tx = self._totals.tx if self._totals else None
            s.rx_bps = self._state.rates.rx_bps
            s.tx_bps = self._state.rates.tx_bps
            s.ticks = self._ticks
            s.last_tick_ms = self._last_tick_ms
            s.next_tick_ms = self._next_tick_ms
            s.indicator_mode = indicator.indicator_mode
            s.autohide_threshold_kbps = indicator.autohide_threshold_kbps
            s.refresh_interval_seconds = indicator.refresh_interval_seconds
            s.config_revision = self._config_revision
            s.config_source = self._config_source
            s.last_events = list(self._events)[:10]
            s.last_errors = list(self._errors)[:10]

    def _event(self, msg: str) -> None:
        self._events.appendleft(msg)
        self._log.info(msg)

    def _record_error(self, msg: str) -> None:
        self._errors.appendleft(msg)
        self._log.error(msg)
        self._publish()

    def _poll_watchers(self, now_ms: int) -> None:
        try:
            connected = self._connectivity.poll(now_ms)
        except CounterSourceError as exc:
            self._record_error(str(exc))
            connected = None
        if connected is not None:
            self.enqueue(IndicatorEvent("connectivity_changed", {"connected": connected}))

        if self._config_watcher is None:
            return
        try:
            raw = self._config_watcher.poll(now_ms)
        except ConfigError as exc:
            self._record_error(str(exc))
            return
        if raw is not None:
            self.enqueue(IndicatorEvent("config_changed", {"config": raw, "source": "file"}))

    def _wait_seconds(self, now_ms: int) -> float:
        wait = min(MAX_WAIT_SECONDS, float(self.config.runtime.connectivity_poll_seconds))
        if self._next_tick_ms is not None:
            wait = min(wait, (self._next_tick_ms - now_ms) / 1000)
        return max(0.0, wait)

    def _run(self) -> None:
        self._event("engine started")
        self.handle(IndicatorEvent("attach"), now_ms=self._clock())
        while not self._stop.is_set():
            now = self._clock()
            self._poll_watchers(now)
            if self._next_tick_ms is not None and now >= self._next_tick_ms:
                self._next_tick_ms = None
                self.handle(IndicatorEvent("tick"), now_ms=now)
                continue
            event = self.events.get(timeout=self._wait_seconds(now))
            if event is not None:
                self.handle(event, now_ms=self._clock())

        self.handle(IndicatorEvent("detach"), now_ms=self._clock())
        self._event("engine stopped")
