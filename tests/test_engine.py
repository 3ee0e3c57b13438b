from __future__ import annotations

from traffic_indicator.core.config import AppConfig, SourceConfig
from traffic_indicator.core.exceptions import CounterSourceError
from traffic_indicator.engine.events import EventQueue, IndicatorEvent
from traffic_indicator.engine.indicator_engine import IndicatorEngine
from traffic_indicator.sampler.formatter import KB
from traffic_indicator.sampler.models import Counters, Direction


class _FakeSource:
    def __init__(self) -> None:
        self.rx = 0
        self.tx = 0
        self.connected = True
        self.fail = False
        self.reads = 0

    def read(self) -> Counters:
        if self.fail:
            raise CounterSourceError("counters unavailable")
        self.reads += 1
        return Counters(rx=self.rx, tx=self.tx)

    def is_connected(self) -> bool:
        return self.connected


def _config(**indicator: object) -> AppConfig:
    base: dict[str, object] = {"enabled": True, "location": "shown"}
    base.update(indicator)
    return AppConfig.model_validate({"indicator": base})


def _attached(source: _FakeSource, *, now_ms: int = 0, **indicator: object) -> IndicatorEngine:
    engine = IndicatorEngine(config=_config(**indicator), source=source, clock=lambda: now_ms)
    engine.handle(IndicatorEvent("attach"), now_ms=now_ms)
    return engine


def test_attach_runs_forced_tick_and_schedules_next() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    snap = engine.get_snapshot()
    assert snap.attached is True
    assert snap.ticks == 1
    assert snap.result.visible
    assert (snap.result.value_text, snap.result.unit_text) == ("0.00", "KB/S")
    assert snap.next_tick_ms == 2000


def test_scheduled_tick_computes_rate() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.rx = 300 * KB
    source.tx = 20 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    snap = engine.get_snapshot()
    assert snap.result.direction is Direction.DOWN
    assert snap.result.value_text == "300"
    assert snap.rx_bps == 300 * KB
    assert snap.total_rx == 300 * KB
    assert snap.next_tick_ms == 3000


def test_connectivity_event_between_ticks_is_debounced() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.rx = 300 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    before = engine.get_snapshot()

    source.rx = 900 * KB
    engine.handle(IndicatorEvent("connectivity_changed", {"connected": True}), now_ms=2100)
    after = engine.get_snapshot()
    assert after.result == before.result
    assert after.ticks == before.ticks
    assert after.next_tick_ms == 3000


def test_disconnect_hides_on_next_tick() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.connected = False
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    snap = engine.get_snapshot()
    assert snap.connected is False
    assert snap.result.visible is False


def test_config_change_resets_and_applies_immediately() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.rx = 300 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=2000)

    new_cfg = _config(indicator_mode="upload_only", refresh_interval_seconds=2)
    engine.handle(IndicatorEvent("config_changed", {"config": new_cfg.model_dump()}), now_ms=2200)
    snap = engine.get_snapshot()
    assert snap.indicator_mode == "upload_only"
    assert snap.result.direction is Direction.UP
    assert snap.result.value_text == "0.00"
    assert snap.next_tick_ms == 4200
    assert snap.config_revision == 1
    assert engine.state.previous is not None
    assert engine.state.previous.timestamp_ms == 2200


def test_disabling_stops_scheduling() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    engine.handle(IndicatorEvent("config_changed", {"config": _config(enabled=False)}), now_ms=1500)
    snap = engine.get_snapshot()
    assert snap.active is False
    assert snap.result.visible is False
    assert snap.next_tick_ms is None

    reads = source.reads
    engine.handle(IndicatorEvent("tick"), now_ms=3000)
    assert source.reads == reads


def test_invalid_config_keeps_previous_and_records_error() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.rx = 300 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    before = engine.get_snapshot()
    previous = engine.state.previous

    engine.handle(
        IndicatorEvent("config_changed", {"config": {"indicator": {"refresh_interval_seconds": 0}}}),
        now_ms=2200,
    )
    snap = engine.get_snapshot()
    assert snap.refresh_interval_seconds == 1
    assert snap.last_errors and "invalid config" in snap.last_errors[0]
    assert snap.result == before.result
    assert snap.result.value_text == "300"
    assert snap.ticks == before.ticks
    assert snap.next_tick_ms == 3000
    assert snap.config_revision == 0
    assert engine.state.previous is previous


def test_counter_errors_are_recorded_and_retried() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.fail = True
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    snap = engine.get_snapshot()
    assert snap.last_errors == ["counters unavailable"]
    assert snap.next_tick_ms == 3000

    source.fail = False
    source.rx = 40 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=3000)
    assert engine.get_snapshot().result.value_text == "20.0"


def test_detach_hides_and_cancels() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    engine.handle(IndicatorEvent("detach"), now_ms=1500)
    snap = engine.get_snapshot()
    assert snap.attached is False
    assert snap.result.visible is False
    assert snap.next_tick_ms is None


def test_source_is_rebuilt_when_source_config_changes() -> None:
    built: list[SourceConfig] = []

    def factory(cfg: SourceConfig) -> _FakeSource:
        built.append(cfg)
        return _FakeSource()

    source = _FakeSource()
    engine = IndicatorEngine(config=_config(), source=source, source_factory=factory, clock=lambda: 0)
    engine.handle(IndicatorEvent("attach"), now_ms=0)
    cfg = _config().model_copy(update={"source": SourceConfig(interface="eth0")})
    engine.handle(IndicatorEvent("config_changed", {"config": cfg}), now_ms=10)
    assert [c.interface for c in built] == ["eth0"]


def test_quit_requests_stop() -> None:
    engine = IndicatorEngine(config=_config(), source=_FakeSource(), clock=lambda: 0)
    engine.handle(IndicatorEvent("quit"), now_ms=0)
    assert engine._stop.is_set()


def test_event_queue_order() -> None:
    q = EventQueue()
    assert q.get_nowait() is None
    q.put(IndicatorEvent("tick"))
    q.put(IndicatorEvent("quit"))
    assert q.get_nowait().kind == "tick"
    assert q.get(timeout=0.01).kind == "quit"
    assert q.get(timeout=0.01) is None


def test_debounced_disconnect_is_published() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.rx = 300 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    ticks = engine.get_snapshot().ticks

    source.connected = False
    engine.handle(IndicatorEvent("connectivity_changed", {"connected": False}), now_ms=2100)
    snap = engine.get_snapshot()
    assert snap.connected is False
    assert snap.last_events[0] == "network disconnected"
    assert snap.ticks == ticks

    engine.handle(IndicatorEvent("tick"), now_ms=3000)
    assert engine.get_snapshot().result.visible is False


def test_layout_change_resets_and_runs_forced_tick() -> None:
    source = _FakeSource()
    engine = _attached(source, now_ms=1000)
    source.rx = 300 * KB
    engine.handle(IndicatorEvent("tick"), now_ms=2000)
    assert engine.get_snapshot().result.value_text == "300"

    source.rx = 900 * KB
    engine.handle(IndicatorEvent("layout_changed"), now_ms=2100)
    snap = engine.get_snapshot()
    assert snap.ticks == 3
    assert snap.result.value_text == "0.00"
    assert snap.next_tick_ms == 3100
    assert engine.state.previous.timestamp_ms == 2100
    assert engine.state.previous.total_rx == 900 * KB
