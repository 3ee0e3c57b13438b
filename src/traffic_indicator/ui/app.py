from __future__ import annotations

from textual import events
from textual.app import App

from traffic_indicator.core.config import AppConfig, IndicatorConfig
from traffic_indicator.engine.events import IndicatorEvent
from traffic_indicator.engine.indicator_engine import IndicatorEngine
from traffic_indicator.ui.screens import DashboardScreen, SettingsScreen

MODE_CYCLE = ["auto", "download_only", "upload_only"]
THRESHOLD_STEP_KBPS = 10


class TrafficIndicatorApp(App):
    CSS = """
    Screen { padding: 0 1; }
    #statusbar { height: 2; background: $panel; }
    #status { width: 1fr; content-align: left middle; }
    #details { height: 4; margin-top: 1; }
    #events { height: 1fr; }
    #settings_editor { height: 1fr; }
    """

    BINDINGS = [
        ("1", "dashboard", "Dashboard"),
        ("2", "settings", "Settings"),
        ("e", "toggle_enabled", "On/Off"),
        ("l", "toggle_location", "Show/Hide"),
        ("m", "cycle_mode", "Mode"),
        ("plus", "threshold_up", "Hide +"),
        ("minus", "threshold_down", "Hide -"),
        ("s", "save_settings", "Apply Settings"),
        ("q", "quit_app", "Quit"),
    ]

    SCREENS = {
        "dashboard": DashboardScreen,
        "settings": SettingsScreen,
    }

    def __init__(self, *, engine: IndicatorEngine, config: AppConfig) -> None:
        super().__init__()
        self.engine = engine
        self.config = config
        self._seen_revision = 0

    def on_mount(self) -> None:
        self.engine.start()
        self.switch_screen("dashboard")
        refresh_hz = float(self.config.ui.refresh_hz or 4)
        self.set_interval(1.0 / max(refresh_hz, 0.5), self._tick_refresh)

    def on_resize(self, event: events.Resize) -> None:
        self.engine.enqueue(IndicatorEvent("layout_changed"))

    def _tick_refresh(self) -> None:
        snap = self.engine.get_snapshot()
        if snap.config_revision != self._seen_revision:
            self._seen_revision = snap.config_revision
            # Edits made here are already in self.config; reloads from disk are not.
            if snap.config_source == "file":
                self.config = self.engine.config
        screen = self.screen
        if hasattr(screen, "refresh_data"):
            screen.refresh_data(snap)  # type: ignore[attr-defined]

    def apply_config(self, cfg: AppConfig, *, source: str) -> None:
        self.config = cfg
        self.engine.enqueue(IndicatorEvent("config_changed", {"config": cfg, "source": source}))

    def _update_indicator(self, **changes: object) -> None:
        current = self.config.indicator
        indicator = IndicatorConfig.model_validate({**current.model_dump(), **changes})
        self.apply_config(self.config.model_copy(update={"indicator": indicator}), source="keys")

    def action_dashboard(self) -> None:
        self.switch_screen("dashboard")

    def action_settings(self) -> None:
        self.switch_screen("settings")

    def action_toggle_enabled(self) -> None:
        self._update_indicator(enabled=not self.config.indicator.enabled)

    def action_toggle_location(self) -> None:
        location = "off" if self.config.indicator.location == "shown" else "shown"
        self._update_indicator(location=location)

    def action_cycle_mode(self) -> None:
        idx = MODE_CYCLE.index(self.config.indicator.indicator_mode)
        self._update_indicator(indicator_mode=MODE_CYCLE[(idx + 1) % len(MODE_CYCLE)])

    def action_threshold_up(self) -> None:
        self._update_indicator(
            autohide_threshold_kbps=self.config.indicator.autohide_threshold_kbps + THRESHOLD_STEP_KBPS
        )

    def action_threshold_down(self) -> None:
        value = max(0, self.config.indicator.autohide_threshold_kbps - THRESHOLD_STEP_KBPS)
        self._update_indicator(autohide_threshold_kbps=value)

    def action_save_settings(self) -> None:
        if isinstance(self.screen, SettingsScreen):
            self.screen.save_settings()

    def action_quit_app(self) -> None:
        self.engine.enqueue(IndicatorEvent("quit"))
        self.engine.request_stop()
        self.exit()
