from __future__ import annotations

import yaml
from textual.containers import Container, Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Static, TextArea

from traffic_indicator.core.config import AppConfig
from traffic_indicator.engine.state import IndicatorSnapshot
from traffic_indicator.ui.widgets import TrafficLabel, fmt_bytes, fmt_mode, fmt_rate


class DashboardScreen(Screen):
    def compose(self):
        yield Header(show_clock=True)
        with Horizontal(id="statusbar"):
            yield Static("", id="status")
            yield TrafficLabel("", id="traffic")
        with Vertical():
            yield Static("", id="details")
            yield Static("", id="events")
        yield Footer()

    def refresh_data(self, snap: IndicatorSnapshot) -> None:
        ui = self.app.config.ui  # type: ignore[attr-defined]

        status = self.query_one("#status", Static)
        net = "CONNECTED" if snap.connected else "NO NETWORK"
        state = "SHOWN" if snap.active else "OFF"
        status.update(
            f"{net} | {state} | Mode: {fmt_mode(snap.indicator_mode)} | "
            f"Hide < {snap.autohide_threshold_kbps} KB/s | Every {snap.refresh_interval_seconds}s"
        )

        self.query_one("#traffic", TrafficLabel).show_result(
            snap.result,
            reserve_space=snap.active and snap.restores_quickly,
            value_size=ui.value_relative_size,
            unit_size=ui.unit_relative_size,
            tint=ui.tint_color,
        )

        direction = snap.result.direction.value if snap.result.direction else "-"
        self.query_one("#details", Static).update(
            f"Down: {fmt_rate(snap.rx_bps)}  Up: {fmt_rate(snap.tx_bps)}  Showing: {direction}\n"
            f"Received: {fmt_bytes(snap.total_rx)}  Sent: {fmt_bytes(snap.total_tx)}\n"
            f"Ticks: {snap.ticks}"
        )

        lines = [f"- {e}" for e in snap.last_events[:10]]
        lines += [f"! {e}" for e in snap.last_errors[:10]]
        self.query_one("#events", Static).update("Recent:\n" + "\n".join(lines))


class SettingsScreen(Screen):
    def compose(self):
        yield Header(show_clock=True)
        with Container():
            yield Static("Edit config YAML and press S to apply.", id="settings_help")
            yield Static("", id="settings_status")
            yield TextArea("", id="settings_editor")
        yield Footer()

    def on_mount(self) -> None:
        self.load_settings()

    def on_screen_resume(self) -> None:
        self.load_settings()

    def load_settings(self) -> None:
        app = self.app  # type: ignore[attr-defined]
        editor = self.query_one("#settings_editor", TextArea)
        editor.text = yaml.safe_dump(app.config.model_dump(), sort_keys=False)
        editor.language = "yaml"

    def save_settings(self) -> tuple[bool, str]:
        app = self.app  # type: ignore[attr-defined]
        editor = self.query_one("#settings_editor", TextArea)
        status = self.query_one("#settings_status", Static)
        try:
            cfg_raw = yaml.safe_load(editor.text) or {}
            cfg = AppConfig.model_validate(cfg_raw)
        except Exception as exc:
            status.update(f"Validation error: {exc}")
            return False, str(exc)
        app.apply_config(cfg, source="settings")
        status.update("Applied.")
        return True, "ok"

    def refresh_data(self, snap: IndicatorSnapshot) -> None:
        # Editor keeps the user's text between refreshes.
        pass
