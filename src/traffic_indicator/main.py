from __future__ import annotations

import argparse
import logging
import os
import signal
import sys

from traffic_indicator.core.config import load_config
from traffic_indicator.core.utils import env_flag, platform_summary, setup_logging
from traffic_indicator.engine.indicator_engine import IndicatorEngine
from traffic_indicator.monitoring.network import NetworkCounterSource


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="traffic-indicator")
    p.add_argument(
        "--config",
        type=str,
        default=os.getenv("TRAFFIC_INDICATOR_CONFIG", "config/config.yaml"),
        help="Path to config.yaml",
    )
    p.add_argument("--no-ui", action="store_true", help="Run headless (log display changes)")
    p.add_argument("--log-level", type=str, default="INFO")
    p.add_argument("--log-dir", type=str, default="./logs")
    return p.parse_args(argv)


def _run_headless(engine: IndicatorEngine, log: logging.Logger) -> None:
    engine.start()
    shown: str | None = None
    while engine.is_running():
        snap = engine.get_snapshot()
        text = snap.result.text.replace("\n", " ") if snap.result.visible else "(hidden)"
        if text != shown:
            shown = text
            log.info("display", extra={"text": text, "rx_bps": snap.rx_bps, "tx_bps": snap.tx_bps})
        engine.join(timeout=0.25)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv or sys.argv[1:])
    config = load_config(args.config, overrides_json=os.getenv("TRAFFIC_INDICATOR_OVERRIDES"))

    use_ui = config.ui.enabled and not args.no_ui and not env_flag("TRAFFIC_INDICATOR_NO_UI")
    setup_logging(args.log_dir, level=args.log_level, console=not use_ui)
    log = logging.getLogger("traffic_indicator")
    log.info("starting", extra={"platform": dict(platform_summary()), "config": args.config})

    engine = IndicatorEngine(
        config=config,
        source=NetworkCounterSource.from_config(config.source),
        config_path=args.config,
        source_factory=NetworkCounterSource.from_config,
    )

    stop_requested = False

    def _handle_sig(signum: int, _frame: object) -> None:
        nonlocal stop_requested
        if stop_requested:
            return
        stop_requested = True
        log.warning("shutdown requested", extra={"signal": signum})
        engine.request_stop()

    signal.signal(signal.SIGINT, _handle_sig)
    signal.signal(signal.SIGTERM, _handle_sig)

    if use_ui:
        from traffic_indicator.ui.app import TrafficIndicatorApp

        app = TrafficIndicatorApp(engine=engine, config=config)
        app.run()
        engine.request_stop()
        engine.join(timeout=2.0)
    else:
        _run_headless(engine, log)

    log.info("stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
