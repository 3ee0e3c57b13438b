from __future__ import annotations

import argparse
import sys
import time

from dotenv import load_dotenv

from traffic_indicator.core.config import load_config
from traffic_indicator.core.exceptions import ConfigError, CounterSourceError
from traffic_indicator.core.utils import monotonic_ms
from traffic_indicator.monitoring.network import NetworkCounterSource
from traffic_indicator.sampler.formatter import format_rate
from traffic_indicator.sampler.models import Sample
from traffic_indicator.sampler.rate_sampler import is_active, measure


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="doctor")
    p.add_argument("--config", type=str, default="config/config.yaml")
    p.add_argument("--seconds", type=float, default=1.0)
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv or sys.argv[1:])
    load_dotenv(override=False)

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print(f"[FAIL] Config: {exc}")
        return 2
    print(f"[OK] Config loaded: {args.config}")
    if not is_active(cfg.indicator):
        print("[WARN] Indicator is disabled or not shown; nothing will be displayed")

    source = NetworkCounterSource.from_config(cfg.source)
    try:
        first = source.read()
        t0 = monotonic_ms()
        connected = source.is_connected()
    except CounterSourceError as exc:
        print(f"[FAIL] Counters: {exc}")
        return 2
    print(f"[OK] Counters: rx={first.rx} tx={first.tx}")
    print(f"[{'OK' if connected else 'WARN'}] Connected: {connected}")

    time.sleep(max(0.1, args.seconds))
    try:
        second = source.read()
    except CounterSourceError as exc:
        print(f"[FAIL] Counters: {exc}")
        return 2
    rates = measure(second, monotonic_ms(), Sample(first.rx, first.tx, t0))
    down = " ".join(format_rate(rates.rx_bps))
    up = " ".join(format_rate(rates.tx_bps))
    print(f"[OK] Down {down}  Up {up}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
