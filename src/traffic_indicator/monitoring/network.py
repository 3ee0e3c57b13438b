from __future__ import annotations

import socket
from typing import Iterable

import psutil

from traffic_indicator.core.config import SourceConfig
from traffic_indicator.core.exceptions import CounterSourceError
from traffic_indicator.sampler.models import Counters

_ADDRESS_FAMILIES = {socket.AF_INET, socket.AF_INET6}


def _is_loopback(name: str) -> bool:
    if name == "lo" or name.lower().startswith("loopback"):
        return True
    return name.startswith("lo") and name[2:].isdigit()


class NetworkCounterSource:
    """Host-wide byte counters and connectivity, read through psutil."""

    def __init__(
        self,
        *,
        interface: str | None = None,
        exclude: Iterable[str] = (),
        include_loopback: bool = False,
    ) -> None:
        self._interface = interface
        self._excludes = {x.strip() for x in exclude if x.strip()}
        self._include_loopback = include_loopback

    @classmethod
    def from_config(cls, cfg: SourceConfig) -> NetworkCounterSource:
        return cls(interface=cfg.interface, exclude=cfg.exclude, include_loopback=cfg.include_loopback)

    def _wanted(self, name: str) -> bool:
        if self._interface:
            return name == self._interface
        if name in self._excludes:
            return False
        return self._include_loopback or not _is_loopback(name)

    def read(self) -> Counters:
        try:
            per_nic = psutil.net_io_counters(pernic=True)
        except (OSError, RuntimeError) as exc:
            raise CounterSourceError(f"net_io_counters failed: {exc}") from exc
        rx_total, tx_total = 0, 0
        for name, c in per_nic.items():
            if not self._wanted(name):
                continue
            rx_total += int(c.bytes_recv)
            tx_total += int(c.bytes_sent)
        return Counters(rx=rx_total, tx=tx_total)

    def is_connected(self) -> bool:
        """True when a selected non-loopback interface is up and has an address."""
        try:
            stats = psutil.net_if_stats()
            addrs = psutil.net_if_addrs()
        except (OSError, RuntimeError) as exc:
            raise CounterSourceError(f"interface query failed: {exc}") from exc
        for name, st in stats.items():
            if not st.isup or _is_loopback(name) or not self._wanted(name):
                continue
            if any(a.family in _ADDRESS_FAMILIES for a in addrs.get(name, [])):
                return True
        return False
