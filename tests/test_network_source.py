from __future__ import annotations

import socket
from types import SimpleNamespace

import pytest

from traffic_indicator.core.config import SourceConfig
from traffic_indicator.core.exceptions import CounterSourceError
from traffic_indicator.monitoring import network
from traffic_indicator.monitoring.network import NetworkCounterSource


def _io(recv: int, sent: int) -> SimpleNamespace:
    return SimpleNamespace(bytes_recv=recv, bytes_sent=sent)


@pytest.fixture
def fake_psutil(monkeypatch):
    per_nic = {
        "lo": _io(1000, 1000),
        "eth0": _io(500, 50),
        "wlan0": _io(300, 30),
        "docker0": _io(7, 7),
    }
    stats = {
        "lo": SimpleNamespace(isup=True),
        "eth0": SimpleNamespace(isup=False),
        "wlan0": SimpleNamespace(isup=True),
        "docker0": SimpleNamespace(isup=True),
    }
    addrs = {
        "lo": [SimpleNamespace(family=socket.AF_INET)],
        "wlan0": [SimpleNamespace(family=socket.AF_INET6)],
        "docker0": [SimpleNamespace(family=socket.AF_INET)],
    }
    monkeypatch.setattr(network.psutil, "net_io_counters", lambda pernic=False: per_nic)
    monkeypatch.setattr(network.psutil, "net_if_stats", lambda: stats)
    monkeypatch.setattr(network.psutil, "net_if_addrs", lambda: addrs)
    return SimpleNamespace(per_nic=per_nic, stats=stats, addrs=addrs)


def test_read_sums_non_loopback_interfaces(fake_psutil) -> None:
    c = NetworkCounterSource().read()
    assert (c.rx, c.tx) == (807, 87)


def test_read_honours_interface_and_exclude(fake_psutil) -> None:
    assert NetworkCounterSource(interface="eth0").read().rx == 500
    c = NetworkCounterSource(exclude=["docker0", " "]).read()
    assert (c.rx, c.tx) == (800, 80)
    assert NetworkCounterSource(include_loopback=True).read().rx == 1807


def test_from_config(fake_psutil) -> None:
    src = NetworkCounterSource.from_config(SourceConfig(interface="wlan0"))
    assert src.read().tx == 30


def test_is_connected_needs_up_interface_with_address(fake_psutil) -> None:
    assert NetworkCounterSource().is_connected() is True
    assert NetworkCounterSource(interface="eth0").is_connected() is False
    assert NetworkCounterSource(exclude=["wlan0", "docker0"]).is_connected() is False


def test_loopback_alone_is_not_connected(fake_psutil) -> None:
    fake_psutil.stats["wlan0"].isup = False
    fake_psutil.stats["docker0"].isup = False
    assert NetworkCounterSource(include_loopback=True).is_connected() is False


def test_psutil_failure_raises_counter_source_error(monkeypatch) -> None:
    def boom(pernic: bool = False) -> dict:
        raise OSError("no /proc")

    monkeypatch.setattr(network.psutil, "net_io_counters", boom)
    with pytest.raises(CounterSourceError):
        NetworkCounterSource().read()
