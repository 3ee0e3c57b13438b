from __future__ import annotations


class TrafficIndicatorError(Exception):
    """Base error for the traffic indicator."""


class ConfigError(TrafficIndicatorError):
    pass


class CounterSourceError(TrafficIndicatorError):
    """Byte counters or interface state could not be read."""
