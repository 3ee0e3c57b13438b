from __future__ import annotations

from traffic_indicator.sampler.models import RenderResult

KB = 1024
MB = KB * KB
GB = MB * KB

RATE_SUFFIX = "/S"

# (lower bound in bytes/s, unit, divisor, format spec), first match wins.
_THRESHOLDS: list[tuple[int, str, int, str]] = [
    (GB, "GB", GB, "0.2f"),
    (100 * MB, "MB", MB, "03.0f"),
    (10 * MB, "MB", MB, "04.1f"),
    (MB, "MB", MB, "0.2f"),
    (100 * KB, "KB", KB, "03.0f"),
    (10 * KB, "KB", KB, "04.1f"),
]


def format_rate(rate_bps: float) -> tuple[str, str]:
    """Format a rate in bytes per second as ``(value_text, unit_text)``.

    >>> format_rate(10 * MB)
    ('10.0', 'MB/S')
    """
    speed = max(0.0, float(rate_bps))
    for lower, unit, divisor, spec in _THRESHOLDS:
        if speed >= lower:
            return format(speed / divisor, spec), unit + RATE_SUFFIX
    return format(speed / KB, "0.2f"), "KB" + RATE_SUFFIX


def text_spans(
    result: RenderResult,
    *,
    value_size: float = 0.70,
    unit_size: float = 0.65,
) -> list[tuple[str, float | None]]:
    """Split a visible result into ``(text, relative_size)`` spans.

    The value line and the unit line are sized independently by the
    renderer; the separator carries no size.
    """
    if not result.visible:
        return []
    return [(result.value_text, value_size), ("\n", None), (result.unit_text, unit_size)]
