from __future__ import annotations

from traffic_indicator.sampler.formatter import GB, KB, MB, format_rate, text_spans
from traffic_indicator.sampler.models import HIDDEN, Direction, RenderResult


def test_exact_thresholds() -> None:
    assert format_rate(10 * MB) == ("10.0", "MB/S")
    assert format_rate(100 * MB) == ("100", "MB/S")
    assert format_rate(GB) == ("1.00", "GB/S")
    assert format_rate(MB) == ("1.00", "MB/S")
    assert format_rate(100 * KB) == ("100", "KB/S")
    assert format_rate(10 * KB) == ("10.0", "KB/S")


def test_small_rates_use_kb_two_decimals() -> None:
    assert format_rate(0) == ("0.00", "KB/S")
    assert format_rate(512) == ("0.50", "KB/S")
    assert format_rate(10 * KB - 1) == ("10.00", "KB/S")


def test_integer_rows_are_zero_padded_to_three_digits() -> None:
    assert format_rate(250 * KB) == ("250", "KB/S")
    assert format_rate(512 * MB) == ("512", "MB/S")


def test_negative_rate_is_treated_as_zero() -> None:
    assert format_rate(-5000) == ("0.00", "KB/S")


def test_unit_is_monotonic_in_rate() -> None:
    order = {"KB/S": 0, "MB/S": 1, "GB/S": 2}
    rates = [0, 1, KB, 10 * KB, 100 * KB, MB - 1, MB, 10 * MB, 100 * MB, GB - 1, GB, 2**40, 2**63 - 1, 2**64 - 1]
    ranks = [order[format_rate(r)[1]] for r in rates]
    assert ranks == sorted(ranks)


def test_huge_values_do_not_raise() -> None:
    value, unit = format_rate(2**64 - 1)
    assert unit == "GB/S"
    assert float(value) > 0


def test_text_spans() -> None:
    result = RenderResult.shown("1.50", "MB/S", Direction.DOWN)
    assert text_spans(result) == [("1.50", 0.70), ("\n", None), ("MB/S", 0.65)]
    assert text_spans(HIDDEN) == []
    assert result.text == "1.50\nMB/S"
    assert HIDDEN.text == ""
