from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from traffic_indicator.sampler.formatter import GB, KB, MB, format_rate, text_spans
from traffic_indicator.sampler.models import RenderResult


def fmt_rate(v: float | None) -> str:
    if v is None:
        return "N/A"
    value, unit = format_rate(v)
    return f"{value} {unit}"


def fmt_bytes(v: int | None) -> str:
    if v is None:
        return "N/A"
    x = float(v)
    if x < KB:
        return f"{x:.0f} B"
    if x < MB:
        return f"{x / KB:.1f} KB"
    if x < GB:
        return f"{x / MB:.1f} MB"
    return f"{x / GB:.2f} GB"


def fmt_mode(mode: str) -> str:
    return {"auto": "Auto", "download_only": "Download", "upload_only": "Upload"}.get(mode, mode)


def render_spans(spans: list[tuple[str, float | None]], *, tint: str = "white") -> Text:
    # A terminal has a single font size; the larger span is emphasised instead.
    largest = max((size for _, size in spans if size is not None), default=None)
    text = Text(justify="center")
    for chunk, size in spans:
        if size is None:
            text.append(chunk)
        elif size == largest:
            text.append(chunk, style=f"bold {tint}")
        else:
            text.append(chunk, style=f"dim {tint}")
    return text


class TrafficLabel(Static):
    """Two-line speed label: value on top, unit below."""

    DEFAULT_CSS = """
    TrafficLabel {
        width: 9;
        height: 2;
        content-align: center middle;
    }
    """

    def show_result(
        self,
        result: RenderResult,
        *,
        reserve_space: bool = False,
        value_size: float = 0.70,
        unit_size: float = 0.65,
        tint: str = "white",
    ) -> None:
        spans = text_spans(result, value_size=value_size, unit_size=unit_size)
        if not spans:
            self.update("")
            if reserve_space:
                self.display = True
                self.styles.visibility = "hidden"
            else:
                self.display = False
            return
        self.display = True
        self.styles.visibility = "visible"
        self.update(render_spans(spans, tint=tint))
