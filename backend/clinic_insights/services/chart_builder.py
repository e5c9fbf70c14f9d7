"""Deterministic chart geometry builder.

Projects a filtered, chronological series into canvas coordinates: a
polyline, the background band rectangles, and y-axis ticks. Output is pure
geometry for the rendering surface; nothing here draws.

Builders return None when fewer than two valid points remain, which the
caller must render as an explicit "insufficient data" state.
"""

import logging
import math
from collections.abc import Sequence

from clinic_insights.schemas.records import Band, Reading, ReadingKind
from clinic_insights.schemas.views import (
    AxisTick,
    BandRect,
    Canvas,
    ChartGeometry,
    ChartPoint,
    Hba1cEntry,
    Padding,
    PathCommand,
    SeriesPoint,
    Zone,
)
from clinic_insights.services.bands import classify_zone
from clinic_insights.utils.dates import format_short_date

logger = logging.getLogger(__name__)

# Domain margins around the band so every zone stays visible
BELOW_TARGET_MARGIN = 10
ABOVE_ELEVATED_MARGIN = 20

# HbA1c axis spans at least 4%..10%
_HBA1C_BELOW_MARGIN = 0
_HBA1C_ABOVE_MARGIN = 2

TICK_COUNT = 5

GLUCOSE_CANVAS = Canvas(
    width=720, height=280, padding=Padding(top=18, right=20, bottom=58, left=52)
)
HBA1C_CANVAS = Canvas(
    width=720, height=260, padding=Padding(top=18, right=20, bottom=52, left=52)
)

# Short labels for the x axis
_KIND_LABELS: dict[ReadingKind, str] = {
    ReadingKind.FASTING: "Ayuno",
    ReadingKind.POSTPRANDIAL: "Post",
    ReadingKind.UNSPECIFIED: "Sin tipo",
}


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded up."""
    return math.floor(value + 0.5)


def _fmt(value: float) -> str:
    """Compact coordinate formatting for the SVG path string."""
    return f"{round(value, 2):g}"


def _valid_points(points: Sequence[SeriesPoint]) -> list[SeriesPoint]:
    """Drop points with non-finite values or blank labels."""
    return [
        p for p in points
        if isinstance(p.value, (int, float)) and math.isfinite(p.value) and p.label.strip()
    ]


def build_geometry(
    points: Sequence[SeriesPoint],
    band: Band,
    canvas: Canvas = GLUCOSE_CANVAS,
    *,
    below_margin: float = BELOW_TARGET_MARGIN,
    above_margin: float = ABOVE_ELEVATED_MARGIN,
) -> ChartGeometry | None:
    """Build plot geometry for a chronological series.

    Args:
        points: Chronological points (oldest first).
        band: Threshold triple used for the domain and background zones.
        canvas: Drawing surface dimensions and padding.
        below_margin: Domain extension below band.target_min.
        above_margin: Domain extension above band.elevated_max.

    Returns:
        ChartGeometry, or None if fewer than two valid points.
    """
    valid = _valid_points(points)
    if len(valid) < 2:
        return None

    values = [p.value for p in valid]
    chart_min = min(min(values), band.target_min - below_margin)
    chart_max = max(max(values), band.elevated_max + above_margin)
    value_range = max(chart_max - chart_min, 1)

    pad = canvas.padding
    plot_width = canvas.plot_width
    plot_height = canvas.plot_height
    baseline = canvas.height - pad.bottom
    x_step = plot_width / (len(valid) - 1)

    def value_to_y(value: float) -> float:
        normalized = (value - chart_min) / value_range
        return baseline - normalized * plot_height

    chart_points: list[ChartPoint] = []
    path: list[PathCommand] = []
    for index, point in enumerate(valid):
        x = pad.left + index * x_step
        y = value_to_y(point.value)
        path.append(PathCommand(op="M" if index == 0 else "L", x=x, y=y))
        chart_points.append(ChartPoint(
            x=x,
            y=y,
            value=point.value,
            label=point.label,
            zone=classify_zone(point.value, band),
        ))

    # Background zones, top edge at the higher value
    zone_edges = [
        (Zone.TARGET, band.target_min, band.target_max),
        (Zone.ELEVATED, band.target_max, band.elevated_max),
        (Zone.HIGH, band.elevated_max, chart_max),
    ]
    bands: list[BandRect] = []
    for zone, low, high in zone_edges:
        top = value_to_y(high)
        bands.append(BandRect(
            zone=zone,
            x=pad.left,
            y=top,
            width=plot_width,
            height=max(value_to_y(low) - top, 0.0),
        ))

    y_ticks: list[AxisTick] = []
    for index in range(TICK_COUNT):
        tick = _round_half_up(chart_min + value_range * index / (TICK_COUNT - 1))
        y_ticks.append(AxisTick(value=tick, y=value_to_y(tick)))

    svg_path = " ".join(f"{cmd.op} {_fmt(cmd.x)} {_fmt(cmd.y)}" for cmd in path)

    return ChartGeometry(
        chart_min=chart_min,
        chart_max=chart_max,
        path=path,
        svg_path=svg_path,
        points=chart_points,
        bands=bands,
        y_ticks=y_ticks,
        x_labels=[p.label for p in chart_points],
        canvas=canvas,
    )


def build_glucose_chart(
    readings: Sequence[Reading],
    band: Band,
    canvas: Canvas = GLUCOSE_CANVAS,
) -> ChartGeometry | None:
    """Chart a newest-first reading list, labelled 'DD/MM - Kind'."""
    points = [
        SeriesPoint(
            value=reading.value,
            label=f"{format_short_date(reading.taken_at)} - {_KIND_LABELS[reading.kind]}",
        )
        for reading in reversed(readings)
    ]
    return build_geometry(points, band, canvas)


def build_hba1c_chart(
    entries: Sequence[Hba1cEntry],
    band: Band,
    canvas: Canvas = HBA1C_CANVAS,
) -> ChartGeometry | None:
    """Chart a chronological HbA1c series, labelled 'DD/MM'."""
    points = [
        SeriesPoint(value=entry.value, label=format_short_date(entry.date))
        for entry in entries
    ]
    geometry = build_geometry(
        points,
        band,
        canvas,
        below_margin=_HBA1C_BELOW_MARGIN,
        above_margin=_HBA1C_ABOVE_MARGIN,
    )
    if geometry is None and entries:
        logger.debug("HbA1c chart skipped: %d entry(ies) is not enough to plot", len(entries))
    return geometry
