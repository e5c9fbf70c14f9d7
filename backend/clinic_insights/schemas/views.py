"""View-model schemas produced by the time-series engine.

Everything here is transient: built for one display update and serialized
to the rendering surface. Geometry is plain coordinates, never a drawing
call.
"""

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from clinic_insights.schemas.records import Band, Consultation, LabResult, Reading


class PointStatus(str, Enum):
    """Classification of the most recent reading against global thresholds."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class AdherenceStatus(str, Enum):
    """Classification of the in-target ratio over a filtered series."""

    OK = "ok"
    WARN = "warn"
    HIGH = "high"
    NO_DATA = "no_data"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class Zone(str, Enum):
    """Band zone of a single value."""

    LOW = "low"
    TARGET = "target"
    ELEVATED = "elevated"
    HIGH = "high"


class VisitStatus(str, Enum):
    NEUTRAL = "neutral"
    OK = "ok"
    WARN = "warn"
    OVERDUE = "overdue"


# =============================================================================
# Classification results
# =============================================================================


class AdherenceResult(BaseModel):
    """In-target ratio of a series. ratio is None when there is no data."""

    status: AdherenceStatus
    ratio: float | None = None
    in_target: int = 0
    total: int = 0


# =============================================================================
# Chart geometry
# =============================================================================


class Padding(BaseModel):
    top: float = Field(default=18, ge=0)
    right: float = Field(default=20, ge=0)
    bottom: float = Field(default=58, ge=0)
    left: float = Field(default=52, ge=0)


class Canvas(BaseModel):
    """Drawing surface dimensions, in the renderer's units."""

    width: float = Field(default=720, gt=0)
    height: float = Field(default=280, gt=0)
    padding: Padding = Field(default_factory=Padding)

    @property
    def plot_width(self) -> float:
        return self.width - self.padding.left - self.padding.right

    @property
    def plot_height(self) -> float:
        return self.height - self.padding.top - self.padding.bottom


class SeriesPoint(BaseModel):
    """Input point for the geometry builder, in chronological order."""

    value: float
    label: str


class PathCommand(BaseModel):
    op: Literal["M", "L"]
    x: float
    y: float


class ChartPoint(BaseModel):
    x: float
    y: float
    value: float
    label: str
    zone: Zone


class BandRect(BaseModel):
    """Background rectangle for one band zone."""

    zone: Zone
    x: float
    y: float
    width: float
    height: float


class AxisTick(BaseModel):
    value: int
    y: float


class ChartGeometry(BaseModel):
    """Plot-ready coordinates for a single series."""

    chart_min: float
    chart_max: float
    path: list[PathCommand]
    svg_path: str
    points: list[ChartPoint]
    bands: list[BandRect]
    y_ticks: list[AxisTick]
    x_labels: list[str]
    canvas: Canvas


# =============================================================================
# Glucose view
# =============================================================================


class ReadingView(BaseModel):
    """A reading annotated with its trend versus the previous reading."""

    reading: Reading
    zone: Zone
    trend: Trend | None = None


class GlucoseOverview(BaseModel):
    window_days: int | None
    kind: str | None = None
    band: Band
    readings: list[ReadingView] = Field(default_factory=list)
    latest_status: PointStatus | None = None
    adherence: AdherenceResult
    chart: ChartGeometry | None = None
    message: str | None = None


# =============================================================================
# HbA1c view
# =============================================================================


class Hba1cEntry(BaseModel):
    value: float
    date: datetime
    consultation_id: str


class Hba1cOverview(BaseModel):
    time_range: str
    entries: list[Hba1cEntry] = Field(default_factory=list)
    latest: Hba1cEntry | None = None
    latest_zone: Zone | None = None
    chart: ChartGeometry | None = None
    message: str | None = None


# =============================================================================
# Current-state summary
# =============================================================================


class LatestLab(BaseModel):
    """Most recent result for a named lab test."""

    lab: LabResult
    consultation_id: str
    consultation_date: datetime | None
    interpretation: Literal["N", "H", "L"] | None = None
    panel: str | None = None


class MedicationRow(BaseModel):
    drug_name: str
    quantity: str
    duration: str | None = None
    description: str | None = None


class TreatmentSummary(BaseModel):
    consultation: Consultation
    medications: list[MedicationRow] = Field(default_factory=list)


class VisitAdvice(BaseModel):
    status: VisitStatus
    days_delta: int | None = None
    overdue_days: int | None = None
    next_visit_date: date | None = None
    message: str


class PatientSummary(BaseModel):
    current_treatment: TreatmentSummary | None = None
    latest_labs: list[LatestLab] = Field(default_factory=list)
    visit: VisitAdvice
    messages: list[str] = Field(default_factory=list)
