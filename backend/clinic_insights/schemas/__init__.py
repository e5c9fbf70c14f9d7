"""Pydantic schemas."""

from clinic_insights.schemas.records import (
    Band,
    Consultation,
    ConsultationLabs,
    LabResult,
    Medication,
    Reading,
    ReadingKind,
)
from clinic_insights.schemas.requests import GlucoseEntryCreate
from clinic_insights.schemas.views import (
    AdherenceResult,
    AdherenceStatus,
    AxisTick,
    BandRect,
    Canvas,
    ChartGeometry,
    ChartPoint,
    GlucoseOverview,
    Hba1cEntry,
    Hba1cOverview,
    LatestLab,
    MedicationRow,
    Padding,
    PathCommand,
    PatientSummary,
    PointStatus,
    ReadingView,
    SeriesPoint,
    TreatmentSummary,
    Trend,
    VisitAdvice,
    VisitStatus,
    Zone,
)

__all__ = [
    # Records
    "Band",
    "Consultation",
    "ConsultationLabs",
    "LabResult",
    "Medication",
    "Reading",
    "ReadingKind",
    # Requests
    "GlucoseEntryCreate",
    # Views
    "AdherenceResult",
    "AdherenceStatus",
    "AxisTick",
    "BandRect",
    "Canvas",
    "ChartGeometry",
    "ChartPoint",
    "GlucoseOverview",
    "Hba1cEntry",
    "Hba1cOverview",
    "LatestLab",
    "MedicationRow",
    "Padding",
    "PathCommand",
    "PatientSummary",
    "PointStatus",
    "ReadingView",
    "SeriesPoint",
    "TreatmentSummary",
    "Trend",
    "VisitAdvice",
    "VisitStatus",
    "Zone",
]
