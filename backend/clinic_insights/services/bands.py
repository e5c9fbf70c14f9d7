"""Clinical bands, reference ranges, and value classification.

Provides the canonical per-kind glucose bands, the HbA1c band, a small
reference-range table for the labs tracked on the patient summary, and the
pure classification functions built on them:

- point classification of the latest reading (low / normal / high)
- zone classification of any value against a Band
- adherence classification of a whole series (ok / warn / high / no_data)
- HL7-style interpretation (N / H / L) of a lab result

Reference values are demo-grade. Not for clinical use.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Literal

from clinic_insights.schemas.records import Band, LabResult, ReadingKind
from clinic_insights.schemas.views import AdherenceResult, AdherenceStatus, PointStatus, Zone

LabInterpretation = Literal["N", "H", "L"]

DEFAULT_HYPO_THRESHOLD = 70.0
DEFAULT_HYPER_THRESHOLD = 180.0
ADHERENCE_OK_RATIO = 0.7
ADHERENCE_WARN_RATIO = 0.4

# ---------------------------------------------------------------------------
# Glucose bands (mg/dL)
# ---------------------------------------------------------------------------

GLUCOSE_BANDS: dict[ReadingKind, Band] = {
    ReadingKind.FASTING: Band(target_min=70, target_max=130, elevated_max=180),
    ReadingKind.POSTPRANDIAL: Band(target_min=70, target_max=180, elevated_max=240),
    ReadingKind.UNSPECIFIED: Band(target_min=70, target_max=180, elevated_max=240),
}

# HbA1c ADA targets (%)
HBA1C_BAND = Band(target_min=4.0, target_max=7.0, elevated_max=8.0)

# ---------------------------------------------------------------------------
# Reference range lookup table
#
# Structure:
#   normalized test name -> {
#       "panel": str,
#       "ranges": {"default": {low, high}},
#   }
#
# Keys are normalized with normalize_lab_name(). Boundary semantics are
# exclusive (value > high = H, value < low = L).
# ---------------------------------------------------------------------------

LAB_REFERENCE_RANGES: dict[str, dict] = {
    "hba1c": {  # Hemoglobin A1c [%]
        "panel": "Diabetes",
        "ranges": {"default": {"low": 4.0, "high": 5.6}},
    },
    "glucosa ayunas": {  # Fasting glucose [mg/dL]
        "panel": "Diabetes",
        "ranges": {"default": {"low": 70.0, "high": 100.0}},
    },
    "creatinina": {  # Creatinine [mg/dL]
        "panel": "Renal",
        "ranges": {"default": {"low": 0.6, "high": 1.2}},
    },
    "tfg": {  # eGFR [mL/min/1.73m2]
        "panel": "Renal",
        "ranges": {"default": {"low": 60.0, "high": 120.0}},
    },
    "uacr": {  # Urine albumin/creatinine ratio [mg/g]
        "panel": "Renal",
        "ranges": {"default": {"low": 0.0, "high": 30.0}},
    },
}

# Alternate spellings seen in consultation records
_LAB_ALIASES: dict[str, str] = {
    "hemoglobina glicosilada": "hba1c",
    "glucosa en ayunas": "glucosa ayunas",
    "egfr": "tfg",
}

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_lab_name(value: str | None) -> str:
    """Lowercase and collapse whitespace in a lab test name."""
    return _WHITESPACE_RE.sub(" ", str(value or "")).strip().lower()


def canonical_lab_key(value: str | None) -> str:
    """Normalized lab name with known aliases folded in."""
    key = normalize_lab_name(value)
    return _LAB_ALIASES.get(key, key)


def is_hba1c_name(value: str | None) -> bool:
    return canonical_lab_key(value) == "hba1c"


def get_band(kind: ReadingKind | None) -> Band:
    """Return the glucose band for a reading kind."""
    return GLUCOSE_BANDS.get(kind or ReadingKind.UNSPECIFIED, GLUCOSE_BANDS[ReadingKind.UNSPECIFIED])


def classify_point(
    value: float | None,
    hypo_threshold: float = DEFAULT_HYPO_THRESHOLD,
    hyper_threshold: float = DEFAULT_HYPER_THRESHOLD,
) -> PointStatus | None:
    """Classify a single reading against the global thresholds.

    value < hypo -> LOW, value >= hyper -> HIGH, otherwise NORMAL.
    Independent of reading kind. None for a non-finite value.
    """
    if value is None or not math.isfinite(value):
        return None
    if value < hypo_threshold:
        return PointStatus.LOW
    if value >= hyper_threshold:
        return PointStatus.HIGH
    return PointStatus.NORMAL


def classify_zone(value: float, band: Band) -> Zone:
    """Place a value in a band zone (target bounds inclusive)."""
    if value < band.target_min:
        return Zone.LOW
    if value <= band.target_max:
        return Zone.TARGET
    if value <= band.elevated_max:
        return Zone.ELEVATED
    return Zone.HIGH


def classify_adherence(
    values: Iterable[float | None],
    band: Band,
    ok_ratio: float = ADHERENCE_OK_RATIO,
    warn_ratio: float = ADHERENCE_WARN_RATIO,
) -> AdherenceResult:
    """Classify the fraction of a series inside [target_min, target_max].

    ratio >= ok_ratio -> OK, warn_ratio <= ratio < ok_ratio -> WARN,
    below warn_ratio -> HIGH. Non-finite values are ignored; a series
    with no finite values reports NO_DATA instead of dividing by zero.
    """
    finite = [v for v in values if v is not None and math.isfinite(v)]
    if not finite:
        return AdherenceResult(status=AdherenceStatus.NO_DATA)

    in_target = sum(1 for v in finite if band.target_min <= v <= band.target_max)
    total = len(finite)
    ratio = in_target / total

    if ratio >= ok_ratio:
        status = AdherenceStatus.OK
    elif ratio >= warn_ratio:
        status = AdherenceStatus.WARN
    else:
        status = AdherenceStatus.HIGH
    return AdherenceResult(status=status, ratio=ratio, in_target=in_target, total=total)


def get_reference_range(test_name: str) -> dict | None:
    """Return {low, high} for a tracked lab, or None if not in the table."""
    entry = LAB_REFERENCE_RANGES.get(canonical_lab_key(test_name))
    if entry is None:
        return None
    return entry["ranges"]["default"]


def get_panel(test_name: str) -> str | None:
    """Return the clinical panel name for a tracked lab, or None."""
    entry = LAB_REFERENCE_RANGES.get(canonical_lab_key(test_name))
    return entry["panel"] if entry else None


def compute_interpretation(value: float, reference_range: dict) -> LabInterpretation:
    """Compute an HL7 interpretation code (exclusive boundaries)."""
    if value < reference_range["low"]:
        return "L"
    if value > reference_range["high"]:
        return "H"
    return "N"


def interpret_lab(lab: LabResult) -> LabInterpretation | None:
    """Interpret a lab result against the reference table.

    Returns None for unknown tests and non-numeric results.
    """
    if lab.numeric_value is None:
        return None
    ref_range = get_reference_range(lab.test_name)
    if ref_range is None:
        return None
    return compute_interpretation(lab.numeric_value, ref_range)
