"""Typed clinical records built from collaborator API payloads.

These are the only shapes the time-series engine accepts. Raw payloads are
converted by services.normalize; nothing downstream reads untyped dicts.
All records are frozen: the engine derives view-models and never mutates
its inputs.
"""

import math
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive timestamps are taken to be UTC so all records compare."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReadingKind(str, Enum):
    """When a glucose reading was taken relative to food intake."""

    FASTING = "fasting"
    POSTPRANDIAL = "postprandial"
    UNSPECIFIED = "unspecified"


class Reading(BaseModel):
    """A single capillary glucose reading (mg/dL)."""

    model_config = ConfigDict(frozen=True)

    id: str
    patient_id: str | None = None
    value: float
    kind: ReadingKind = ReadingKind.UNSPECIFIED
    taken_at: datetime
    note: str | None = None

    @field_validator("value")
    @classmethod
    def value_must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("reading value must be finite")
        return v

    @field_validator("taken_at")
    @classmethod
    def taken_at_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class LabResult(BaseModel):
    """A laboratory result recorded during a consultation."""

    model_config = ConfigDict(frozen=True)

    id: str
    consultation_id: str
    test_name: str
    numeric_value: float | None = None
    text_value: str | None = None
    unit: str | None = None
    reference_range: str | None = None
    observed_at: datetime | None = None

    @field_validator("observed_at")
    @classmethod
    def observed_at_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @property
    def display_value(self) -> str:
        """Numeric value when present, else the free-text result."""
        if self.numeric_value is not None:
            return f"{self.numeric_value:g}"
        return self.text_value or ""


class Medication(BaseModel):
    """One prescribed drug within a consultation's treatment plan."""

    model_config = ConfigDict(frozen=True)

    drug_name: str
    quantity: int | None = Field(default=None, gt=0)
    description: str | None = None
    duration_days: int | None = Field(default=None, gt=0)


class Consultation(BaseModel):
    """A clinical consultation as returned by the collaborator API."""

    model_config = ConfigDict(frozen=True)

    id: str
    patient_id: str | None = None
    created_at: datetime
    diagnosis: str | None = None
    indications: str | None = None
    medications: tuple[Medication, ...] = ()
    next_visit_date: date | None = None

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ConsultationLabs(BaseModel):
    """Lab results of one consultation, tagged with the consultation date.

    A consultation whose lab fetch failed is represented with ``labs=()``.
    """

    model_config = ConfigDict(frozen=True)

    consultation_id: str
    consultation_date: datetime | None
    labs: tuple[LabResult, ...] = ()

    @field_validator("consultation_date")
    @classmethod
    def consultation_date_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class Band(BaseModel):
    """Per-kind clinical threshold triple.

    below target_min -> low; [target_min, target_max] -> target;
    (target_max, elevated_max] -> elevated; above elevated_max -> high.
    """

    model_config = ConfigDict(frozen=True)

    target_min: float
    target_max: float
    elevated_max: float

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "Band":
        if not (self.target_min <= self.target_max <= self.elevated_max):
            raise ValueError("band thresholds must satisfy target_min <= target_max <= elevated_max")
        return self
