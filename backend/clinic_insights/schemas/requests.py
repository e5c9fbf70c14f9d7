"""Request bodies accepted by the API."""

from datetime import datetime

from pydantic import BaseModel, Field

from clinic_insights.schemas.records import ReadingKind


class GlucoseEntryCreate(BaseModel):
    """Manual glucose entry. Range checks happen in the API client."""

    value: float
    kind: ReadingKind = ReadingKind.UNSPECIFIED
    observed_at: datetime | None = None
    note: str | None = Field(default=None, max_length=500)
