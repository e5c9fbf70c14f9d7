"""HbA1c history extraction from consultation lab panels."""

from collections.abc import Sequence

from clinic_insights.schemas.records import ConsultationLabs
from clinic_insights.schemas.views import Hba1cEntry
from clinic_insights.services.bands import is_hba1c_name
from clinic_insights.services.timeseries import order_desc

DEFAULT_MAX_CONSULTATIONS = 12


def collect_hba1c_series(
    consultations_with_labs: Sequence[ConsultationLabs],
    max_consultations: int = DEFAULT_MAX_CONSULTATIONS,
) -> list[Hba1cEntry]:
    """Extract one HbA1c value per consultation, oldest first.

    Only the max_consultations most recent consultations are considered.
    Within a consultation the first HbA1c result with a numeric value
    counts; entries are dated by the consultation.
    """
    dated = [c for c in consultations_with_labs if c.consultation_date is not None]
    recent = sorted(dated, key=lambda c: c.consultation_date, reverse=True)[:max_consultations]

    entries: list[Hba1cEntry] = []
    for consultation in recent:
        match = next(
            (
                lab for lab in consultation.labs
                if is_hba1c_name(lab.test_name) and lab.numeric_value is not None
            ),
            None,
        )
        if match is not None:
            entries.append(Hba1cEntry(
                value=match.numeric_value,
                date=consultation.consultation_date,
                consultation_id=consultation.consultation_id,
            ))

    return list(reversed(order_desc(entries)))
