"""Current treatment plan resolution."""

from collections.abc import Sequence

from clinic_insights.schemas.records import Consultation
from clinic_insights.schemas.views import MedicationRow, TreatmentSummary

_MISSING = "Sin dato"


def resolve_current_treatment(consultations: Sequence[Consultation]) -> Consultation | None:
    """Return the consultation with the latest created_at.

    Ties keep the first one seen. None for an empty history, which callers
    render as "no consultations" rather than an error.
    """
    current: Consultation | None = None
    for consultation in consultations:
        if current is None or consultation.created_at > current.created_at:
            current = consultation
    return current


def summarize_treatment(consultation: Consultation) -> TreatmentSummary:
    """Project a consultation's medications into display rows."""
    rows = [
        MedicationRow(
            drug_name=med.drug_name,
            quantity=str(med.quantity) if med.quantity is not None else _MISSING,
            duration=f"{med.duration_days} dias" if med.duration_days is not None else None,
            description=med.description,
        )
        for med in consultation.medications
    ]
    return TreatmentSummary(consultation=consultation, medications=rows)
