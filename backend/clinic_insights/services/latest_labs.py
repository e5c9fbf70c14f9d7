"""Latest lab result per named test across a consultation history."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from clinic_insights.schemas.records import ConsultationLabs
from clinic_insights.schemas.views import LatestLab
from clinic_insights.services.bands import get_panel, interpret_lab

logger = logging.getLogger(__name__)

DEFAULT_IMPORTANT_LABS: tuple[str, ...] = ("HbA1c", "Glucosa ayunas", "Creatinina", "TFG", "UACR")

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def resolve_latest_labs(
    consultations_with_labs: Sequence[ConsultationLabs],
    important_names: Sequence[str] = DEFAULT_IMPORTANT_LABS,
) -> list[LatestLab]:
    """Reduce many consultations' labs to the most recent result per test.

    Consultations are walked newest first; the first result seen for a test
    name wins and is never overwritten by an older consultation. The output
    follows the order of important_names, omitting names with no result.
    Consultations whose lab fetch failed arrive with no labs and simply
    contribute nothing.
    """
    ordered = sorted(
        consultations_with_labs,
        key=lambda c: c.consultation_date or _UNDATED,
        reverse=True,
    )

    latest: dict[str, LatestLab] = {}
    for consultation in ordered:
        for lab in consultation.labs:
            if lab.test_name in latest:
                continue
            latest[lab.test_name] = LatestLab(
                lab=lab,
                consultation_id=consultation.consultation_id,
                consultation_date=consultation.consultation_date,
                interpretation=interpret_lab(lab),
                panel=get_panel(lab.test_name),
            )

    resolved = [latest[name] for name in important_names if name in latest]
    logger.debug(
        "Resolved %d/%d important labs from %d consultations",
        len(resolved),
        len(important_names),
        len(ordered),
    )
    return resolved
