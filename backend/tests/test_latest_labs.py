"""Tests for latest-lab resolution across a consultation history."""

from datetime import datetime, timezone

from clinic_insights.schemas import ConsultationLabs, LabResult
from clinic_insights.services.latest_labs import DEFAULT_IMPORTANT_LABS, resolve_latest_labs


def _make_lab(consultation_id: str, name: str, value: float) -> LabResult:
    return LabResult(
        id=f"{consultation_id}-{name}",
        consultation_id=consultation_id,
        test_name=name,
        numeric_value=value,
    )


def _make_consultation_labs(consultation_id: str, when: datetime | None, *labs) -> ConsultationLabs:
    return ConsultationLabs(
        consultation_id=consultation_id,
        consultation_date=when,
        labs=tuple(_make_lab(consultation_id, name, value) for name, value in labs),
    )


MARCH = datetime(2024, 3, 1, tzinfo=timezone.utc)
JANUARY = datetime(2024, 1, 10, tzinfo=timezone.utc)


class TestResolveLatestLabs:
    def test_newest_consultation_wins(self):
        history = [
            _make_consultation_labs("old", JANUARY, ("HbA1c", 8.0), ("Creatinina", 1.0)),
            _make_consultation_labs("new", MARCH, ("HbA1c", 7.1)),
        ]
        latest = resolve_latest_labs(history)
        by_name = {item.lab.test_name: item for item in latest}
        assert by_name["HbA1c"].lab.numeric_value == 7.1
        assert by_name["HbA1c"].consultation_id == "new"
        assert by_name["HbA1c"].consultation_date == MARCH
        # Older consultation still supplies tests the newer one lacks
        assert by_name["Creatinina"].consultation_id == "old"

    def test_output_follows_important_order(self):
        history = [
            _make_consultation_labs("c1", MARCH, ("UACR", 12), ("Creatinina", 0.9), ("HbA1c", 6.8)),
        ]
        latest = resolve_latest_labs(history)
        assert [item.lab.test_name for item in latest] == ["HbA1c", "Creatinina", "UACR"]

    def test_unlisted_tests_are_omitted(self):
        history = [_make_consultation_labs("c1", MARCH, ("Ferritina", 50))]
        assert resolve_latest_labs(history) == []

    def test_custom_important_names(self):
        history = [_make_consultation_labs("c1", MARCH, ("Ferritina", 50), ("HbA1c", 7))]
        latest = resolve_latest_labs(history, ["Ferritina"])
        assert [item.lab.test_name for item in latest] == ["Ferritina"]

    def test_failed_fetch_contributes_nothing(self):
        """A newer consultation with no labs must not hide older results."""
        history = [
            _make_consultation_labs("old", JANUARY, ("HbA1c", 8.0)),
            ConsultationLabs(consultation_id="failed", consultation_date=MARCH),
        ]
        latest = resolve_latest_labs(history)
        assert latest[0].consultation_id == "old"

    def test_undated_consultation_sorts_last(self):
        history = [
            _make_consultation_labs("undated", None, ("HbA1c", 9.0)),
            _make_consultation_labs("dated", JANUARY, ("HbA1c", 8.0)),
        ]
        assert resolve_latest_labs(history)[0].consultation_id == "dated"

    def test_interpretation_attached(self):
        history = [_make_consultation_labs("c1", MARCH, ("HbA1c", 7.4), ("TFG", 90))]
        latest = {item.lab.test_name: item for item in resolve_latest_labs(history)}
        assert latest["HbA1c"].interpretation == "H"
        assert latest["TFG"].interpretation == "N"

    def test_empty_history(self):
        assert resolve_latest_labs([]) == []
        assert DEFAULT_IMPORTANT_LABS[0] == "HbA1c"

    def test_naive_consultation_date_read_as_utc(self):
        naive = _make_consultation_labs("naive", datetime(2024, 3, 1), ("HbA1c", 7.0))
        assert naive.consultation_date.tzinfo == timezone.utc
        history = [
            _make_consultation_labs("undated", None, ("HbA1c", 9.0)),
            naive,
            _make_consultation_labs("aware", JANUARY, ("HbA1c", 8.0)),
        ]
        assert resolve_latest_labs(history)[0].consultation_id == "naive"

    def test_panel_attached(self):
        history = [_make_consultation_labs("c1", MARCH, ("HbA1c", 7.4), ("Creatinina", 1.0))]
        latest = {item.lab.test_name: item for item in resolve_latest_labs(history)}
        assert latest["HbA1c"].panel == "Diabetes"
        assert latest["Creatinina"].panel == "Renal"
