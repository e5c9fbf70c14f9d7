"""Tests for application settings."""

import pytest

from clinic_insights.config import Settings


class TestSettings:
    def test_canonical_defaults(self):
        s = Settings(clinic_api_url="http://clinic.test")
        assert (s.glucose_hypo_threshold, s.glucose_hyper_threshold) == (70.0, 180.0)
        assert (s.adherence_ok_ratio, s.adherence_warn_ratio) == (0.7, 0.4)
        assert s.visit_warn_days == 30
        assert s.hba1c_max_consultations == 12
        assert s.important_labs[0] == "HbA1c"

    def test_unconfigured_api_url_warns(self):
        with pytest.warns(UserWarning, match="CLINIC_API_URL"):
            Settings(clinic_api_url="http://CHANGE_ME")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VISIT_WARN_DAYS", "14")
        monkeypatch.setenv("CLINIC_API_URL", "http://clinic.test")
        assert Settings().visit_warn_days == 14

    def test_inverted_adherence_cutoffs_rejected(self):
        with pytest.raises(ValueError):
            Settings(clinic_api_url="http://clinic.test", adherence_ok_ratio=0.4, adherence_warn_ratio=0.7)

    def test_inverted_glucose_thresholds_rejected(self):
        with pytest.raises(ValueError):
            Settings(clinic_api_url="http://clinic.test", glucose_hypo_threshold=200)
