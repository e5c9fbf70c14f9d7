"""Application configuration using pydantic-settings."""

import warnings
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Sentinel value that indicates the collaborator API was never configured
_UNCONFIGURED_API_URL = "http://CHANGE_ME"

# Find .env file: check backend dir first, then project root
_BACKEND_DIR = Path(__file__).parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _BACKEND_DIR / ".env" if (_BACKEND_DIR / ".env").exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Clinical thresholds have canonical defaults; override them only after
    confirming the values with the clinic.
    """

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Collaborator clinic API
    clinic_api_url: str = _UNCONFIGURED_API_URL
    clinic_api_timeout: float = Field(default=10.0, gt=0)

    # Glucose point classification (mg/dL)
    glucose_hypo_threshold: float = 70.0
    glucose_hyper_threshold: float = 180.0
    trend_epsilon: float = Field(default=0.0, ge=0)

    # Adherence ratio cutoffs
    adherence_ok_ratio: float = Field(default=0.7, gt=0, le=1)
    adherence_warn_ratio: float = Field(default=0.4, gt=0, le=1)

    # Next-visit advisory
    visit_warn_days: int = Field(default=30, ge=0)

    # Search-as-you-type patient lookup
    lookup_debounce_seconds: float = Field(default=0.4, ge=0)

    # Series windows
    default_glucose_window_days: int | None = 30
    hba1c_max_consultations: int = Field(default=12, gt=0)

    # Labs surfaced on the patient summary, in display order
    important_labs: list[str] = ["HbA1c", "Glucosa ayunas", "Creatinina", "TFG", "UACR"]

    # Where clients are sent after the session is cleared
    login_path: str = "/login"

    # Application
    cors_origins: str = "http://localhost:3000"
    debug: bool = False

    def model_post_init(self, __context) -> None:
        """Warn about unconfigured collaborator URL and inverted cutoffs."""
        if self.clinic_api_url == _UNCONFIGURED_API_URL or "CHANGE_ME" in self.clinic_api_url:
            warnings.warn(
                "CLINIC_API_URL not configured! Set CLINIC_API_URL environment variable.",
                UserWarning,
                stacklevel=2,
            )
        if self.adherence_warn_ratio > self.adherence_ok_ratio:
            raise ValueError("adherence_warn_ratio must not exceed adherence_ok_ratio")
        if self.glucose_hypo_threshold >= self.glucose_hyper_threshold:
            raise ValueError("glucose_hypo_threshold must be below glucose_hyper_threshold")


settings = Settings()
