# practice_analytics_root/config/settings.py
# CENTRALIZED CONFIGURATION HUB

import logging
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

settings_logger = logging.getLogger(__name__)

# --- Nested Models for Structured Configuration ---
class AgeBand(BaseModel):
    label: str
    min_age: float
    max_age: float = float("inf")  # exclusive

class FormattingConfig(BaseModel):
    """Display conventions handed explicitly to the report assemblers."""
    model_config = ConfigDict(frozen=True)

    currency_symbol: str = "$"
    currency_code: str = "USD"
    currency_decimals: int = 2
    percentage_decimals: int = 1
    day_label_format: str = "%b %d"
    week_label_separator: str = " - "

class AnalyticsConfig(BaseModel):
    daily_bucket_cap: int = 30; weekly_bucket_cap: int = 8; week_length_days: int = 7
    top_medications_limit: int = 10; expiring_soon_window_days: int = 7
    default_range_days: int = 30
    # Verbatim from the production payment records; matching is case-sensitive.
    paid_statuses: List[str] = ["Paid", "Completed", "paid"]
    plan_tiers: List[str] = ["basic", "professional", "enterprise"]
    range_presets: Dict[str, int] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}

# --- Main Settings Class ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='PRACTICE_ANALYTICS_', case_sensitive=False, env_file='.env', env_file_encoding='utf-8', extra='ignore', env_nested_delimiter='__')

    APP_NAME: str = "Practice Analytics Engine"; APP_VERSION: str = "1.0.0"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    DATE_FIELD_CANDIDATES: Dict[str, List[str]] = {
        "patients": ["registrationDate", "createdAt"],
        "appointments": ["date"],
        "prescriptions": ["date", "createdAt"],
        "payments": ["date", "createdAt"],
        "organizations": ["createdAt"],
    }
    AGE_BANDS: List[AgeBand] = [
        AgeBand(label="0-17", min_age=0, max_age=18),
        AgeBand(label="18-34", min_age=18, max_age=35),
        AgeBand(label="35-49", min_age=35, max_age=50),
        AgeBand(label="50-64", min_age=50, max_age=65),
        AgeBand(label="65+", min_age=65),
    ]
    UNKNOWN_LABEL: str = "Unknown"
    DEFAULT_APPOINTMENT_TYPE: str = "General"

    ANALYTICS: AnalyticsConfig = AnalyticsConfig()
    FORMATTING: FormattingConfig = Field(default_factory=FormattingConfig)

    @computed_field
    @property
    def PAID_STATUSES(self) -> frozenset: return frozenset(self.ANALYTICS.paid_statuses)

try:
    settings = Settings()
    settings_logger.info(f"Analytics settings loaded successfully. App: {settings.APP_NAME} v{settings.APP_VERSION}")
except Exception as e:
    settings_logger.critical(f"FATAL: Could not initialize Pydantic settings. Error: {e}", exc_info=True)
    raise
