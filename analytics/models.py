# practice_analytics_root/analytics/models.py
# IMMUTABLE RESULT TYPES

"""
Value types produced by the analytics engine.

Everything here is frozen: a result belongs to the request that built it and
is discarded after rendering. Numeric fields hold raw values; formatting is
left to presentation code via `FormattingConfig`.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from config import FormattingConfig, settings
from data_processing import DateRange, TrendPoint


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int
    percentage: float = 0.0


@dataclass(frozen=True)
class RevenueByType:
    type: str
    revenue: float
    percentage: float = 0.0


@dataclass(frozen=True)
class PeriodComparison:
    """One practice metric for the current month so far against the whole previous month."""
    current: Union[int, float]
    previous: Union[int, float]
    change_pct: int = 0


@dataclass(frozen=True)
class ReportResult:
    """Practice report for one date range: patients, appointments, revenue and prescriptions."""
    date_range: DateRange
    formatting: FormattingConfig

    total_patients: int = 0
    new_patients_in_range: int = 0
    patients_by_age: Tuple[CategoryCount, ...] = ()
    patients_by_gender: Tuple[CategoryCount, ...] = ()

    total_appointments: int = 0
    appointments_in_range: int = 0
    appointments_by_type: Tuple[CategoryCount, ...] = ()
    appointments_by_status: Tuple[CategoryCount, ...] = ()

    total_revenue: float = 0.0
    revenue_in_range: float = 0.0
    revenue_by_type: Tuple[RevenueByType, ...] = ()

    total_prescriptions: int = 0
    prescriptions_in_range: int = 0
    top_medications: Tuple[CategoryCount, ...] = ()

    daily_appointments: Tuple[TrendPoint, ...] = ()
    weekly_revenue: Tuple[TrendPoint, ...] = ()

    month_over_month: Dict[str, PeriodComparison] = dataclasses.field(default_factory=dict)

    missing_sources: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.missing_sources or self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return _as_plain_dict(self)


@dataclass(frozen=True)
class SubscriptionAnalyticsResult:
    """Super-admin view over organizations and their subscriptions."""
    date_range: DateRange
    now: datetime
    formatting: FormattingConfig

    total_subscribers: int = 0
    new_subscribers: int = 0
    subscriber_growth_pct: float = 0.0
    churn_pct: float = 0.0

    active_organizations: int = 0
    active_share_pct: float = 0.0

    subscription_lifecycle: Tuple[CategoryCount, ...] = ()
    classified_status: Tuple[CategoryCount, ...] = ()

    total_revenue: float = 0.0
    monthly_revenue: float = 0.0
    annual_recurring_revenue: float = 0.0
    trial_value: float = 0.0
    average_revenue_per_user: float = 0.0
    revenue_growth_pct: float = 0.0

    total_trials: int = 0
    converted_trials: int = 0
    conversion_rate_pct: float = 0.0

    plan_distribution: Tuple[CategoryCount, ...] = ()

    missing_sources: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.missing_sources or self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return _as_plain_dict(self)


def _as_plain_dict(result: Any) -> Dict[str, Any]:
    data = {}
    for f in dataclasses.fields(result):
        value = getattr(result, f.name)
        if isinstance(value, (DateRange, FormattingConfig)):
            data[f.name] = value.model_dump()
        elif isinstance(value, tuple):
            data[f.name] = [dataclasses.asdict(v) if dataclasses.is_dataclass(v) else v for v in value]
        elif isinstance(value, dict):
            data[f.name] = {k: dataclasses.asdict(v) if dataclasses.is_dataclass(v) else v for k, v in value.items()}
        else:
            data[f.name] = value
    return data


# --- Display Helpers ---

def format_currency(amount: Union[int, float], formatting: Optional[FormattingConfig] = None) -> str:
    formatting = formatting or settings.FORMATTING
    sign = "-" if amount < 0 else ""
    return f"{sign}{formatting.currency_symbol}{abs(amount):,.{formatting.currency_decimals}f}"


def format_percentage(value: Union[int, float], formatting: Optional[FormattingConfig] = None) -> str:
    formatting = formatting or settings.FORMATTING
    return f"{value:.{formatting.percentage_decimals}f}%"
