# practice_analytics_root/analytics/growth.py
# GROWTH, CHURN, REVENUE & CONVERSION METRICS

"""
Derived percentage metrics for the subscription analytics view, plus the
practice's month-over-month headline metrics.

The revenue-growth and conversion formulas reproduce the production
definitions, including their known blind spots: a previous month with no
revenue reports 0% growth, and trials that lapsed without converting are not
part of the conversion denominator. See DESIGN.md before changing either.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from data_processing import convert_to_numeric, resolve_record_dates, safe_percentage
from .aggregators import realized_amounts
from .models import PeriodComparison
from .subscription_status import SubscriptionState

logger = logging.getLogger(__name__)


def subscriber_growth_pct(total: int, new: int) -> float:
    """New subscribers relative to those who existed before the window."""
    return safe_percentage(new, total - new)


def churn_pct(cancelled: int, total: int) -> float:
    return safe_percentage(cancelled, total)


def previous_month(year: int, month: int) -> Tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def _month_sum(df: pd.DataFrame, year: int, month: int) -> float:
    paid_on = df['last_payment_date']
    in_month = (paid_on.dt.year == year) & (paid_on.dt.month == month)
    return float(df.loc[in_month, 'amount'].sum())


def revenue_growth_pct(subscriptions_df: pd.DataFrame, now: datetime) -> float:
    """
    Current calendar month against the previous one, by `last_payment_date`.
    A previous month of 0 yields 0 rather than an unbounded swing.
    """
    if subscriptions_df.empty:
        return 0.0
    current = _month_sum(subscriptions_df, now.year, now.month)
    prior = _month_sum(subscriptions_df, *previous_month(now.year, now.month))
    return safe_percentage(current - prior, prior)


def calculate_revenue_metrics(subscriptions_df: pd.DataFrame, now: datetime) -> Dict[str, Any]:
    """
    Subscription revenue figures. Trialing subscriptions never count as revenue;
    their amounts are reported separately as `trial_value`.
    """
    if subscriptions_df.empty:
        return {'total': 0.0, 'monthly': 0.0, 'arr': 0.0, 'trial_value': 0.0, 'growth_pct': 0.0}

    status = subscriptions_df['status']
    amounts = subscriptions_df['amount']
    is_active = status == SubscriptionState.ACTIVE.value
    is_current = is_active & (subscriptions_df['end_date'] > pd.Timestamp(now))
    monthly = float(amounts[is_current].sum())

    return {
        'total': float(amounts[is_active].sum()),
        'monthly': monthly,
        'arr': monthly * 12,
        'trial_value': float(amounts[status == SubscriptionState.TRIALING.value].sum()),
        'growth_pct': revenue_growth_pct(subscriptions_df, now),
    }


def calculate_conversion_metrics(subscriptions_df: pd.DataFrame, now: datetime) -> Dict[str, Any]:
    """
    Trial conversion: active subscriptions whose trial has ended, against the
    currently trialing ones. The rate is 0 while nobody is trialing.
    """
    if subscriptions_df.empty:
        return {'total_trials': 0, 'converted': 0, 'rate_pct': 0.0}

    status = subscriptions_df['status']
    total_trials = int((status == SubscriptionState.TRIALING.value).sum())
    converted = int(((status == SubscriptionState.ACTIVE.value) & (subscriptions_df['trial_end_date'] < pd.Timestamp(now))).sum())
    rate = safe_percentage(converted, total_trials + converted) if total_trials > 0 else 0.0

    return {'total_trials': total_trials, 'converted': converted, 'rate_pct': rate}


# --- Practice Month-over-Month Metrics ---

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def change_pct(current: float, previous: float) -> int:
    """Whole-number percent change against the previous period; 0 when the previous period is 0."""
    return _round_half_up(safe_percentage(current - previous, previous))


def _in_month(days: pd.Series, year: int, month: int, until: Optional[datetime] = None) -> pd.Series:
    mask = (days.dt.year == year) & (days.dt.month == month)
    if until is not None:
        mask &= days <= pd.Timestamp(until)
    return mask.fillna(False).astype(bool)


def _month_masks(df: pd.DataFrame, fields: Sequence[str], now: datetime) -> Tuple[pd.Series, pd.Series]:
    """Rows dated (by any of `fields`) in the current month up to `now`, and in the previous month."""
    current = pd.Series(False, index=df.index, dtype=bool)
    previous = pd.Series(False, index=df.index, dtype=bool)
    prior_year, prior_month = previous_month(now.year, now.month)
    for field in fields:
        days = resolve_record_dates(df, [field])
        current |= _in_month(days, now.year, now.month, until=now)
        previous |= _in_month(days, prior_year, prior_month)
    return current, previous


def appointment_wait_minutes(df: pd.DataFrame) -> pd.Series:
    """
    Wait per appointment in minutes: the recorded `waitTime` when non-zero,
    else `actualStartTime - scheduledTime` rounded and floored at 0, else 0.
    """
    recorded = convert_to_numeric(df['waitTime']) if 'waitTime' in df.columns else pd.Series(np.nan, index=df.index)
    started = resolve_record_dates(df, ['actualStartTime'])
    scheduled = resolve_record_dates(df, ['scheduledTime'])
    derived = np.floor((started - scheduled).dt.total_seconds() / 60 + 0.5).clip(lower=0)
    waits = recorded.where(recorded.notna() & (recorded != 0), derived)
    return waits.fillna(0.0).astype(float)


def _average_wait(waits: pd.Series) -> int:
    return _round_half_up(waits.sum() / len(waits)) if len(waits) else 0


def practice_month_over_month(
    appointments_df: pd.DataFrame,
    payments_df: pd.DataFrame,
    prescriptions_df: pd.DataFrame,
    now: datetime
) -> Dict[str, PeriodComparison]:
    """
    Practice headline metrics for the current month so far against the whole
    previous calendar month: visits, paid revenue, average wait, prescriptions
    and referrals.

    Payments count when either `date` or `createdAt` falls in the month.
    Prescriptions are dated by `createdAt` only.
    """
    metrics: Dict[str, PeriodComparison] = {}

    if appointments_df.empty:
        visits = (0, 0)
        referrals = (0, 0)
        waits = (0, 0)
    else:
        current, previous = _month_masks(appointments_df, ['date'], now)
        visits = (int(current.sum()), int(previous.sum()))
        has_referral = appointments_df['referral'].notna() if 'referral' in appointments_df.columns else pd.Series(False, index=appointments_df.index)
        referrals = (int((current & has_referral).sum()), int((previous & has_referral).sum()))
        wait_minutes = appointment_wait_minutes(appointments_df)
        waits = (_average_wait(wait_minutes[current]), _average_wait(wait_minutes[previous]))

    if payments_df.empty:
        revenue = (0.0, 0.0)
    else:
        current, previous = _month_masks(payments_df, ['date', 'createdAt'], now)
        paid_amounts = realized_amounts(payments_df)
        revenue = (float(paid_amounts[current].sum()), float(paid_amounts[previous].sum()))

    if prescriptions_df.empty:
        prescriptions = (0, 0)
    else:
        current, previous = _month_masks(prescriptions_df, ['createdAt'], now)
        prescriptions = (int(current.sum()), int(previous.sum()))

    for name, (cur, prev) in (('visits', visits), ('revenue', revenue), ('avg_wait_minutes', waits),
                              ('prescriptions', prescriptions), ('referrals', referrals)):
        metrics[name] = PeriodComparison(current=cur, previous=prev, change_pct=change_pct(cur, prev))

    logger.debug(f"Month-over-month metrics at {now:%Y-%m-%d}: {metrics}")
    return metrics
