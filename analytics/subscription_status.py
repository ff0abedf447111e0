# practice_analytics_root/analytics/subscription_status.py
# SUBSCRIPTION SNAPSHOTS & STATUS CLASSIFICATION

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict

from config import settings
from data_processing import convert_to_numeric, first_present, is_missing, parse_date_or_null

logger = logging.getLogger(__name__)

_ONE_DAY_SECONDS = 24 * 60 * 60


# --- Enums and Snapshot Model ---
class SubscriptionState(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    OTHER = "other"


class ClassifiedStatus(str, Enum):
    ACTIVE = "Active"
    TRIAL = "Trial"
    EXPIRING_SOON = "ExpiringSoon"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"
    DEACTIVATED = "Deactivated"
    UNLIMITED = "Unlimited"


class SubscriptionSnapshot(BaseModel):
    """The subset of a subscription record the analytics engine reads."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    subscription_id: Optional[str] = None
    organization_id: Optional[str] = None
    status: SubscriptionState = SubscriptionState.OTHER
    end_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    amount: float = 0.0
    plan_name: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping) -> 'SubscriptionSnapshot':
        """Builds a snapshot leniently: bad dates become None, bad amounts 0, unknown statuses 'other'."""
        try:
            status = SubscriptionState(record.get('status'))
        except ValueError:
            status = SubscriptionState.OTHER

        plan = record.get('plan')
        plan_name = first_present(plan, ['name']) if isinstance(plan, Mapping) else None

        return cls(
            subscription_id=_reference_id(first_present(record, ['_id', 'id'])),
            organization_id=_reference_id(record.get('organization')),
            status=status,
            end_date=_to_datetime(record.get('endDate')),
            trial_end_date=_to_datetime(record.get('trialEndDate')),
            last_payment_date=_to_datetime(record.get('lastPaymentDate')),
            amount=float(convert_to_numeric(record.get('amount'), default_value=0.0)),
            plan_name=None if plan_name is None else str(plan_name),
        )


def _to_datetime(value: Any) -> Optional[datetime]:
    ts = parse_date_or_null(value)
    return None if ts is None else ts.to_pydatetime()


def _reference_id(value: Any) -> Optional[str]:
    """Normalizes a reference that may be a bare id or a populated document."""
    if isinstance(value, Mapping):
        value = first_present(value, ['_id', 'id'])
    if is_missing(value) or isinstance(value, (bool, np.bool_, list, dict)):
        return None
    # A frame column with any gap holds integer ids as floats (10 -> 10.0).
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, np.integer):
        return str(int(value))
    return str(value)


def snapshots_from_records(records: Optional[Iterable[Mapping]]) -> List[SubscriptionSnapshot]:
    return [SubscriptionSnapshot.from_record(r) for r in (records or []) if isinstance(r, Mapping)]


# --- Classification ---

@dataclass(frozen=True)
class StatusClassification:
    status: ClassifiedStatus
    days_remaining: Optional[int] = None

    @property
    def label(self) -> str:
        if self.status == ClassifiedStatus.TRIAL and self.days_remaining is not None:
            return f"Trial ({self.days_remaining}d left)"
        if self.status == ClassifiedStatus.EXPIRING_SOON:
            return f"Expires in {self.days_remaining or 0}d"
        return self.status.value


def days_until(target: datetime, now: datetime) -> int:
    """Whole days from `now` to `target`, rounded up. Negative results are reported as 0."""
    days = math.ceil((target - now).total_seconds() / _ONE_DAY_SECONDS)
    if days < 0:
        logger.debug(f"Negative day count ({days}) between {now} and {target}; reporting 0.")
        return 0
    return days


def _is_deactivated(is_active: Any) -> bool:
    if isinstance(is_active, (bool, np.bool_)):
        return not is_active
    if isinstance(is_active, str):
        return is_active.strip().lower() == "false"
    return isinstance(is_active, (int, float)) and not is_missing(is_active) and is_active == 0


def classify_subscription_status(
    is_active: Any,
    subscription_type: Optional[str],
    subscription: Optional[SubscriptionSnapshot],
    now: datetime
) -> StatusClassification:
    """
    Maps an organization's flags and subscription into one display state.
    Rules are evaluated in order and the first match wins.
    """
    if _is_deactivated(is_active):
        return StatusClassification(ClassifiedStatus.DEACTIVATED)
    if subscription_type == "unlimited":
        return StatusClassification(ClassifiedStatus.UNLIMITED)
    # An active organization without a subscription record is treated as mid-trial.
    if subscription is None:
        return StatusClassification(ClassifiedStatus.TRIAL)

    if subscription.status == SubscriptionState.TRIALING:
        days = days_until(subscription.trial_end_date, now) if subscription.trial_end_date else 0
        return StatusClassification(ClassifiedStatus.TRIAL, days)
    if subscription.status == SubscriptionState.CANCELLED:
        return StatusClassification(ClassifiedStatus.CANCELLED)

    end_date = subscription.end_date
    if end_date is not None:
        if end_date < now:
            return StatusClassification(ClassifiedStatus.EXPIRED)
        if end_date < now + timedelta(days=settings.ANALYTICS.expiring_soon_window_days):
            return StatusClassification(ClassifiedStatus.EXPIRING_SOON, days_until(end_date, now))

    return StatusClassification(ClassifiedStatus.ACTIVE)


class SubscriptionIndex:
    """Looks up subscriptions by their own id or by the organization they belong to."""
    def __init__(self, snapshots: Iterable[SubscriptionSnapshot]):
        self.by_id: Dict[str, SubscriptionSnapshot] = {}
        self.by_organization: Dict[str, SubscriptionSnapshot] = {}
        for snapshot in snapshots:
            if snapshot.subscription_id:
                self.by_id[snapshot.subscription_id] = snapshot
            if snapshot.organization_id:
                self.by_organization.setdefault(snapshot.organization_id, snapshot)

    def resolve(self, organization: Mapping) -> Optional[SubscriptionSnapshot]:
        embedded = organization.get('subscription')
        if isinstance(embedded, Mapping):
            return SubscriptionSnapshot.from_record(embedded)
        reference = _reference_id(embedded)
        if reference is not None:
            return self.by_id.get(reference)
        org_id = _reference_id(first_present(organization, ['_id', 'id']))
        return self.by_organization.get(org_id) if org_id else None


def classify_organization(
    organization: Mapping,
    now: datetime,
    index: Optional[SubscriptionIndex] = None
) -> StatusClassification:
    subscription = (index or SubscriptionIndex([])).resolve(organization)
    return classify_subscription_status(
        organization.get('isActive'), organization.get('subscriptionType'), subscription, now
    )


# --- Lifecycle Breakdown ---

LIFECYCLE_KEYS = ("active", "trial", "expired", "cancelled", "expiring_soon")


def summarize_subscription_lifecycle(snapshots: Iterable[SubscriptionSnapshot], now: datetime) -> Dict[str, int]:
    """
    Tallies subscription records by lifecycle bucket. Active subscriptions that
    end within the expiry window count as both 'active' and 'expiring_soon'.
    """
    summary = {key: 0 for key in LIFECYCLE_KEYS}
    soon = now + timedelta(days=settings.ANALYTICS.expiring_soon_window_days)
    for sub in snapshots:
        ended = sub.end_date is not None and sub.end_date < now
        if sub.status == SubscriptionState.ACTIVE:
            if ended:
                summary['expired'] += 1
            else:
                summary['active'] += 1
                if sub.end_date is not None and sub.end_date < soon:
                    summary['expiring_soon'] += 1
        elif sub.status == SubscriptionState.TRIALING:
            summary['trial'] += 1
        elif sub.status == SubscriptionState.CANCELLED:
            summary['cancelled'] += 1
        elif sub.status in (SubscriptionState.PAST_DUE, SubscriptionState.UNPAID):
            summary['expired'] += 1
        else:
            summary['expired' if ended else 'active'] += 1
    return summary


def snapshots_frame(snapshots: Iterable[SubscriptionSnapshot]) -> pd.DataFrame:
    """Tabular view of snapshots with datetime64 date columns, for vectorized metrics."""
    columns = list(SubscriptionSnapshot.model_fields)
    df = pd.DataFrame([s.model_dump() for s in snapshots], columns=columns)
    for col in ('end_date', 'trial_end_date', 'last_payment_date'):
        df[col] = pd.to_datetime(df[col])
    df['amount'] = convert_to_numeric(df['amount'], default_value=0.0, target_type=float)
    return df
