# practice_analytics_root/analytics/aggregators.py
# DOMAIN AGGREGATORS - PATIENTS, APPOINTMENTS, REVENUE, PRESCRIPTIONS

"""
Reduces record frames into category counts and sums.

All four aggregators share one shape: resolve a category label for each record
through a fallback chain of field names ending in a literal default, then count
(or sum) per label in order of first appearance. Percentages use
`safe_percentage`, so an empty denominator yields 0 rather than NaN.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from config import settings
from data_processing import (DateRange, coalesce_fields, convert_to_numeric,
                             first_present, in_range_mask, is_missing,
                             safe_percentage)
from .models import CategoryCount, RevenueByType

logger = logging.getLogger(__name__)

APPOINTMENT_TYPE_FIELDS = ["type", "appointmentType"]
PAYMENT_TYPE_FIELDS = ["description", "paymentMethod"]
MEDICATION_NAME_FIELDS = ["name", "medication", "medicationName"]


# --- Shared Reduction Helpers ---

def category_labels(df: pd.DataFrame, fields: Sequence[str], default: str) -> pd.Series:
    """Resolves one label per row from a field fallback chain, as strings."""
    return coalesce_fields(df, fields, default=default).map(str)


def count_by_category(labels: pd.Series, total: Optional[float] = None) -> List[CategoryCount]:
    """Counts labels in order of first appearance. `total` defaults to the number of labels."""
    if labels.empty:
        return []
    total = len(labels) if total is None else total
    counts = labels.groupby(labels, sort=False).size()
    return [
        CategoryCount(category=str(label), count=int(count), percentage=safe_percentage(count, total))
        for label, count in counts.items()
    ]


def sum_by_category(labels: pd.Series, values: pd.Series, total: Optional[float] = None) -> List[RevenueByType]:
    """Sums `values` per label in order of first appearance."""
    if labels.empty:
        return []
    sums = values.groupby(labels, sort=False).sum()
    total = float(sums.sum()) if total is None else total
    return [
        RevenueByType(type=str(label), revenue=float(amount), percentage=safe_percentage(amount, total))
        for label, amount in sums.items()
    ]


def top_n_categories(labels: pd.Series, limit: int) -> List[CategoryCount]:
    """
    Most frequent labels first. Ties keep first-encounter order; there is no
    secondary key in the source data.
    """
    if labels.empty:
        return []
    counts = labels.groupby(labels, sort=False).size()
    ranked = pd.DataFrame({'label': counts.index, 'occurrences': counts.values, 'first_seen': np.arange(len(counts))})
    ranked = ranked.sort_values(['occurrences', 'first_seen'], ascending=[False, True]).head(limit)
    total = len(labels)
    return [
        CategoryCount(category=str(row.label), count=int(row.occurrences), percentage=safe_percentage(row.occurrences, total))
        for row in ranked.itertuples(index=False)
    ]


# --- Patients ---

def age_group_labels(ages: pd.Series) -> pd.Series:
    """Maps ages to the fixed age bands; missing, zero or non-numeric ages become 'Unknown'."""
    numeric_ages = convert_to_numeric(ages)
    # An age of 0 is an unset age in the source records.
    numeric_ages = numeric_ages.where(numeric_ages != 0)
    conditions = [(numeric_ages >= band.min_age) & (numeric_ages < band.max_age) for band in settings.AGE_BANDS]
    choices = [band.label for band in settings.AGE_BANDS]
    labels = np.select(conditions, choices, default=settings.UNKNOWN_LABEL) if conditions else settings.UNKNOWN_LABEL
    return pd.Series(labels, index=ages.index, dtype=object)


def aggregate_patients(df: pd.DataFrame, date_range: DateRange) -> Dict[str, Any]:
    """Totals, new registrations in range, and age/gender breakdowns over all patients."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return {'total': 0, 'new_in_range': 0, 'by_age': [], 'by_gender': []}

    total = len(df)
    in_range = in_range_mask(df, date_range, settings.DATE_FIELD_CANDIDATES['patients'])
    ages = df['age'] if 'age' in df.columns else pd.Series(np.nan, index=df.index)

    return {
        'total': total,
        'new_in_range': int(in_range.sum()),
        'by_age': count_by_category(age_group_labels(ages), total),
        'by_gender': count_by_category(category_labels(df, ['gender'], settings.UNKNOWN_LABEL), total),
    }


# --- Appointments ---

def aggregate_appointments(df: pd.DataFrame, date_range: DateRange) -> Dict[str, Any]:
    """Totals plus type and status breakdowns over the in-range appointments."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return {'total': 0, 'in_range': 0, 'in_range_df': pd.DataFrame(), 'by_type': [], 'by_status': []}

    in_range_df = df[in_range_mask(df, date_range, settings.DATE_FIELD_CANDIDATES['appointments'])]
    count = len(in_range_df)

    return {
        'total': len(df),
        'in_range': count,
        'in_range_df': in_range_df,
        'by_type': count_by_category(category_labels(in_range_df, APPOINTMENT_TYPE_FIELDS, settings.DEFAULT_APPOINTMENT_TYPE), count),
        'by_status': count_by_category(category_labels(in_range_df, ['status'], settings.UNKNOWN_LABEL), count),
    }


# --- Revenue ---

def paid_mask(df: pd.DataFrame) -> pd.Series:
    """Payments whose status is in the configured paid set. Matching is exact and case-sensitive."""
    if 'status' not in df.columns:
        return pd.Series(False, index=df.index, dtype=bool)
    paid = settings.PAID_STATUSES
    return df['status'].map(lambda s: isinstance(s, str) and s in paid).astype(bool)


def payment_amounts(df: pd.DataFrame) -> pd.Series:
    if 'amount' not in df.columns:
        return pd.Series(0.0, index=df.index, dtype=float)
    return convert_to_numeric(df['amount'], default_value=0.0, target_type=float)


def realized_amounts(df: pd.DataFrame) -> pd.Series:
    """Payment amounts with every non-paid payment contributing 0."""
    return payment_amounts(df).where(paid_mask(df), 0.0)


def aggregate_revenue(df: pd.DataFrame, date_range: DateRange) -> Dict[str, Any]:
    """Realized revenue overall and in range, and in-range revenue per description/method."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return {'total': 0.0, 'in_range': 0.0, 'in_range_df': pd.DataFrame(), 'by_type': []}

    in_range_df = df[in_range_mask(df, date_range, settings.DATE_FIELD_CANDIDATES['payments'])]
    revenue_in_range = float(realized_amounts(in_range_df).sum()) if not in_range_df.empty else 0.0

    paid_in_range = in_range_df[paid_mask(in_range_df)] if not in_range_df.empty else in_range_df
    by_type: List[RevenueByType] = []
    if not paid_in_range.empty:
        by_type = sum_by_category(
            category_labels(paid_in_range, PAYMENT_TYPE_FIELDS, settings.UNKNOWN_LABEL),
            payment_amounts(paid_in_range),
            revenue_in_range,
        )

    return {
        'total': float(realized_amounts(df).sum()),
        'in_range': revenue_in_range,
        'in_range_df': in_range_df,
        'by_type': by_type,
    }


# --- Prescriptions ---

def _is_falsy(value: Any) -> bool:
    if is_missing(value):
        return True
    if isinstance(value, (bool, np.bool_, int, float, np.number)):
        return not value
    return False


def extract_medication_names(record: Mapping) -> List[str]:
    """
    Flattens the medication shapes found on prescriptions into a list of names.

    Handles `medications` as a list of objects or strings (or a lone object or
    string), then `medication` as an object or string, then `medicationName`.
    Falsy entries are skipped; objects without a usable name count as 'Unknown'.
    """
    if not isinstance(record, Mapping):
        return []

    medications = record.get('medications')
    if isinstance(medications, (list, tuple)):
        entries = list(medications)
    elif isinstance(medications, (str, Mapping)) and not is_missing(medications):
        entries = [medications]
    else:
        single = first_present(record, ['medication', 'medicationName'])
        entries = [] if single is None else [single]

    names = []
    for entry in entries:
        if _is_falsy(entry):
            continue
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, Mapping):
            names.append(str(first_present(entry, MEDICATION_NAME_FIELDS, settings.UNKNOWN_LABEL)))
        else:
            names.append(settings.UNKNOWN_LABEL)
    return names


def aggregate_prescriptions(df: pd.DataFrame, date_range: DateRange) -> Dict[str, Any]:
    """Totals, in-range count, and the most prescribed medications over all prescriptions."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return {'total': 0, 'in_range': 0, 'top_medications': []}

    in_range = in_range_mask(df, date_range, settings.DATE_FIELD_CANDIDATES['prescriptions'])
    names = [name for record in df.to_dict('records') for name in extract_medication_names(record)]

    return {
        'total': len(df),
        'in_range': int(in_range.sum()),
        'top_medications': top_n_categories(pd.Series(names, dtype=object), settings.ANALYTICS.top_medications_limit),
    }


# --- Subscription Plans ---

def plan_distribution(plan_names: Sequence[Optional[str]], total: Optional[int] = None) -> List[CategoryCount]:
    """
    Counts subscriptions per configured plan tier by case-insensitive substring
    of the plan name. The first matching tier wins; unmatched plans are not counted.
    Percentages are relative to `total` (the subscriber count on the analytics
    view), defaulting to the number of plan names.
    """
    tiers = settings.ANALYTICS.plan_tiers
    counts = {tier: 0 for tier in tiers}
    for name in plan_names:
        if is_missing(name):
            continue
        lowered = str(name).lower()
        tier = next((t for t in tiers if t in lowered), None)
        if tier is not None:
            counts[tier] += 1
    total = len(plan_names) if total is None else total
    return [CategoryCount(category=tier, count=n, percentage=safe_percentage(n, total)) for tier, n in counts.items()]
