# practice_analytics_root/data_processing/bucketing.py
# CALENDAR BUCKETING FOR TREND SERIES

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Union

import pandas as pd

from config import FormattingConfig, settings
from .temporal import DateRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bucket:
    start: date
    end: date  # inclusive
    label: str


@dataclass(frozen=True)
class TrendPoint:
    label: str
    value: Union[int, float]
    start: date
    end: date


def daily_bucket_count(date_range: DateRange) -> int:
    return min(date_range.days_in_range, settings.ANALYTICS.daily_bucket_cap)


def weekly_bucket_count(date_range: DateRange) -> int:
    if date_range.is_empty:
        return 0
    weeks = math.ceil(date_range.days_in_range / settings.ANALYTICS.week_length_days)
    return min(max(weeks, 1), settings.ANALYTICS.weekly_bucket_cap)


def daily_buckets(date_range: DateRange, formatting: Optional[FormattingConfig] = None) -> List[Bucket]:
    """
    One bucket per calendar day from `date_range.start`, capped at the daily cap.
    Days beyond the cap are omitted rather than merged into the last bucket.
    """
    fmt = (formatting or settings.FORMATTING).day_label_format
    buckets = []
    for offset in range(daily_bucket_count(date_range)):
        day = date_range.start + timedelta(days=offset)
        buckets.append(Bucket(start=day, end=day, label=day.strftime(fmt)))
    return buckets


def weekly_buckets(date_range: DateRange, formatting: Optional[FormattingConfig] = None) -> List[Bucket]:
    """Seven-day buckets from `date_range.start`; the final one is clamped to `date_range.end`."""
    formatting = formatting or settings.FORMATTING
    week = settings.ANALYTICS.week_length_days
    buckets = []
    for i in range(weekly_bucket_count(date_range)):
        start = date_range.start + timedelta(days=i * week)
        end = min(start + timedelta(days=week - 1), date_range.end)
        label = f"{start.strftime(formatting.day_label_format)}{formatting.week_label_separator}{end.strftime(formatting.day_label_format)}"
        buckets.append(Bucket(start=start, end=end, label=label))
    return buckets


def bucketize(buckets: List[Bucket], record_days: pd.Series, values: Optional[pd.Series] = None) -> List[TrendPoint]:
    """
    Assigns records to buckets by day containment.

    Each bucket rescans the full series, so cost is buckets x records; both are
    bounded (bucket caps, one organisation's reporting period). Without `values`
    a bucket's value is its record count, otherwise the sum of `values`.
    Buckets with no records still produce a zero point.
    """
    days = pd.to_datetime(record_days).dt.normalize() if not record_days.empty else record_days
    points = []
    for bucket in buckets:
        if days.empty:
            value: Union[int, float] = 0 if values is None else 0.0
        else:
            mask = (days >= pd.Timestamp(bucket.start)) & (days <= pd.Timestamp(bucket.end))
            value = int(mask.sum()) if values is None else float(values[mask].sum())
        points.append(TrendPoint(label=bucket.label, value=value, start=bucket.start, end=bucket.end))
    return points
