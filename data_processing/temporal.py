# practice_analytics_root/data_processing/temporal.py
# TEMPORAL FILTERING - DATE RANGES & TOLERANT DATE PARSING

"""
Date handling for the analytics engine.

Source records disagree about which timestamp field they populate and about
its format, so every comparison goes through `parse_date_or_null`, which turns
anything unusable into `None` instead of raising. A record whose date cannot be
resolved is simply out of range.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, field_validator

from config import settings
from .helpers import coalesce_fields, first_present, is_missing

logger = logging.getLogger(__name__)

# Words pandas resolves relative to the wall clock; stored records never mean them.
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def parse_date_or_null(value: Any) -> Optional[pd.Timestamp]:
    """
    Parses a date-like value into a naive pandas Timestamp.

    Returns None for missing values, unparseable strings and non date-like
    types (numbers, booleans, containers). Timezone-aware inputs are converted
    to UTC before the timezone is dropped.
    """
    if is_missing(value) or isinstance(value, (bool, np.bool_, int, float, np.number)):
        return None
    if not isinstance(value, (str, date, np.datetime64)):
        return None
    if isinstance(value, str) and value.strip().lower() in _RELATIVE_DATE_WORDS:
        return None

    try:
        ts = pd.to_datetime(value.strip(), errors='coerce') if isinstance(value, str) else pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def reference_now(value: Any = None) -> datetime:
    """The instant metrics are evaluated at, as a naive UTC datetime. None means the current time."""
    if value is None:
        return pd.Timestamp.now(tz='UTC').tz_localize(None).to_pydatetime()
    ts = parse_date_or_null(value)
    if ts is None:
        raise ValueError(f"Cannot interpret {value!r} as a reference time.")
    return ts.to_pydatetime()


class DateRange(BaseModel):
    """An inclusive range of calendar days. `start > end` describes an empty range."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @field_validator('start', 'end', mode='before')
    @classmethod
    def _coerce_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        return value

    @classmethod
    def from_iso(cls, start: str, end: str) -> 'DateRange':
        return cls(start=start, end=end)

    @classmethod
    def last_n_days(cls, days: int, today: Optional[date] = None) -> 'DateRange':
        today = today or date.today()
        return cls(start=today - timedelta(days=days), end=today)

    @classmethod
    def default(cls, today: Optional[date] = None) -> 'DateRange':
        return cls.last_n_days(settings.ANALYTICS.default_range_days, today)

    @classmethod
    def from_preset(cls, preset: str, today: Optional[date] = None) -> 'DateRange':
        """Builds a range from a dashboard preset such as '7d', '30d', '90d' or '1y'."""
        days = settings.ANALYTICS.range_presets.get(preset)
        if days is None:
            logger.warning(f"Unknown range preset '{preset}'. Falling back to the default range.")
            return cls.default(today)
        return cls.last_n_days(days, today)

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    @property
    def days_in_range(self) -> int:
        return 0 if self.is_empty else (self.end - self.start).days + 1

    @property
    def start_ts(self) -> pd.Timestamp:
        return pd.Timestamp(self.start)

    @property
    def end_ts(self) -> pd.Timestamp:
        return pd.Timestamp(self.end)

    def contains(self, day: Optional[pd.Timestamp]) -> bool:
        if day is None or self.is_empty:
            return False
        day = day.normalize()
        return self.start_ts <= day <= self.end_ts


# --- Scalar and Vectorized Range Checks ---

def record_date(record: Mapping, field_candidates: Sequence[str]) -> Optional[pd.Timestamp]:
    """Parses the first populated candidate field of a record."""
    return parse_date_or_null(first_present(record, field_candidates))


def in_range(record: Mapping, date_range: DateRange, field_candidates: Sequence[str]) -> bool:
    """True when the record's first populated date field falls inside the range (inclusive)."""
    return date_range.contains(record_date(record, field_candidates))


def resolve_record_dates(df: pd.DataFrame, field_candidates: Sequence[str]) -> pd.Series:
    """Vectorized `record_date`: a datetime64 Series with NaT where no usable date exists."""
    raw = coalesce_fields(df, field_candidates)
    return pd.to_datetime(raw.map(parse_date_or_null))


def in_range_mask(df: pd.DataFrame, date_range: DateRange, field_candidates: Sequence[str]) -> pd.Series:
    """Boolean mask of rows whose resolved day lies within the range."""
    if df.empty or date_range.is_empty:
        return pd.Series(False, index=df.index, dtype=bool)
    days = resolve_record_dates(df, field_candidates).dt.normalize()
    return ((days >= date_range.start_ts) & (days <= date_range.end_ts)).astype(bool)


def filter_in_range(df: pd.DataFrame, date_range: DateRange, field_candidates: Sequence[str]) -> pd.DataFrame:
    """Returns the in-range subset of a record frame, preserving row order."""
    if df.empty:
        return df
    return df[in_range_mask(df, date_range, field_candidates)]
