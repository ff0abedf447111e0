# practice_analytics_root/data_processing/__init__.py
# ROBUST & EXPLICIT PACKAGE API

"""
Initializes the data_processing package, defining its public API.

This file explicitly exports all public-facing functions from its submodules,
providing a single, consistent import point for the rest of the application.
"""

# --- Record Utilities from helpers.py ---
from .helpers import (
    coalesce_fields,
    convert_to_numeric,
    filter_records,
    first_present,
    is_missing,
    records_to_frame,
    robust_json_load,
    safe_percentage,
    safe_ratio,
)

# --- Temporal Filtering from temporal.py ---
from .temporal import (
    DateRange,
    filter_in_range,
    in_range,
    in_range_mask,
    parse_date_or_null,
    record_date,
    reference_now,
    resolve_record_dates,
)

# --- Calendar Bucketing from bucketing.py ---
from .bucketing import (
    Bucket,
    TrendPoint,
    bucketize,
    daily_bucket_count,
    daily_buckets,
    weekly_bucket_count,
    weekly_buckets,
)

# --- Snapshot Loading from loaders.py ---
from .loaders import (
    load_record_snapshot,
    load_snapshot_directory,
)


# --- Define the canonical public API for the package ---
__all__ = [
    # helpers.py
    "coalesce_fields",
    "convert_to_numeric",
    "filter_records",
    "first_present",
    "is_missing",
    "records_to_frame",
    "robust_json_load",
    "safe_percentage",
    "safe_ratio",

    # temporal.py
    "DateRange",
    "filter_in_range",
    "in_range",
    "in_range_mask",
    "parse_date_or_null",
    "record_date",
    "reference_now",
    "resolve_record_dates",

    # bucketing.py
    "Bucket",
    "TrendPoint",
    "bucketize",
    "daily_bucket_count",
    "daily_buckets",
    "weekly_bucket_count",
    "weekly_buckets",

    # loaders.py
    "load_record_snapshot",
    "load_snapshot_directory",
]
