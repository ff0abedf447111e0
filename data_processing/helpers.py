# practice_analytics_root/data_processing/helpers.py
# RECORD HELPERS - FRAMING, COALESCING & SAFE ARITHMETIC

"""
A collection of small, defensive utilities shared by the analytics engine.

Records arrive as plain mappings from a document store and are inconsistent
about which fields they populate, so most helpers here are about picking the
first usable value out of several candidate fields without ever raising.
"""
import json
import logging
import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# --- Standalone Utility Functions ---

NA_REGEX_PATTERN = re.compile(
    r'(?i)^\s*(nan|none|n/a|#n/a|np\.nan|nat|<na>|null|nil|na|undefined|unknown|-|)\s*$'
)

RecordsInput = Optional[Union[Iterable[Mapping], pd.DataFrame]]


def is_missing(value: Any) -> bool:
    """True for None, NaN/NaT/NA and blank strings. Containers are never missing."""
    if value is None or value is pd.NaT or value is pd.NA:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return False


def first_present(record: Mapping, fields: Sequence[str], default: Any = None) -> Any:
    """Returns the value of the first field in `fields` that is present and not missing."""
    if not isinstance(record, Mapping):
        return default
    for field in fields:
        value = record.get(field)
        if not is_missing(value):
            return value
    return default


def convert_to_numeric(data_input: Any, default_value: Any = np.nan, target_type: Optional[Type] = None) -> Any:
    """
    Robustly converts various inputs to a numeric pandas Series or scalar,
    handling common "Not Available" string representations.
    """
    is_series = isinstance(data_input, pd.Series)
    series = data_input if is_series else pd.Series([data_input], dtype=object)

    if pd.api.types.is_object_dtype(series.dtype):
        # Booleans and containers are not amounts.
        series = series.map(lambda v: np.nan if isinstance(v, (bool, np.bool_, list, dict, tuple)) else v)
        series = series.replace(NA_REGEX_PATTERN, np.nan, regex=True)

    numeric_series = pd.to_numeric(series, errors='coerce')
    numeric_series = numeric_series.replace([np.inf, -np.inf], np.nan)
    if not pd.isna(default_value):
        numeric_series = numeric_series.fillna(default_value)

    if target_type is int and pd.api.types.is_numeric_dtype(numeric_series.dtype):
        numeric_series = numeric_series.astype(pd.Int64Dtype() if numeric_series.isnull().any() else int)
    elif target_type is float:
        numeric_series = numeric_series.astype(float)

    return numeric_series if is_series else (numeric_series.iloc[0] if not numeric_series.empty else default_value)


def safe_ratio(part: Any, total: Any) -> float:
    """`part / total`, or 0.0 whenever the denominator is not positive or the result is not finite."""
    try:
        part_f, total_f = float(part), float(total)
    except (TypeError, ValueError):
        return 0.0
    if not total_f > 0:
        return 0.0
    result = part_f / total_f
    return result if math.isfinite(result) else 0.0


def safe_percentage(part: Any, total: Any) -> float:
    """`safe_ratio` scaled to a percentage."""
    result = safe_ratio(part, total) * 100
    return result if math.isfinite(result) else 0.0


def records_to_frame(records: RecordsInput) -> pd.DataFrame:
    """
    Builds a DataFrame from a collection of record mappings.

    `None` (a failed upstream fetch) and empty collections both yield an empty
    frame. Non-mapping entries are dropped with a debug log.
    """
    if records is None:
        return pd.DataFrame()
    if isinstance(records, pd.DataFrame):
        return records.reset_index(drop=True).copy()
    if isinstance(records, (str, bytes, Mapping)):
        raise TypeError(f"records_to_frame expects a collection of records, got {type(records).__name__}.")

    rows: List[Dict[str, Any]] = []
    for record in records:
        if isinstance(record, Mapping):
            rows.append(dict(record))
        else:
            logger.debug(f"Skipping non-mapping record of type {type(record).__name__}.")
    return pd.DataFrame.from_records(rows) if rows else pd.DataFrame()


def coalesce_fields(df: pd.DataFrame, fields: Sequence[str], default: Any = None) -> pd.Series:
    """
    Vectorized `first_present`: for every row, the value of the first field that
    is present and not missing, else `default`. Always returns an object Series.
    """
    result = pd.Series([None] * len(df), index=df.index, dtype=object)
    for field in fields:
        if field not in df.columns:
            continue
        pending = result.map(is_missing).astype(bool)
        if not pending.any():
            break
        result = result.where(~pending, df[field].astype(object))
    if default is not None:
        pending = result.map(is_missing).astype(bool)
        result = result.where(~pending, default)
    return result


def filter_records(records: Optional[Iterable[Mapping]], search_term: Optional[str], fields: Sequence[str]) -> List[Mapping]:
    """Case-insensitive substring search over the given text fields; a blank term keeps everything."""
    rows = [r for r in (records or []) if isinstance(r, Mapping)]
    if is_missing(search_term):
        return rows

    needle = search_term.strip().lower()
    return [
        r for r in rows
        if any(needle in str(r.get(field)).lower() for field in fields if not is_missing(r.get(field)))
    ]


def robust_json_load(file_path: Union[str, Path]) -> Optional[Union[Dict, List]]:
    """Loads JSON data from a file with robust error handling and UTF-8 encoding."""
    path_obj = Path(file_path)
    if not path_obj.is_file():
        logger.error(f"JSON load failed: File not found at {path_obj.resolve()}")
        return None
    try:
        with path_obj.open('r', encoding='utf-8') as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Error decoding JSON from {path_obj.resolve()}: {e}")
        return None
    except OSError as e:
        logger.error(f"An unexpected error occurred while reading {path_obj.resolve()}: {e}", exc_info=True)
        return None
