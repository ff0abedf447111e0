# practice_analytics_root/data_processing/loaders.py
# RECORD SNAPSHOT LOADING

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from .helpers import robust_json_load

logger = logging.getLogger(__name__)

# --- Pydantic Models for Type-Safe Configuration ---

class SnapshotConfig(BaseModel):
    """Where a collection's snapshot lives and how the API envelope names it."""
    file_name: str
    envelope_key: str

# --- Centralized Snapshot Configuration ---

SNAPSHOT_CONFIG: Dict[str, SnapshotConfig] = {
    name: SnapshotConfig(file_name=f"{name}.json", envelope_key=name)
    for name in ("patients", "appointments", "prescriptions", "payments", "organizations", "subscriptions")
}


def _unwrap_records(payload: Any, envelope_key: str) -> Optional[List[Dict[str, Any]]]:
    """Accepts a bare list of records or an API envelope such as {"patients": [...]}."""
    if isinstance(payload, dict):
        payload = payload.get(envelope_key)
    if not isinstance(payload, list):
        return None
    return [r for r in payload if isinstance(r, dict)]


def load_record_snapshot(file_path: Union[str, Path], collection: str) -> Optional[List[Dict[str, Any]]]:
    """
    Loads one collection's records from a JSON export.

    Returns None when the file is missing, unreadable or not shaped like a
    record list, which the report assemblers treat as an unavailable source.
    """
    config = SNAPSHOT_CONFIG.get(collection)
    if config is None:
        logger.error(f"Unknown collection '{collection}'. Known: {sorted(SNAPSHOT_CONFIG)}")
        return None

    records = _unwrap_records(robust_json_load(file_path), config.envelope_key)
    if records is None:
        logger.error(f"({collection}) Snapshot at {file_path} is missing or malformed.")
        return None

    logger.info(f"({collection}) Successfully loaded {len(records)} records.")
    return records


def load_snapshot_directory(directory: Union[str, Path]) -> Dict[str, Optional[List[Dict[str, Any]]]]:
    """Loads every known collection from `<directory>/<collection>.json`."""
    base = Path(directory)
    return {
        name: load_record_snapshot(base / config.file_name, name)
        for name, config in SNAPSHOT_CONFIG.items()
    }
