"""
Configuration Loader (``billing_config.loader``).

Loads a billing configuration YAML file and parses it into the frozen
``billing_config.schema`` dataclasses.  Callers use
``billing_config.get_active_config()``; this module is its tooling.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values (bad date, non-positive counts, non-string database URL)
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BatchSettings, BillingConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = int(data.get(key, default))
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def parse_batch_settings(data: dict[str, Any] | None) -> BatchSettings:
    data = data or {}
    return BatchSettings(
        max_workers=_positive_int(data, "max_workers", 4),
        progress_every=_positive_int(data, "progress_every", 1),
    )


def parse_billing_config(data: dict[str, Any]) -> BillingConfig:
    """
    Parse a BillingConfig from a dict.

    Raises:
        KeyError: ``config_id``, ``version`` or ``utility_name`` missing.
        ValueError: A value is out of range or of the wrong shape.
    """
    due_days = int(data.get("due_days", 20))
    if due_days < 0:
        raise ValueError(f"due_days must not be negative, got {due_days}")

    cutoff = data.get("subsidy_formula_cutoff")

    database_url = data.get("database_url")
    if database_url is not None and not isinstance(database_url, str):
        raise ValueError(f"database_url must be a string, got {database_url!r}")

    return BillingConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        utility_name=data["utility_name"],
        subsidy_formula_cutoff=parse_date(cutoff) if cutoff is not None else date(2024, 4, 1),
        due_days=due_days,
        folio_sequence=data.get("folio_sequence", "boleta_folio"),
        database_url=database_url,
        batch=parse_batch_settings(data.get("batch")),
        checksum=compute_checksum(data),
    )


def load_billing_config(path: Path) -> BillingConfig:
    return parse_billing_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums, independent of
    key order.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
