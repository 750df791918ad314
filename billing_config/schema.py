"""
BillingConfig schema.

The parsed, frozen form of a billing configuration YAML file.  Values
here are policy, not code: the legal subsidy cutoff, the due-date offset
and the folio sequence name change by regulation or by utility, so they
are read from configuration and handed to the kernel as plain arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class BatchSettings:
    """Billing run tuning."""

    max_workers: int = 4
    progress_every: int = 1


@dataclass(frozen=True)
class BillingConfig:
    """Runtime configuration for billing."""

    config_id: str
    version: int
    utility_name: str
    # Periods starting on or after this date use the new subsidy thresholds
    subsidy_formula_cutoff: date = date(2024, 4, 1)
    due_days: int = 20
    folio_sequence: str = "boleta_folio"
    # SQLAlchemy URL for billing runs; None leaves engine setup to the caller
    database_url: str | None = None
    batch: BatchSettings = field(default_factory=BatchSettings)
    checksum: str = ""
