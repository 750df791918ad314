"""
billing_batch.domain.types -- Pure frozen dataclasses for billing runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.  The only mutable object is CancellationToken, which
a caller flips from another thread.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from billing_kernel.domain.dtos import ChargeBreakdown
from billing_kernel.domain.period import BillingPeriod


# =============================================================================
# Status enums
# =============================================================================


class BillingRunStatus(str, Enum):
    """Run-level outcome."""

    RUNNING = "running"
    COMPLETED = "completed"  # No customer failed
    PARTIALLY_COMPLETED = "partially_completed"  # Some customers failed
    FAILED = "failed"  # Every processed customer failed
    CANCELLED = "cancelled"  # Stopped between customers


class CustomerBillingStatus(str, Enum):
    """Per-customer outcome within a run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Boleta already exists for the period


# =============================================================================
# Requests and results
# =============================================================================


@dataclass(frozen=True)
class BillingRequest:
    """One customer to bill, with amounts computed outside the core."""

    customer_id: UUID
    consumption: Decimal
    prior_balance: Decimal = Decimal("0")
    restructuring_installment: Decimal = Decimal("0")


@dataclass(frozen=True)
class CustomerBillingResult:
    """Outcome for one customer.  Failed customers keep nothing."""

    item_index: int
    customer_id: UUID
    status: CustomerBillingStatus
    boleta_id: UUID | None = None
    folio: int | None = None
    total_amount: Decimal | None = None
    error_code: str | None = None
    error_message: str | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BillingRunProgress:
    """Snapshot passed to the progress callback after each customer."""

    run_id: UUID
    processed: int
    succeeded: int
    failed: int
    skipped: int
    total: int

    @property
    def remaining(self) -> int:
        return self.total - self.processed

    @property
    def fraction_done(self) -> float:
        return 1.0 if self.total == 0 else self.processed / self.total


@dataclass(frozen=True)
class BillingRunResult:
    """Result of a complete (or cancelled) billing run."""

    run_id: UUID
    period: BillingPeriod
    status: BillingRunStatus
    total: int
    succeeded: int
    failed: int
    skipped: int
    results: tuple[CustomerBillingResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def processed(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class PreviewResult:
    """A computed breakdown, or the reason it could not be computed."""

    customer_id: UUID
    breakdown: ChargeBreakdown | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.breakdown is not None


# =============================================================================
# Cancellation
# =============================================================================


class CancellationToken:
    """Cooperative cancellation flag, checked between customers."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "") -> None:
        self.reason = reason or None
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()
