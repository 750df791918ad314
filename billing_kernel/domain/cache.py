"""
BillingCache -- pre-fetched billing inputs for a batch of customers.

A billing run loads every customer's inputs for one period in a handful of
queries, then computes each boleta from this snapshot.  The cache answers
the same questions as a BillingRepository, so the computation code does not
know which one it is reading.

The snapshot can go stale while a run is in progress (another run may
claim a fine).  Finalization re-checks every claim against the database,
so a stale entry is dropped at claim time, never billed twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping
from uuid import UUID

from billing_kernel.domain.dtos import (
    DiscountAllocation,
    Fine,
    ReconnectionEvent,
    SubsidyAssignment,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.tariff import Tariff


@dataclass(frozen=True)
class BillingCache:
    """Read-only snapshot of billing inputs keyed by customer id."""

    period: BillingPeriod
    tariffs: tuple[Tariff, ...] = ()
    subsidies: Mapping[UUID, tuple[SubsidyAssignment, ...]] = field(default_factory=dict)
    discounts: Mapping[UUID, tuple[DiscountAllocation, ...]] = field(default_factory=dict)
    fines: Mapping[UUID, tuple[Fine, ...]] = field(default_factory=dict)
    reconnections: Mapping[UUID, tuple[ReconnectionEvent, ...]] = field(default_factory=dict)

    def tariffs_for_date(self, billing_date: date) -> tuple[Tariff, ...]:
        return tuple(t for t in self.tariffs if t.covers(billing_date))

    def subsidy_history(
        self, customer_id: UUID, as_of: date,
    ) -> tuple[SubsidyAssignment, ...]:
        return tuple(
            s for s in self.subsidies.get(customer_id, ())
            if s.effective_from <= as_of
        )

    def discount_allocations(
        self, customer_id: UUID, period: BillingPeriod,
    ) -> tuple[DiscountAllocation, ...]:
        return self.discounts.get(customer_id, ())

    def pending_fines(
        self, customer_id: UUID, period: BillingPeriod,
    ) -> tuple[Fine, ...]:
        return self.fines.get(customer_id, ())

    def pending_reconnections(
        self, customer_id: UUID, period_end: date,
    ) -> tuple[ReconnectionEvent, ...]:
        return self.reconnections.get(customer_id, ())

