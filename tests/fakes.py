"""
In-memory collaborator doubles.

InMemoryBillingStore implements all four ports (BillingRepository,
ChargeClaimer, BoletaWriter, FolioAllocator) over plain dicts.  Claims and
folio allocation take a lock so threaded tests see the same exactly-once
behavior the SQL conditional UPDATE gives.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from typing import Sequence
from uuid import UUID

from billing_kernel.domain.dtos import (
    Boleta,
    DiscountAllocation,
    Fine,
    ReconnectionEvent,
    SubsidyAssignment,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.tariff import Tariff
from billing_kernel.exceptions import ChargeAlreadyClaimedError


class InMemoryBillingStore:
    def __init__(
        self,
        tariffs: list[Tariff] | None = None,
        first_folio: int = 1,
    ):
        self.tariffs: list[Tariff] = list(tariffs or [])
        self.subsidies: list[SubsidyAssignment] = []
        self.discounts: list[DiscountAllocation] = []
        self.fines: dict[UUID, Fine] = {}
        self.reconnections: dict[UUID, ReconnectionEvent] = {}
        self.boletas: dict[UUID, Boleta] = {}
        self._next_folio = first_folio
        self._lock = threading.Lock()

    # -- seeding ----------------------------------------------------------

    def add_subsidy(self, assignment: SubsidyAssignment) -> SubsidyAssignment:
        self.subsidies.append(assignment)
        return assignment

    def add_discount(self, allocation: DiscountAllocation) -> DiscountAllocation:
        self.discounts.append(allocation)
        return allocation

    def add_fine(self, fine: Fine) -> Fine:
        self.fines[fine.fine_id] = fine
        return fine

    def add_reconnection(self, event: ReconnectionEvent) -> ReconnectionEvent:
        self.reconnections[event.event_id] = event
        return event

    # -- BillingRepository ------------------------------------------------

    def tariffs_for_date(self, billing_date: date) -> list[Tariff]:
        return [t for t in self.tariffs if t.covers(billing_date)]

    def subsidy_history(self, customer_id: UUID, as_of: date) -> list[SubsidyAssignment]:
        return [
            s for s in self.subsidies
            if s.customer_id == customer_id and s.effective_from <= as_of
        ]

    def discount_allocations(
        self, customer_id: UUID, period: BillingPeriod,
    ) -> list[DiscountAllocation]:
        return [d for d in self.discounts if d.customer_id == customer_id]

    def pending_fines(self, customer_id: UUID, period: BillingPeriod) -> list[Fine]:
        return [
            f for f in self.fines.values()
            if f.customer_id == customer_id and f.applied_boleta_id is None
        ]

    def pending_reconnections(
        self, customer_id: UUID, period_end: date,
    ) -> list[ReconnectionEvent]:
        return [
            e for e in self.reconnections.values()
            if e.customer_id == customer_id and e.applied_boleta_id is None
        ]

    # -- ChargeClaimer ----------------------------------------------------

    def claim_fine(self, fine_id: UUID, boleta_id: UUID) -> None:
        with self._lock:
            fine = self.fines.get(fine_id)
            if fine is None or fine.applied_boleta_id is not None:
                raise ChargeAlreadyClaimedError("fine", str(fine_id), str(boleta_id))
            self.fines[fine_id] = replace(fine, applied_boleta_id=boleta_id)

    def claim_reconnection(self, event_id: UUID, boleta_id: UUID) -> None:
        with self._lock:
            event = self.reconnections.get(event_id)
            if event is None or event.applied_boleta_id is not None:
                raise ChargeAlreadyClaimedError(
                    "reconnection", str(event_id), str(boleta_id),
                )
            self.reconnections[event_id] = replace(event, applied_boleta_id=boleta_id)

    # -- BoletaWriter -----------------------------------------------------

    def existing_boleta_id(self, customer_id: UUID, period_start: date) -> UUID | None:
        for boleta in self.boletas.values():
            if boleta.customer_id == customer_id and boleta.period_start == period_start:
                return boleta.boleta_id
        return None

    def save(self, boleta: Boleta) -> None:
        with self._lock:
            self.boletas[boleta.boleta_id] = boleta

    def link_discounts(self, allocation_ids: Sequence[UUID], boleta_id: UUID) -> None:
        wanted = set(allocation_ids)
        with self._lock:
            self.discounts = [
                replace(a, applied_boleta_id=boleta_id) if a.allocation_id in wanted else a
                for a in self.discounts
            ]

    # -- FolioAllocator ---------------------------------------------------

    def next_folio(self) -> int:
        with self._lock:
            folio = self._next_folio
            self._next_folio += 1
            return folio
