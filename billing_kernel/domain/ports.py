"""
Collaborator ports for boleta computation and finalization.

Narrow protocols, one per capability the core needs.  The SQL
implementations live in ``billing_kernel.selectors`` and
``billing_kernel.services``; tests use in-memory doubles.  The core holds
no ambient database handles.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence, runtime_checkable
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


@runtime_checkable
class BillingRepository(Protocol):
    """Read capability: everything a boleta computation consumes."""

    def tariffs_for_date(self, billing_date: date) -> Sequence[Tariff]:
        """Tariffs whose range contains ``billing_date`` (normally exactly one)."""
        ...

    def subsidy_history(
        self, customer_id: UUID, as_of: date,
    ) -> Sequence[SubsidyAssignment]:
        """Subsidy history entries with ``effective_from <= as_of``."""
        ...

    def discount_allocations(
        self, customer_id: UUID, period: BillingPeriod,
    ) -> Sequence[DiscountAllocation]:
        ...

    def pending_fines(
        self, customer_id: UUID, period: BillingPeriod,
    ) -> Sequence[Fine]:
        ...

    def pending_reconnections(
        self, customer_id: UUID, period_end: date,
    ) -> Sequence[ReconnectionEvent]:
        ...


@runtime_checkable
class ChargeClaimer(Protocol):
    """Atomic conditional claim of fines and reconnections.

    Each call sets ``applied_boleta_id`` only if it is still null and raises
    ``ChargeAlreadyClaimedError`` otherwise.
    """

    def claim_fine(self, fine_id: UUID, boleta_id: UUID) -> None:
        ...

    def claim_reconnection(self, event_id: UUID, boleta_id: UUID) -> None:
        ...


@runtime_checkable
class BoletaWriter(Protocol):
    """Persistence of finalized boletas."""

    def existing_boleta_id(self, customer_id: UUID, period_start: date) -> UUID | None:
        ...

    def save(self, boleta: Boleta) -> None:
        ...

    def link_discounts(self, allocation_ids: Sequence[UUID], boleta_id: UUID) -> None:
        """Record ``boleta_id`` as the last boleta that applied each allocation."""
        ...


@runtime_checkable
class FolioAllocator(Protocol):
    """Source of strictly increasing boleta folio numbers."""

    def next_folio(self) -> int:
        ...
