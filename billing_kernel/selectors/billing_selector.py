"""
Module: billing_kernel.selectors.billing_selector
Responsibility: Read-only queries for everything a boleta computation
    consumes: tariffs, subsidy history, discount allocations, pending fines
    and pending reconnections.  Also bulk-loads the same inputs for many
    customers into a BillingCache.
Architecture position: Kernel > Selectors.  Implements the BillingRepository
    port.

Queries narrow the candidates; the engines re-apply the exact eligibility
rules, so a selector that returns slightly more never bills more.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import joinedload

from billing_kernel.domain.cache import BillingCache
from billing_kernel.domain.dtos import (
    DiscountAllocation,
    Fine,
    ReconnectionEvent,
    ServiceCutStatus,
    SubsidyAssignment,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.tariff import Tariff
from billing_kernel.logging_config import get_logger
from billing_kernel.models.discount import DiscountAllocationModel, DiscountModel
from billing_kernel.models.fine import FineModel
from billing_kernel.models.service_cut import ServiceCutModel
from billing_kernel.models.subsidy import SubsidyHistoryModel
from billing_kernel.models.tariff import TariffModel
from billing_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.billing")


class BillingSelector(BaseSelector[TariffModel]):
    """SQL implementation of BillingRepository."""

    # ------------------------------------------------------------------
    # Single-customer queries
    # ------------------------------------------------------------------

    def tariffs_for_date(self, billing_date: date) -> list[Tariff]:
        stmt = (
            select(TariffModel)
            .where(TariffModel.effective_from <= billing_date)
            .where(
                or_(
                    TariffModel.effective_to.is_(None),
                    TariffModel.effective_to > billing_date,
                )
            )
            .order_by(TariffModel.effective_from.desc())
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def subsidy_history(self, customer_id: UUID, as_of: date) -> list[SubsidyAssignment]:
        return self._subsidies([customer_id], as_of)[customer_id]

    def discount_allocations(
        self, customer_id: UUID, period: BillingPeriod,
    ) -> list[DiscountAllocation]:
        return self._discounts([customer_id], period)[customer_id]

    def pending_fines(self, customer_id: UUID, period: BillingPeriod) -> list[Fine]:
        return self._fines([customer_id], period)[customer_id]

    def pending_reconnections(
        self, customer_id: UUID, period_end: date,
    ) -> list[ReconnectionEvent]:
        return self._reconnections([customer_id], period_end)[customer_id]

    # ------------------------------------------------------------------
    # Bulk load
    # ------------------------------------------------------------------

    def load_cache(
        self, customer_ids: Iterable[UUID], period: BillingPeriod,
    ) -> BillingCache:
        """
        Load every input for ``customer_ids`` and ``period`` in five queries.

        Tariffs are those in effect on the period's last day.
        """
        ids = list(dict.fromkeys(customer_ids))
        cache = BillingCache(
            period=period,
            tariffs=tuple(self.tariffs_for_date(period.end)),
            subsidies=_freeze(self._subsidies(ids, period.start)),
            discounts=_freeze(self._discounts(ids, period)),
            fines=_freeze(self._fines(ids, period)),
            reconnections=_freeze(self._reconnections(ids, period.end)),
        )
        logger.info(
            "billing_cache_loaded",
            extra={
                "period": period.label,
                "customer_count": len(ids),
                "tariff_count": len(cache.tariffs),
            },
        )
        return cache

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _subsidies(
        self, customer_ids: Sequence[UUID], as_of: date,
    ) -> dict[UUID, list[SubsidyAssignment]]:
        result: dict[UUID, list[SubsidyAssignment]] = defaultdict(list)
        if not customer_ids:
            return result
        stmt = (
            select(SubsidyHistoryModel)
            .where(SubsidyHistoryModel.customer_id.in_(customer_ids))
            .where(SubsidyHistoryModel.effective_from <= as_of)
            .order_by(SubsidyHistoryModel.effective_from, SubsidyHistoryModel.created_at)
        )
        for row in self.session.scalars(stmt):
            result[row.customer_id].append(row.to_dto())
        return result

    def _discounts(
        self, customer_ids: Sequence[UUID], period: BillingPeriod,
    ) -> dict[UUID, list[DiscountAllocation]]:
        result: dict[UUID, list[DiscountAllocation]] = defaultdict(list)
        if not customer_ids:
            return result
        stmt = (
            select(DiscountAllocationModel)
            .join(DiscountModel, DiscountAllocationModel.discount_id == DiscountModel.id)
            .options(joinedload(DiscountAllocationModel.discount))
            .where(DiscountAllocationModel.customer_id.in_(customer_ids))
            .where(DiscountModel.active.is_(True))
            .where(DiscountModel.valid_from <= period.end)
            .where(
                or_(
                    DiscountModel.valid_to.is_(None),
                    DiscountModel.valid_to >= period.start,
                )
            )
        )
        for row in self.session.scalars(stmt):
            result[row.customer_id].append(row.to_dto())
        return result

    def _fines(
        self, customer_ids: Sequence[UUID], period: BillingPeriod,
    ) -> dict[UUID, list[Fine]]:
        result: dict[UUID, list[Fine]] = defaultdict(list)
        if not customer_ids:
            return result
        stmt = (
            select(FineModel)
            .where(FineModel.customer_id.in_(customer_ids))
            .where(FineModel.applied_boleta_id.is_(None))
            .where(FineModel.applied_on <= period.end)
            .order_by(FineModel.applied_on)
        )
        for row in self.session.scalars(stmt):
            result[row.customer_id].append(row.to_dto())
        return result

    def _reconnections(
        self, customer_ids: Sequence[UUID], period_end: date,
    ) -> dict[UUID, list[ReconnectionEvent]]:
        result: dict[UUID, list[ReconnectionEvent]] = defaultdict(list)
        if not customer_ids:
            return result
        stmt = (
            select(ServiceCutModel)
            .where(ServiceCutModel.customer_id.in_(customer_ids))
            .where(ServiceCutModel.status == ServiceCutStatus.RESTORED.value)
            .where(ServiceCutModel.applied_boleta_id.is_(None))
            .where(ServiceCutModel.restored_at.is_not(None))
            .where(ServiceCutModel.restored_at <= period_end)
            .order_by(ServiceCutModel.restored_at)
        )
        for row in self.session.scalars(stmt):
            result[row.customer_id].append(row.to_dto())
        return result


def _freeze(grouped: dict[UUID, list]) -> dict[UUID, tuple]:
    return {key: tuple(values) for key, values in grouped.items()}
