"""
Reconnection Processor - bill restored service cuts from the tariff.

Pure functions. No I/O beyond logging.

The charge for a reconnection always comes from the tariff
(``reconnection_cost_1`` or ``reconnection_cost_2`` by sequence number).
An amount recorded on the event when service was restored is only compared
against it, and a disagreement is logged.  Events whose tariff cost is not
positive are skipped and stay pending, so a corrected tariff bills them on
a later run.

Usage:
    from billing_engines.reconnection import process_reconnections

    charges = process_reconnections(events, period.end, tariff)
    charges.taxable_total, charges.exempt_total, charges.event_ids
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from billing_kernel.domain.cache import BillingCache
from billing_kernel.domain.dtos import ReconnectionEvent, ServiceCutStatus
from billing_kernel.domain.tariff import Tariff
from billing_kernel.domain.values import round_half_up
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.reconnection")


@dataclass(frozen=True)
class ReconnectionCharges:
    """Reconnection totals for one boleta, split by tax applicability."""

    taxable_total: Decimal = Decimal("0")
    exempt_total: Decimal = Decimal("0")
    event_ids: tuple[UUID, ...] = ()


def is_reconnection_eligible(event: ReconnectionEvent, period_end: date) -> bool:
    """Restored, not yet billed, and restored on or before the period end."""
    return (
        event.status == ServiceCutStatus.RESTORED
        and event.applied_boleta_id is None
        and event.restored_at is not None
        and event.restored_at <= period_end
    )


def process_reconnections(
    events: Iterable[ReconnectionEvent],
    period_end: date,
    tariff: Tariff,
) -> ReconnectionCharges:
    """Select eligible events and cost them from ``tariff``."""
    taxable = Decimal("0")
    exempt = Decimal("0")
    event_ids: list[UUID] = []

    for event in events:
        if not is_reconnection_eligible(event, period_end):
            continue

        sequence = event.sequence_number or 1
        cost = round_half_up(tariff.reconnection_cost(sequence))

        if cost <= 0:
            logger.warning(
                "reconnection_skipped_non_positive_cost",
                extra={
                    "event_id": str(event.event_id),
                    "sequence_number": sequence,
                    "tariff_cost": str(cost),
                },
            )
            continue

        if event.charged_amount is not None and round_half_up(event.charged_amount) != cost:
            logger.warning(
                "reconnection_cost_mismatch",
                extra={
                    "event_id": str(event.event_id),
                    "charged_amount": str(event.charged_amount),
                    "tariff_cost": str(cost),
                },
            )

        # Null is billed as taxable
        if event.tax_applicable is False:
            exempt += cost
        else:
            taxable += cost
        event_ids.append(event.event_id)

    return ReconnectionCharges(
        taxable_total=taxable,
        exempt_total=exempt,
        event_ids=tuple(event_ids),
    )


def process_reconnections_from_cache(
    cache: BillingCache,
    customer_id: UUID,
    tariff: Tariff,
) -> ReconnectionCharges:
    """Same selection and costing, reading events from a batch cache."""
    period_end = cache.period.end
    return process_reconnections(
        cache.pending_reconnections(customer_id, period_end), period_end, tariff,
    )
