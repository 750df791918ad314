"""
Fine Processor - select pending fines and fold taxable extras into the base.

Pure functions. No I/O.

Tax-applicable fines and reconnections raise the taxable base
(``gross_before_subsidy``) and, with it, ``gross_after_subsidy``.  Tax-exempt
ones are tracked separately and never taxed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from billing_kernel.domain.dtos import ChargeBreakdown, Fine
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.values import Money, round_half_up


@dataclass(frozen=True)
class FineCharges:
    """Fine totals for one boleta, split by tax applicability."""

    taxable_total: Decimal = Decimal("0")
    untaxed_total: Decimal = Decimal("0")
    fine_ids: tuple[UUID, ...] = ()


def is_fine_eligible(fine: Fine, period: BillingPeriod) -> bool:
    """Unbilled, applied by the period end, and its window touches the period."""
    return (
        fine.applied_boleta_id is None
        and fine.applied_on <= period.end
        and period.overlaps(fine.period_from, fine.period_to)
    )


def process_fines(fines: Iterable[Fine], period: BillingPeriod) -> FineCharges:
    taxable = Decimal("0")
    untaxed = Decimal("0")
    fine_ids: list[UUID] = []

    for fine in fines:
        if not is_fine_eligible(fine, period):
            continue
        amount = round_half_up(fine.amount)
        if fine.tax_applicable:
            taxable += amount
        else:
            untaxed += amount
        fine_ids.append(fine.fine_id)

    return FineCharges(
        taxable_total=taxable,
        untaxed_total=untaxed,
        fine_ids=tuple(fine_ids),
    )


def apply_taxable_charges(
    breakdown: ChargeBreakdown,
    taxable: Decimal,
    untaxed: Decimal,
) -> ChargeBreakdown:
    """
    Add fines/reconnections to the breakdown.

    ``taxable`` joins both gross amounts; ``untaxed`` is only recorded.
    """
    currency = breakdown.subtotal.currency
    taxable_money = Money.of(round_half_up(taxable), currency)
    gross = breakdown.subtotal - breakdown.discount_amount + taxable_money
    return replace(
        breakdown,
        taxable_charges=taxable_money,
        untaxed_charges=Money.of(round_half_up(untaxed), currency),
        gross_before_subsidy=gross,
        gross_after_subsidy=gross - breakdown.subsidy_amount,
    )
