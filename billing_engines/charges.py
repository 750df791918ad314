"""
Charge Calculator - base charges from consumption, and discount aggregation.

Pure functions with deterministic behavior. No I/O.

Each line charge is rounded half-up to whole currency units once, here, so
every later step works on whole units and the subtotal is exactly the sum
of the printed lines.

Usage:
    from billing_engines.charges import calculate_base_charges

    breakdown = calculate_base_charges(Decimal("12"), tariff)
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from billing_kernel.domain.dtos import ChargeBreakdown, DiscountAllocation
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.tariff import Tariff, sewage_rates
from billing_kernel.domain.values import Money, round_half_up
from billing_kernel.exceptions import InvalidConsumptionError


def calculate_base_charges(consumption: Decimal, tariff: Tariff) -> ChargeBreakdown:
    """
    Itemized charges before any adjustment.

    Under a combined rate the whole sewage+treatment charge sits in
    ``sewage_charge`` and ``treatment_charge`` is zero.

    Raises:
        InvalidConsumptionError: ``consumption`` is negative.
    """
    if consumption < 0:
        raise InvalidConsumptionError(str(consumption))

    rates = sewage_rates(tariff.rate_model)

    def line(amount: Decimal) -> Money:
        return Money.of(round_half_up(amount), tariff.currency)

    fixed = line(tariff.fixed_charge)
    water = line(consumption * tariff.water_rate_per_m3)
    sewage = line(consumption * rates.sewage)
    treatment = line(consumption * rates.treatment)
    subtotal = fixed + water + sewage + treatment
    zero = Money.zero(tariff.currency)

    return ChargeBreakdown(
        fixed_charge=fixed,
        water_charge=water,
        sewage_charge=sewage,
        treatment_charge=treatment,
        subtotal=subtotal,
        discount_amount=zero,
        subsidy_amount=zero,
        taxable_charges=zero,
        untaxed_charges=zero,
        gross_before_subsidy=subtotal,
        gross_after_subsidy=subtotal,
        net_amount=zero,
        tax_amount=zero,
        combined_rate=tariff.is_combined,
    )


def is_discount_applicable(allocation: DiscountAllocation, period: BillingPeriod) -> bool:
    """Active, and the validity window overlaps the period."""
    return allocation.active and period.overlaps(allocation.valid_from, allocation.valid_to)


def aggregate_discounts(
    allocations: Iterable[DiscountAllocation],
    period: BillingPeriod,
) -> Decimal:
    """Sum of every applicable allocation, each rounded to whole units.

    Simultaneous discounts add up.  No applicable allocation gives zero.
    """
    return sum(
        (round_half_up(a.amount) for a in allocations if is_discount_applicable(a, period)),
        Decimal("0"),
    )


def applied_discount_names(
    allocations: Iterable[DiscountAllocation],
    period: BillingPeriod,
) -> tuple[str, ...]:
    return tuple(
        a.discount_name for a in allocations
        if is_discount_applicable(a, period) and a.discount_name
    )


def applied_discount_ids(
    allocations: Iterable[DiscountAllocation],
    period: BillingPeriod,
) -> tuple[UUID, ...]:
    return tuple(a.allocation_id for a in allocations if is_discount_applicable(a, period))


def apply_discount(breakdown: ChargeBreakdown, amount: Decimal) -> ChargeBreakdown:
    """Record the discount and lower the taxable base by it."""
    discount = Money.of(round_half_up(amount), breakdown.subtotal.currency)
    gross = breakdown.subtotal - discount + breakdown.taxable_charges
    return replace(
        breakdown,
        discount_amount=discount,
        gross_before_subsidy=gross,
        gross_after_subsidy=gross - breakdown.subsidy_amount,
    )
