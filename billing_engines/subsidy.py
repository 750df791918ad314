"""
Subsidy Engine - resolve a customer's subsidy and compute its amount.

Pure functions with deterministic behavior. No I/O.

Two legal formulas exist.  Periods starting before the cutoff date
(2024-04-01 by default) use the legacy formula, where both subsidy types
cover the first 15 m³.  From the cutoff on, a half subsidy covers 13 m³ and
a full subsidy 15 m³.  In both, a full subsidy is twice a half subsidy.

    over threshold:  ((water + sewage + treatment) * threshold + fixed) / 2 * multiplier
    otherwise:       ((consumption / 2) * (water + sewage + treatment) + fixed / 2) * multiplier

Usage:
    from billing_engines.subsidy import SubsidyRates, calculate_subsidy

    amount = calculate_subsidy(
        SubsidyType.HALF,
        consumption=Decimal("10"),
        rates=SubsidyRates.from_tariff(tariff),
        fixed_charge=tariff.fixed_charge,
        use_new_formula=False,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable

from billing_kernel.domain.dtos import (
    ChargeBreakdown,
    SubsidyAssignment,
    SubsidyChangeKind,
    SubsidyType,
)
from billing_kernel.domain.tariff import Tariff, sewage_rates
from billing_kernel.domain.values import Money, round_half_up
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.subsidy")


# ============================================================================
# Constants
# ============================================================================

DEFAULT_FORMULA_CUTOFF = date(2024, 4, 1)

LEGACY_THRESHOLD = Decimal("15")

NEW_THRESHOLDS: dict[SubsidyType, Decimal] = {
    SubsidyType.HALF: Decimal("13"),
    SubsidyType.FULL: Decimal("15"),
}

MULTIPLIERS: dict[SubsidyType, Decimal] = {
    SubsidyType.HALF: Decimal("1"),
    SubsidyType.FULL: Decimal("2"),
}

_TWO = Decimal("2")


# ============================================================================
# Resolver
# ============================================================================


def resolve_subsidy(
    history: Iterable[SubsidyAssignment],
    period_start: date,
) -> SubsidyType:
    """
    Subsidy type in effect at ``period_start``.

    Takes the latest entry with ``effective_from <= period_start``.  No entry,
    or a latest entry that removed the subsidy, means ``SubsidyType.NONE``.
    Entries on the same date keep their given order (the last one wins).
    """
    latest: SubsidyAssignment | None = None
    for entry in history:
        if entry.effective_from > period_start:
            continue
        if latest is None or entry.effective_from >= latest.effective_from:
            latest = entry

    if latest is None or latest.change_kind == SubsidyChangeKind.REMOVED:
        return SubsidyType.NONE
    return latest.subsidy_type


def uses_new_formula(period_start: date, cutoff: date = DEFAULT_FORMULA_CUTOFF) -> bool:
    """Periods starting on or after the cutoff use the new thresholds."""
    return period_start >= cutoff


# ============================================================================
# Calculator
# ============================================================================


@dataclass(frozen=True)
class SubsidyRates:
    """Per-m³ rates the subsidy covers."""

    water: Decimal
    sewage: Decimal
    treatment: Decimal

    @property
    def total(self) -> Decimal:
        return self.water + self.sewage + self.treatment

    @classmethod
    def from_tariff(cls, tariff: Tariff) -> SubsidyRates:
        """Rates from a tariff; a combined rate is carried as sewage, treatment zero."""
        flat = sewage_rates(tariff.rate_model)
        return cls(
            water=tariff.water_rate_per_m3,
            sewage=flat.sewage,
            treatment=flat.treatment,
        )


def subsidy_threshold(subsidy_type: SubsidyType, use_new_formula: bool) -> Decimal:
    """Covered m³ for a subsidy type under the given formula."""
    if subsidy_type == SubsidyType.NONE:
        return Decimal("0")
    if not use_new_formula:
        return LEGACY_THRESHOLD
    return NEW_THRESHOLDS[subsidy_type]


def calculate_subsidy(
    subsidy_type: SubsidyType,
    consumption: Decimal,
    rates: SubsidyRates,
    fixed_charge: Decimal,
    use_new_formula: bool,
) -> Decimal:
    """
    Subsidy amount in whole currency units (rounded half-up).

    Args:
        subsidy_type: NONE, HALF or FULL.
        consumption: Metered m³, >= 0.
        rates: Water/sewage/treatment per-m³ rates.
        fixed_charge: Tariff fixed monthly charge.
        use_new_formula: True for periods on/after the legal cutoff.
    """
    if subsidy_type == SubsidyType.NONE:
        return Decimal("0")

    threshold = subsidy_threshold(subsidy_type, use_new_formula)
    multiplier = MULTIPLIERS[subsidy_type]

    if consumption > threshold:
        amount = (rates.total * threshold + fixed_charge) / _TWO * multiplier
    else:
        amount = ((consumption / _TWO) * rates.total + fixed_charge / _TWO) * multiplier

    result = round_half_up(amount)
    logger.debug(
        "subsidy_calculated",
        extra={
            "subsidy_type": subsidy_type.value,
            "consumption": str(consumption),
            "threshold": str(threshold),
            "use_new_formula": use_new_formula,
            "amount": str(result),
        },
    )
    return result


def apply_subsidy(breakdown: ChargeBreakdown, amount: Decimal) -> ChargeBreakdown:
    """Record the subsidy and deduct it after the taxable base."""
    subsidy = Money.of(round_half_up(amount), breakdown.subtotal.currency)
    return replace(
        breakdown,
        subsidy_amount=subsidy,
        gross_after_subsidy=breakdown.gross_before_subsidy - subsidy,
    )
