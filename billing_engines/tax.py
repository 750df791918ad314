"""
IVA Calculator - split a tax-inclusive gross amount into net and tax.

Pure functions. No I/O.

    net = round_half_up(gross / (1 + rate))
    tax = gross - net

The tax is the residual, never rounded independently, so
``net + tax == gross`` holds exactly for every rounded gross.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from billing_kernel.domain.dtos import ChargeBreakdown
from billing_kernel.domain.values import Money


@dataclass(frozen=True)
class IvaSplit:
    net: Money
    tax: Money


def split_iva(gross: Money, tax_rate: Decimal) -> IvaSplit:
    """
    Split ``gross`` (rounded to the currency's unit first) at ``tax_rate``.

    Raises:
        ValueError: ``tax_rate`` outside [0, 1).
    """
    if not (Decimal("0") <= tax_rate < Decimal("1")):
        raise ValueError(f"Tax rate must be in [0, 1): {tax_rate}")
    gross = gross.round()
    net = (gross / (Decimal("1") + tax_rate)).round()
    return IvaSplit(net=net, tax=gross - net)


def apply_iva(breakdown: ChargeBreakdown, tax_rate: Decimal) -> ChargeBreakdown:
    """Split the pre-subsidy taxable base."""
    split = split_iva(breakdown.gross_before_subsidy, tax_rate)
    return replace(breakdown, net_amount=split.net, tax_amount=split.tax)
