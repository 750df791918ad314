"""
Tariff -- time-boxed rates and charges, and the sewage/treatment rate model.

The tariff schema migrated from separate sewage and treatment rates to a
single combined rate.  Both shapes are represented by a tagged variant,
``RateModel = SeparateRates | CombinedRates``, resolved once when a tariff
is built.  Downstream code matches on the variant exhaustively instead of
probing nullable columns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Union
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class SeparateRates:
    """Legacy shape: sewage and treatment billed per m³ separately."""

    sewage_rate_per_m3: Decimal
    treatment_rate_per_m3: Decimal


@dataclass(frozen=True, slots=True)
class CombinedRates:
    """Current shape: one per-m³ rate covering sewage and treatment."""

    sewage_treatment_rate_per_m3: Decimal


RateModel = Union[SeparateRates, CombinedRates]


@dataclass(frozen=True, slots=True)
class SewageRates:
    """Sewage/treatment rates flattened for arithmetic.

    Under ``CombinedRates`` the combined value sits in ``sewage`` and
    ``treatment`` is zero, so sums never count the combined rate twice.
    """

    sewage: Decimal
    treatment: Decimal


def sewage_rates(model: RateModel) -> SewageRates:
    """Flatten a rate model into (sewage, treatment)."""
    match model:
        case SeparateRates(sewage_rate_per_m3=sewage, treatment_rate_per_m3=treatment):
            return SewageRates(sewage=sewage, treatment=treatment)
        case CombinedRates(sewage_treatment_rate_per_m3=combined):
            return SewageRates(sewage=combined, treatment=Decimal("0"))
    raise TypeError(f"Unknown rate model: {type(model).__name__}")


@dataclass(frozen=True, slots=True)
class Tariff:
    """
    Rates in effect over ``[effective_from, effective_to)``.

    ``effective_to`` of None means open-ended.  ``tax_rate`` is fractional
    (0.19 for 19% IVA).
    """

    effective_from: date
    effective_to: date | None
    fixed_charge: Decimal
    water_rate_per_m3: Decimal
    rate_model: RateModel
    reconnection_cost_1: Decimal
    reconnection_cost_2: Decimal
    tax_rate: Decimal
    monthly_interest_rate: Decimal = Decimal("0")
    interest_grace_days: int = 30
    currency: str = "CLP"
    tariff_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.effective_to is not None and self.effective_to <= self.effective_from:
            raise ValueError(
                f"Tariff range is empty: [{self.effective_from}, {self.effective_to})"
            )
        if not (Decimal("0") <= self.tax_rate < Decimal("1")):
            raise ValueError(f"Tax rate must be in [0, 1): {self.tax_rate}")

    def covers(self, billing_date: date) -> bool:
        if billing_date < self.effective_from:
            return False
        return self.effective_to is None or billing_date < self.effective_to

    @property
    def is_combined(self) -> bool:
        return isinstance(self.rate_model, CombinedRates)

    def reconnection_cost(self, sequence_number: int | None) -> Decimal:
        """Cost of a reconnection: 2 selects the second cost, anything else the first."""
        if sequence_number == 2:
            return self.reconnection_cost_2
        return self.reconnection_cost_1
