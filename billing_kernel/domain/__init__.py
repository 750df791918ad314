"""Pure domain layer: value objects, DTOs, ports. No I/O."""

from billing_kernel.domain.cache import BillingCache
from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.currency import CurrencyRegistry, format_clp, parse_clp
from billing_kernel.domain.dtos import (
    Boleta,
    BoletaStatus,
    ChargeBreakdown,
    DiscountAllocation,
    Fine,
    ReconnectionEvent,
    ServiceCutStatus,
    SubsidyAssignment,
    SubsidyChangeKind,
    SubsidyType,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.ports import (
    BillingRepository,
    BoletaWriter,
    ChargeClaimer,
    FolioAllocator,
)
from billing_kernel.domain.tariff import (
    CombinedRates,
    RateModel,
    SeparateRates,
    SewageRates,
    Tariff,
    sewage_rates,
)
from billing_kernel.domain.values import Currency, Money, round_half_up, sum_money

__all__ = [
    "BillingCache",
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "CurrencyRegistry",
    "format_clp",
    "parse_clp",
    "Currency",
    "Money",
    "round_half_up",
    "sum_money",
    "BillingPeriod",
    "Tariff",
    "RateModel",
    "SeparateRates",
    "CombinedRates",
    "SewageRates",
    "sewage_rates",
    "SubsidyType",
    "SubsidyChangeKind",
    "SubsidyAssignment",
    "DiscountAllocation",
    "Fine",
    "ServiceCutStatus",
    "ReconnectionEvent",
    "ChargeBreakdown",
    "BoletaStatus",
    "Boleta",
    "BillingRepository",
    "ChargeClaimer",
    "BoletaWriter",
    "FolioAllocator",
]
