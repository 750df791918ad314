"""
Billing Engines - pure charge computation.

Every function here is deterministic and free of I/O apart from logging.
Inputs come from a BillingRepository (or a BillingCache) via
``assembler.gather_inputs``; persistence and claiming live in
``billing_kernel.services``.
"""

from billing_engines.assembler import (
    AssemblyState,
    BillingInputs,
    BoletaAssembler,
    ComputedCharges,
    build_notes,
    compute_charges,
    gather_inputs,
)
from billing_engines.charges import (
    aggregate_discounts,
    applied_discount_ids,
    apply_discount,
    calculate_base_charges,
    is_discount_applicable,
)
from billing_engines.fines import (
    FineCharges,
    apply_taxable_charges,
    is_fine_eligible,
    process_fines,
)
from billing_engines.reconnection import (
    ReconnectionCharges,
    is_reconnection_eligible,
    process_reconnections,
    process_reconnections_from_cache,
)
from billing_engines.subsidy import (
    DEFAULT_FORMULA_CUTOFF,
    LEGACY_THRESHOLD,
    MULTIPLIERS,
    NEW_THRESHOLDS,
    SubsidyRates,
    apply_subsidy,
    calculate_subsidy,
    resolve_subsidy,
    subsidy_threshold,
    uses_new_formula,
)
from billing_engines.tariff import find_overlaps, resolve_tariff, validate_tariff_schedule
from billing_engines.tax import IvaSplit, apply_iva, split_iva

__all__ = [
    "AssemblyState",
    "BillingInputs",
    "BoletaAssembler",
    "ComputedCharges",
    "build_notes",
    "compute_charges",
    "gather_inputs",
    "aggregate_discounts",
    "applied_discount_ids",
    "apply_discount",
    "calculate_base_charges",
    "is_discount_applicable",
    "FineCharges",
    "apply_taxable_charges",
    "is_fine_eligible",
    "process_fines",
    "ReconnectionCharges",
    "is_reconnection_eligible",
    "process_reconnections",
    "process_reconnections_from_cache",
    "DEFAULT_FORMULA_CUTOFF",
    "LEGACY_THRESHOLD",
    "MULTIPLIERS",
    "NEW_THRESHOLDS",
    "SubsidyRates",
    "apply_subsidy",
    "calculate_subsidy",
    "resolve_subsidy",
    "subsidy_threshold",
    "uses_new_formula",
    "find_overlaps",
    "resolve_tariff",
    "validate_tariff_schedule",
    "IvaSplit",
    "apply_iva",
    "split_iva",
]
