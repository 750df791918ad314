"""
Boleta Assembler - run the charge pipeline and build the final boleta.

The pipeline order is fixed:

    resolve tariff + subsidy
      -> base charges
      -> discounts
      -> fines and reconnections (extend the taxable base)
      -> subsidy (from consumption and tariff rates, not from the fine-inclusive base)
      -> IVA (on the fine-inclusive, pre-subsidy base)
      -> assemble

Reordering changes the taxable base.  compute_charges() is pure;
gather_inputs() is the only step that reads from a repository.

BoletaAssembler wraps the pipeline in a small state machine:

    DRAFT --compute()--> COMPUTED --finalize()--> FINALIZED

While COMPUTED, charges that another run already claimed can be dropped
with drop_charges(), which recomputes from the remaining items.

Usage:
    inputs = gather_inputs(repository, customer_id, period, consumption)
    assembler = BoletaAssembler(inputs)
    computed = assembler.compute()
    boleta = assembler.finalize(boleta_id=uuid4(), folio=1001, due_days=20)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID

from billing_engines.charges import (
    aggregate_discounts,
    applied_discount_ids,
    applied_discount_names,
    apply_discount,
    calculate_base_charges,
)
from billing_engines.fines import FineCharges, apply_taxable_charges, process_fines
from billing_engines.reconnection import ReconnectionCharges, process_reconnections
from billing_engines.subsidy import (
    DEFAULT_FORMULA_CUTOFF,
    SubsidyRates,
    apply_subsidy,
    calculate_subsidy,
    resolve_subsidy,
    uses_new_formula,
)
from billing_engines.tariff import resolve_tariff
from billing_engines.tax import apply_iva
from billing_kernel.domain.currency import format_clp
from billing_kernel.domain.dtos import (
    Boleta,
    BoletaStatus,
    ChargeBreakdown,
    DiscountAllocation,
    Fine,
    ReconnectionEvent,
    SubsidyType,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.ports import BillingRepository
from billing_kernel.domain.tariff import Tariff
from billing_kernel.domain.values import Money, round_half_up
from billing_kernel.exceptions import InvalidBoletaTransitionError, InvalidConsumptionError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.assembler")


# ============================================================================
# Inputs and outputs
# ============================================================================


@dataclass(frozen=True)
class BillingInputs:
    """Everything the pipeline needs for one customer and period."""

    customer_id: UUID
    period: BillingPeriod
    consumption: Decimal
    tariff: Tariff
    subsidy_type: SubsidyType
    discounts: tuple[DiscountAllocation, ...] = ()
    fines: tuple[Fine, ...] = ()
    reconnections: tuple[ReconnectionEvent, ...] = ()


@dataclass(frozen=True)
class ComputedCharges:
    """A breakdown plus the source items it bills."""

    breakdown: ChargeBreakdown
    subsidy_type: SubsidyType
    use_new_formula: bool
    fines: FineCharges
    reconnections: ReconnectionCharges
    discount_names: tuple[str, ...] = ()
    discount_allocation_ids: tuple[UUID, ...] = ()

    @property
    def fine_ids(self) -> tuple[UUID, ...]:
        return self.fines.fine_ids

    @property
    def reconnection_ids(self) -> tuple[UUID, ...]:
        return self.reconnections.event_ids


def gather_inputs(
    repository: BillingRepository,
    customer_id: UUID,
    period: BillingPeriod,
    consumption: Decimal,
) -> BillingInputs:
    """
    Resolve tariff and subsidy and read the candidate charges.

    Raises:
        InvalidConsumptionError: Negative consumption.
        NoEffectiveTariffError: No tariff covers the period end.
        TariffOverlapError: Several tariffs cover the period end.
    """
    if consumption < 0:
        raise InvalidConsumptionError(str(consumption))

    tariff = resolve_tariff(repository.tariffs_for_date(period.end), period.end)
    subsidy_type = resolve_subsidy(
        repository.subsidy_history(customer_id, period.start), period.start,
    )
    return BillingInputs(
        customer_id=customer_id,
        period=period,
        consumption=consumption,
        tariff=tariff,
        subsidy_type=subsidy_type,
        discounts=tuple(repository.discount_allocations(customer_id, period)),
        fines=tuple(repository.pending_fines(customer_id, period)),
        reconnections=tuple(repository.pending_reconnections(customer_id, period.end)),
    )


# ============================================================================
# Pipeline
# ============================================================================


def compute_charges(
    inputs: BillingInputs,
    formula_cutoff: date = DEFAULT_FORMULA_CUTOFF,
    excluded_fine_ids: Iterable[UUID] = (),
    excluded_reconnection_ids: Iterable[UUID] = (),
) -> ComputedCharges:
    """Run the pipeline in its mandated order.  Pure."""
    tariff = inputs.tariff
    period = inputs.period
    skip_fines = frozenset(excluded_fine_ids)
    skip_reconnections = frozenset(excluded_reconnection_ids)

    breakdown = calculate_base_charges(inputs.consumption, tariff)

    breakdown = apply_discount(breakdown, aggregate_discounts(inputs.discounts, period))

    fines = process_fines(
        (f for f in inputs.fines if f.fine_id not in skip_fines), period,
    )
    reconnections = process_reconnections(
        (e for e in inputs.reconnections if e.event_id not in skip_reconnections),
        period.end,
        tariff,
    )
    breakdown = apply_taxable_charges(
        breakdown,
        taxable=fines.taxable_total + reconnections.taxable_total,
        untaxed=fines.untaxed_total + reconnections.exempt_total,
    )

    new_formula = uses_new_formula(period.start, formula_cutoff)
    subsidy = calculate_subsidy(
        inputs.subsidy_type,
        inputs.consumption,
        SubsidyRates.from_tariff(tariff),
        tariff.fixed_charge,
        new_formula,
    )
    breakdown = apply_subsidy(breakdown, subsidy)

    breakdown = apply_iva(breakdown, tariff.tax_rate)

    return ComputedCharges(
        breakdown=breakdown,
        subsidy_type=inputs.subsidy_type,
        use_new_formula=new_formula,
        fines=fines,
        reconnections=reconnections,
        discount_names=applied_discount_names(inputs.discounts, period),
        discount_allocation_ids=applied_discount_ids(inputs.discounts, period),
    )


def _format_quantity(value: Decimal) -> str:
    return format(value.normalize(), "f")


def build_notes(consumption: Decimal, computed: ComputedCharges) -> str:
    """Printed remarks: consumption and every non-zero adjustment."""
    charges = computed.breakdown
    notes = [f"Consumo: {_format_quantity(consumption)} m³."]

    if charges.discount_amount.is_positive:
        text = f"Descuento aplicado: {format_clp(charges.discount_amount.amount)}"
        if computed.discount_names:
            text += f" ({', '.join(computed.discount_names)})"
        notes.append(text + ".")

    if computed.fines.taxable_total > 0:
        notes.append(f"Multa aplicada: {format_clp(computed.fines.taxable_total)}.")

    if computed.reconnections.taxable_total > 0:
        notes.append(
            f"Reposición de servicio: {format_clp(computed.reconnections.taxable_total)}."
        )

    if charges.untaxed_charges.is_positive:
        notes.append(f"Cargo adicional: {format_clp(charges.untaxed_charges.amount)}.")

    return " ".join(notes)


# ============================================================================
# State machine
# ============================================================================


class AssemblyState(str, Enum):
    DRAFT = "draft"
    COMPUTED = "computed"
    FINALIZED = "finalized"


_ALLOWED: dict[AssemblyState, frozenset[AssemblyState]] = {
    AssemblyState.DRAFT: frozenset({AssemblyState.COMPUTED}),
    AssemblyState.COMPUTED: frozenset({AssemblyState.COMPUTED, AssemblyState.FINALIZED}),
    AssemblyState.FINALIZED: frozenset(),
}


class BoletaAssembler:
    """
    One customer's boleta from resolved inputs to a finalized Boleta.

    Persistence and claiming happen outside; the assembler only decides
    amounts.  Failures before finalize() leave nothing to undo.
    """

    def __init__(
        self,
        inputs: BillingInputs,
        formula_cutoff: date = DEFAULT_FORMULA_CUTOFF,
    ):
        self._inputs = inputs
        self._formula_cutoff = formula_cutoff
        self._state = AssemblyState.DRAFT
        self._computed: ComputedCharges | None = None
        self._dropped_fines: set[UUID] = set()
        self._dropped_reconnections: set[UUID] = set()

    @property
    def state(self) -> AssemblyState:
        return self._state

    @property
    def inputs(self) -> BillingInputs:
        return self._inputs

    @property
    def computed(self) -> ComputedCharges:
        if self._computed is None:
            raise InvalidBoletaTransitionError(self._state.value, AssemblyState.COMPUTED.value)
        return self._computed

    def _transition(self, target: AssemblyState) -> None:
        if target not in _ALLOWED[self._state]:
            raise InvalidBoletaTransitionError(self._state.value, target.value)
        self._state = target

    def compute(self) -> ComputedCharges:
        """Derive every amount.  DRAFT -> COMPUTED."""
        self._transition(AssemblyState.COMPUTED)
        self._computed = compute_charges(
            self._inputs,
            self._formula_cutoff,
            self._dropped_fines,
            self._dropped_reconnections,
        )
        return self._computed

    def drop_charges(
        self,
        fine_ids: Iterable[UUID] = (),
        reconnection_ids: Iterable[UUID] = (),
    ) -> ComputedCharges:
        """Exclude items claimed elsewhere and recompute.  Only while COMPUTED."""
        if self._state != AssemblyState.COMPUTED:
            raise InvalidBoletaTransitionError(self._state.value, AssemblyState.COMPUTED.value)
        self._dropped_fines.update(fine_ids)
        self._dropped_reconnections.update(reconnection_ids)
        return self.compute()

    def finalize(
        self,
        boleta_id: UUID,
        folio: int,
        due_days: int,
        prior_balance: Decimal = Decimal("0"),
        restructuring_installment: Decimal = Decimal("0"),
    ) -> Boleta:
        """
        Build the immutable Boleta.  COMPUTED -> FINALIZED.

        Tax-exempt charges ride with the restructuring amount, outside the
        taxed net.
        """
        computed = self.computed
        self._transition(AssemblyState.FINALIZED)

        inputs = self._inputs
        charges = computed.breakdown
        currency = charges.subtotal.currency

        prior = Money.of(round_half_up(prior_balance), currency)
        restructuring = (
            Money.of(round_half_up(restructuring_installment), currency)
            + charges.untaxed_charges
        )
        total = charges.gross_after_subsidy + prior + restructuring

        boleta = Boleta(
            boleta_id=boleta_id,
            customer_id=inputs.customer_id,
            folio=folio,
            period_start=inputs.period.start,
            period_end=inputs.period.end,
            issue_date=inputs.period.end,
            due_date=inputs.period.end + timedelta(days=due_days),
            consumption_m3=inputs.consumption,
            charges=charges,
            prior_balance=prior,
            other_charges=charges.taxable_charges,
            restructuring_amount=restructuring,
            interest_amount=Money.zero(currency),
            total_amount=total,
            tariff_id=inputs.tariff.tariff_id,
            status=BoletaStatus.PENDING,
            notes=build_notes(inputs.consumption, computed),
            fine_ids=computed.fine_ids,
            reconnection_ids=computed.reconnection_ids,
            discount_allocation_ids=computed.discount_allocation_ids,
        )
        logger.debug(
            "boleta_assembled",
            extra={
                "boleta_id": str(boleta_id),
                "folio": folio,
                "total_amount": str(total.amount),
            },
        )
        return boleta
