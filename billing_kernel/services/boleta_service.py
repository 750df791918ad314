"""
BoletaService -- compute and finalize a customer's boleta for a period.

Responsibility:
    The two operations callers use:

    compute_boleta   pure preview, returns a ChargeBreakdown, writes nothing.
    finalize_boleta  computes, claims the billed fines and reconnections,
                     allocates a folio and persists the Boleta.

Architecture position:
    Kernel > Services.  Works only through the collaborator ports
    (BillingRepository, ChargeClaimer, BoletaWriter, FolioAllocator), so
    the same code runs against SQL (``for_session``), a batch cache, or
    in-memory doubles.

Invariants enforced:
    - A customer has at most one boleta per period start.  The check runs
      before any claim or folio allocation.
    - A fine or reconnection is billed by at most one boleta.  Losing a
      claim drops that item and the breakdown is recomputed from what this
      boleta actually owns.
    - Applied discount allocations are linked to the boleta in the same
      transaction.
    - Nothing is committed here.  Claims, folio and boleta row share the
      caller's transaction.

Failure modes:
    - ComputationError subclasses from the pipeline (no tariff, negative
      consumption).
    - BoletaAlreadyExistsError for a second finalize of the same period.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from billing_engines.assembler import BoletaAssembler, gather_inputs
from billing_engines.subsidy import DEFAULT_FORMULA_CUTOFF
from billing_kernel.domain.dtos import Boleta, ChargeBreakdown
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.ports import (
    BillingRepository,
    BoletaWriter,
    ChargeClaimer,
    FolioAllocator,
)
from billing_kernel.exceptions import BoletaAlreadyExistsError, ChargeAlreadyClaimedError
from billing_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.boleta")

DEFAULT_DUE_DAYS = 20


class BoletaService:
    """
    Boleta computation and finalization over injected ports.

    Usage:
        with session_scope() as session:
            service = BoletaService.for_session(session)
            boleta = service.finalize_boleta(customer_id, period, Decimal("12"))
    """

    def __init__(
        self,
        repository: BillingRepository,
        claimer: ChargeClaimer,
        writer: BoletaWriter,
        folios: FolioAllocator,
        formula_cutoff: date = DEFAULT_FORMULA_CUTOFF,
        due_days: int = DEFAULT_DUE_DAYS,
    ):
        self._repository = repository
        self._claimer = claimer
        self._writer = writer
        self._folios = folios
        self._formula_cutoff = formula_cutoff
        self._due_days = due_days

    @classmethod
    def for_session(
        cls,
        session: Session,
        formula_cutoff: date = DEFAULT_FORMULA_CUTOFF,
        due_days: int = DEFAULT_DUE_DAYS,
        folio_sequence: str = "boleta_folio",
        repository: BillingRepository | None = None,
    ) -> BoletaService:
        """SQL-backed service.  ``repository`` overrides reads (e.g. a BillingCache)."""
        from billing_kernel.selectors.billing_selector import BillingSelector
        from billing_kernel.services.boleta_repository import BoletaRepository
        from billing_kernel.services.claim_service import ChargeClaimService
        from billing_kernel.services.sequence_service import (
            SequenceFolioAllocator,
            SequenceService,
        )

        return cls(
            repository=repository if repository is not None else BillingSelector(session),
            claimer=ChargeClaimService(session),
            writer=BoletaRepository(session),
            folios=SequenceFolioAllocator(SequenceService(session), folio_sequence),
            formula_cutoff=formula_cutoff,
            due_days=due_days,
        )

    def _assembler(
        self, customer_id: UUID, period: BillingPeriod, consumption: Decimal,
    ) -> BoletaAssembler:
        inputs = gather_inputs(self._repository, customer_id, period, consumption)
        return BoletaAssembler(inputs, self._formula_cutoff)

    def compute_boleta(
        self,
        customer_id: UUID,
        period: BillingPeriod,
        consumption: Decimal,
    ) -> ChargeBreakdown:
        """
        Preview the charges.  No claim, no folio, no write.

        Raises:
            ComputationError: The breakdown cannot be produced.
        """
        return self._assembler(customer_id, period, consumption).compute().breakdown

    def existing_boleta_id(self, customer_id: UUID, period: BillingPeriod) -> UUID | None:
        return self._writer.existing_boleta_id(customer_id, period.start)

    def finalize_boleta(
        self,
        customer_id: UUID,
        period: BillingPeriod,
        consumption: Decimal,
        prior_balance: Decimal = Decimal("0"),
        restructuring_installment: Decimal = Decimal("0"),
    ) -> Boleta:
        """
        Compute, claim, number and persist the boleta.

        Args:
            customer_id: Customer being billed.
            period: Billing period.
            consumption: Metered m³ for the period.
            prior_balance: Unpaid balance carried from earlier boletas.
            restructuring_installment: Installment of an active debt
                restructuring plan due this period.

        Raises:
            ComputationError: The breakdown cannot be produced.
            BoletaAlreadyExistsError: The customer already has a boleta
                for this period.
        """
        with LogContext.bind(customer_id=str(customer_id), period=period.label):
            assembler = self._assembler(customer_id, period, consumption)
            computed = assembler.compute()

            existing = self._writer.existing_boleta_id(customer_id, period.start)
            if existing is not None:
                raise BoletaAlreadyExistsError(
                    str(customer_id), period.start.isoformat(), str(existing),
                )

            boleta_id = uuid4()
            folio = self._folios.next_folio()

            with LogContext.bind(boleta_id=str(boleta_id)):
                lost_fines = self._claim_all(
                    computed.fine_ids, boleta_id, self._claimer.claim_fine,
                )
                lost_reconnections = self._claim_all(
                    computed.reconnection_ids, boleta_id, self._claimer.claim_reconnection,
                )
                if lost_fines or lost_reconnections:
                    assembler.drop_charges(lost_fines, lost_reconnections)

                boleta = assembler.finalize(
                    boleta_id=boleta_id,
                    folio=folio,
                    due_days=self._due_days,
                    prior_balance=prior_balance,
                    restructuring_installment=restructuring_installment,
                )
                self._writer.save(boleta)
                self._writer.link_discounts(boleta.discount_allocation_ids, boleta_id)

                logger.info(
                    "boleta_finalized",
                    extra={
                        "folio": folio,
                        "total_amount": str(boleta.total_amount.amount),
                        "fine_count": len(boleta.fine_ids),
                        "reconnection_count": len(boleta.reconnection_ids),
                        "discount_count": len(boleta.discount_allocation_ids),
                    },
                )
            return boleta

    @staticmethod
    def _claim_all(
        charge_ids: Iterable[UUID],
        boleta_id: UUID,
        claim: Callable[[UUID, UUID], None],
    ) -> list[UUID]:
        """Claim each id; return the ids another boleta already owns."""
        lost: list[UUID] = []
        for charge_id in charge_ids:
            try:
                claim(charge_id, boleta_id)
            except ChargeAlreadyClaimedError as exc:
                logger.warning(
                    "charge_claim_conflict",
                    extra={"charge_kind": exc.charge_kind, "charge_id": exc.charge_id},
                )
                lost.append(charge_id)
        return lost
