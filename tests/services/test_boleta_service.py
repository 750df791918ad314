"""
Tests for BoletaService against the SQL collaborators.

Each test runs on a fresh in-memory schema with the separate tariff
(fixed 2000, water 500, sewage 300, treatment 100, IVA 19%) persisted.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from billing_kernel.domain.dtos import Fine, ReconnectionEvent, ServiceCutStatus
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.exceptions import BoletaAlreadyExistsError, NoEffectiveTariffError
from billing_kernel.models.boleta import BoletaModel
from billing_kernel.models.discount import DiscountAllocationModel, DiscountModel
from billing_kernel.models.fine import FineModel
from billing_kernel.models.service_cut import ServiceCutModel
from billing_kernel.services.boleta_repository import BoletaRepository
from billing_kernel.services.boleta_service import BoletaService


@pytest.fixture
def service(session, persisted_tariff):
    return BoletaService.for_session(session)


def _add_fine(session, customer_id, amount="1000", tax_applicable=True):
    fine = Fine(
        customer_id=customer_id,
        amount=Decimal(amount),
        tax_applicable=tax_applicable,
        applied_on=date(2024, 3, 3),
        reason="Riego en horario restringido",
    )
    session.add(FineModel.from_dto(fine))
    session.flush()
    return fine


def _add_restored_cut(session, customer_id, sequence_number=1):
    event = ReconnectionEvent(
        customer_id=customer_id,
        status=ServiceCutStatus.RESTORED,
        restored_at=date(2024, 3, 20),
        sequence_number=sequence_number,
    )
    session.add(ServiceCutModel.from_dto(event))
    session.flush()
    return event


def _add_discount(session, customer_id, amount, valid_from, valid_to=None, name="Tercera edad"):
    discount = DiscountModel(name=name, valid_from=valid_from, valid_to=valid_to, active=True)
    allocation = DiscountAllocationModel(
        discount=discount, customer_id=customer_id, amount=Decimal(amount),
    )
    session.add_all([discount, allocation])
    session.flush()
    return allocation.id


def _applied_boleta(session, model, row_id):
    return session.scalar(select(model.applied_boleta_id).where(model.id == row_id))


class TestComputeBoleta:

    def test_preview_writes_nothing(self, session, service, customer_id, march_2024):
        fine = _add_fine(session, customer_id)

        charges = service.compute_boleta(customer_id, march_2024, Decimal("10"))

        assert charges.subtotal.amount == Decimal("11000")
        assert charges.taxable_charges.amount == Decimal("1000")
        assert session.scalar(select(BoletaModel.id)) is None
        assert _applied_boleta(session, FineModel, fine.fine_id) is None

    def test_no_tariff_for_period(self, service, customer_id):
        with pytest.raises(NoEffectiveTariffError):
            service.compute_boleta(customer_id, BillingPeriod.for_month(2023, 6), Decimal("10"))


class TestFinalizeBoleta:

    def test_persists_and_claims(self, session, service, customer_id, march_2024, captured_logs):
        fine = _add_fine(session, customer_id)
        cut = _add_restored_cut(session, customer_id)

        boleta = service.finalize_boleta(
            customer_id, march_2024, Decimal("10"), prior_balance=Decimal("1200"),
        )

        assert boleta.folio == 1
        assert boleta.fine_ids == (fine.fine_id,)
        assert boleta.reconnection_ids == (cut.event_id,)
        assert boleta.charges.taxable_charges.amount == Decimal("6000")
        assert boleta.total_amount.amount == Decimal("18200")

        assert _applied_boleta(session, FineModel, fine.fine_id) == boleta.boleta_id
        assert _applied_boleta(session, ServiceCutModel, cut.event_id) == boleta.boleta_id

        stored = BoletaRepository(session).get(boleta.boleta_id)
        assert stored is not None
        assert stored.folio == 1
        assert stored.total_amount.amount == Decimal("18200")
        assert stored.charges.net_amount == boleta.charges.net_amount
        assert stored.notes == boleta.notes

        finalized = [r for r in captured_logs() if r["message"] == "boleta_finalized"]
        assert len(finalized) == 1
        assert finalized[0]["customer_id"] == str(customer_id)
        assert finalized[0]["period"] == "2024-03"

    def test_links_applied_discounts(self, session, service, customer_id, march_2024):
        recurring = _add_discount(session, customer_id, "1500", date(2024, 1, 1))
        expired = _add_discount(
            session, customer_id, "800", date(2023, 1, 1), date(2023, 12, 31), name="Vencido",
        )

        march = service.finalize_boleta(customer_id, march_2024, Decimal("10"))

        assert march.discount_allocation_ids == (recurring,)
        assert march.charges.discount_amount.amount == Decimal("1500")
        assert _applied_boleta(session, DiscountAllocationModel, recurring) == march.boleta_id
        assert _applied_boleta(session, DiscountAllocationModel, expired) is None

        april = service.finalize_boleta(
            customer_id, BillingPeriod.for_month(2024, 4), Decimal("10"),
        )

        assert april.discount_allocation_ids == (recurring,)
        assert _applied_boleta(session, DiscountAllocationModel, recurring) == april.boleta_id

    def test_discount_link_rolled_back_with_boleta(self, session, service, customer_id, march_2024):
        allocation = _add_discount(session, customer_id, "1500", date(2024, 1, 1))

        savepoint = session.begin_nested()
        service.finalize_boleta(customer_id, march_2024, Decimal("10"))
        savepoint.rollback()

        assert _applied_boleta(session, DiscountAllocationModel, allocation) is None
        assert session.scalar(select(BoletaModel.id)) is None

    def test_second_finalize_same_period_rejected(self, session, service, customer_id, march_2024):
        first = service.finalize_boleta(customer_id, march_2024, Decimal("10"))

        with pytest.raises(BoletaAlreadyExistsError) as exc_info:
            service.finalize_boleta(customer_id, march_2024, Decimal("12"))

        assert exc_info.value.boleta_id == str(first.boleta_id)
        assert len(BoletaRepository(session).for_period(march_2024.start)) == 1

    def test_fine_billed_once_across_periods(self, session, service, customer_id, march_2024):
        fine = _add_fine(session, customer_id)
        march = service.finalize_boleta(customer_id, march_2024, Decimal("10"))
        april = service.finalize_boleta(
            customer_id, BillingPeriod.for_month(2024, 4), Decimal("10"),
        )

        assert march.fine_ids == (fine.fine_id,)
        assert april.fine_ids == ()
        assert april.charges.taxable_charges.is_zero

    def test_folios_strictly_increase(self, session, service, march_2024):
        from uuid import uuid4

        folios = [
            service.finalize_boleta(uuid4(), march_2024, Decimal("5")).folio
            for _ in range(3)
        ]
        assert folios == [1, 2, 3]
        by_folio = BoletaRepository(session).for_period(march_2024.start)
        assert [b.folio for b in by_folio] == [1, 2, 3]

    def test_configured_due_days(self, session, persisted_tariff, customer_id, march_2024):
        service = BoletaService.for_session(session, due_days=10)
        boleta = service.finalize_boleta(customer_id, march_2024, Decimal("10"))
        assert boleta.due_date == date(2024, 4, 10)

    def test_existing_boleta_id(self, service, customer_id, march_2024):
        assert service.existing_boleta_id(customer_id, march_2024) is None
        boleta = service.finalize_boleta(customer_id, march_2024, Decimal("10"))
        assert service.existing_boleta_id(customer_id, march_2024) == boleta.boleta_id


class TestLostClaim:
    """A charge claimed by someone else between compute and claim is dropped."""

    def test_claimed_elsewhere_is_dropped(self, session, service, customer_id, march_2024, captured_logs):
        from uuid import uuid4

        fine = _add_fine(session, customer_id)
        service.compute_boleta(customer_id, march_2024, Decimal("10"))

        other_boleta = uuid4()
        original_claim = service._claimer.claim_fine

        def claim_after_competitor(fine_id, boleta_id):
            session.execute(
                FineModel.__table__.update()
                .where(FineModel.__table__.c.id == str(fine_id))
                .values(applied_boleta_id=str(other_boleta))
            )
            original_claim(fine_id, boleta_id)

        service._claimer.claim_fine = claim_after_competitor

        boleta = service.finalize_boleta(customer_id, march_2024, Decimal("10"))

        assert boleta.fine_ids == ()
        assert boleta.charges.taxable_charges.is_zero
        assert boleta.charges.subtotal.amount == Decimal("11000")
        assert _applied_boleta(session, FineModel, fine.fine_id) == other_boleta
        conflicts = [r for r in captured_logs() if r["message"] == "charge_claim_conflict"]
        assert conflicts and conflicts[0]["charge_kind"] == "fine"
