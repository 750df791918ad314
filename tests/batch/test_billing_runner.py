"""
Tests for BillingRunner: SAVEPOINT-per-customer runs, skip, cancellation,
progress reporting and parallel preview.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from billing_batch import (
    BillingRequest,
    BillingRunner,
    BillingRunStatus,
    CancellationToken,
    CustomerBillingStatus,
    preview_from_cache,
)
from billing_config.schema import BatchSettings, BillingConfig
from billing_kernel.domain.dtos import Fine, SubsidyChangeKind
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.models.boleta import BoletaModel
from billing_kernel.models.fine import FineModel
from billing_kernel.models.subsidy import SubsidyHistoryModel, SubsidyProgramModel
from billing_kernel.services.boleta_service import BoletaService
from billing_kernel.services.sequence_service import SequenceService


def _requests(count, consumption="10"):
    return [BillingRequest(customer_id=uuid4(), consumption=Decimal(consumption)) for _ in range(count)]


def _boleta_count(session):
    return session.scalar(select(func.count()).select_from(BoletaModel))


@pytest.fixture
def runner(session, persisted_tariff, billing_config, deterministic_clock):
    return BillingRunner(session, billing_config, clock=deterministic_clock)


class TestRun:

    def test_all_customers_billed(self, session, runner, march_2024, captured_logs):
        requests = _requests(3)

        result = runner.run(requests, march_2024)

        assert result.status == BillingRunStatus.COMPLETED
        assert (result.succeeded, result.failed, result.skipped) == (3, 0, 0)
        assert result.processed == 3
        assert [r.folio for r in result.results] == [1, 2, 3]
        assert [r.customer_id for r in result.results] == [r.customer_id for r in requests]
        assert all(r.total_amount == Decimal("11000") for r in result.results)
        assert result.started_at == result.completed_at
        assert _boleta_count(session) == 3

        messages = [r["message"] for r in captured_logs()]
        assert "billing_run_started" in messages
        assert "billing_run_finished" in messages
        started = next(r for r in captured_logs() if r["message"] == "billing_run_started")
        assert started["billing_run_id"] == str(result.run_id)

    def test_prior_balance_and_installment(self, runner, march_2024):
        request = BillingRequest(
            customer_id=uuid4(),
            consumption=Decimal("10"),
            prior_balance=Decimal("2500"),
            restructuring_installment=Decimal("1000"),
        )
        result = runner.run([request], march_2024)
        assert result.results[0].total_amount == Decimal("14500")

    def test_rerun_skips_billed_customers(self, session, runner, march_2024):
        requests = _requests(2)
        first = runner.run(requests, march_2024)

        second = runner.run(requests, march_2024)

        assert second.status == BillingRunStatus.COMPLETED
        assert second.skipped == 2
        assert second.succeeded == 0
        assert [r.status for r in second.results] == [CustomerBillingStatus.SKIPPED] * 2
        assert [r.boleta_id for r in second.results] == [r.boleta_id for r in first.results]
        assert _boleta_count(session) == 2

    def test_failed_customer_isolated(self, session, runner, march_2024):
        good = _requests(2)
        bad = BillingRequest(customer_id=uuid4(), consumption=Decimal("-3"))

        result = runner.run([good[0], bad, good[1]], march_2024)

        assert result.status == BillingRunStatus.PARTIALLY_COMPLETED
        assert (result.succeeded, result.failed) == (2, 1)
        failed = result.results[1]
        assert failed.status == CustomerBillingStatus.FAILED
        assert failed.error_code == "INVALID_CONSUMPTION"
        assert failed.boleta_id is None
        assert _boleta_count(session) == 2

    def test_unsupported_subsidy_row_does_not_abort_run(self, session, runner, march_2024):
        """A superseded 30% row loads as no subsidy; the later 50% grant applies."""
        requests = _requests(3)
        subsidized = requests[1].customer_id
        for percentage, effective_from, kind in [
            ("30", date(2020, 1, 1), SubsidyChangeKind.GRANTED),
            ("50", date(2023, 1, 1), SubsidyChangeKind.MODIFIED),
        ]:
            program = SubsidyProgramModel(name=f"Subsidio {percentage}%", percentage=Decimal(percentage))
            session.add(program)
            session.flush()
            session.add(SubsidyHistoryModel(
                customer_id=subsidized,
                program_id=program.id,
                change_kind=kind.value,
                effective_from=effective_from,
                percentage=Decimal(percentage),
            ))
        session.flush()

        result = runner.run(requests, march_2024)

        assert result.status == BillingRunStatus.COMPLETED
        assert result.succeeded == 3
        # 11000 gross less a half subsidy of (10 / 2) * 900 + 2000 / 2
        assert [r.total_amount for r in result.results] == [
            Decimal("11000"), Decimal("5500"), Decimal("11000"),
        ]
        assert _boleta_count(session) == 3

    def test_no_tariff_fails_every_customer(self, session, billing_config):
        runner = BillingRunner(session, billing_config)
        result = runner.run(_requests(2), BillingPeriod.for_month(2023, 6))

        assert result.status == BillingRunStatus.FAILED
        assert {r.error_code for r in result.results} == {"NO_EFFECTIVE_TARIFF"}
        assert _boleta_count(session) == 0

    def test_failure_after_claim_rolls_back_claim(self, session, runner, march_2024, customer_id):
        # A folio collision makes the insert fail after the fine was claimed.
        BoletaService.for_session(session).finalize_boleta(
            uuid4(), BillingPeriod.for_month(2024, 2), Decimal("1"),
        )
        SequenceService(session).reset(SequenceService.BOLETA_FOLIO, 0)
        fine = Fine(
            customer_id=customer_id,
            amount=Decimal("1000"),
            tax_applicable=True,
            applied_on=date(2024, 3, 2),
        )
        session.add(FineModel.from_dto(fine))
        session.flush()

        result = runner.run(
            [BillingRequest(customer_id=customer_id, consumption=Decimal("10"))], march_2024,
        )

        assert result.status == BillingRunStatus.FAILED
        assert result.results[0].error_code == "UNHANDLED_EXCEPTION"
        applied = session.scalar(
            select(FineModel.applied_boleta_id).where(FineModel.id == fine.fine_id)
        )
        assert applied is None
        assert _boleta_count(session) == 1


class TestCancellation:

    def test_cancelled_before_start(self, session, runner, march_2024):
        token = CancellationToken()
        token.cancel("operator")

        result = runner.run(_requests(3), march_2024, cancel_token=token)

        assert result.status == BillingRunStatus.CANCELLED
        assert result.results == ()
        assert _boleta_count(session) == 0

    def test_cancel_between_customers_keeps_finished_work(self, session, runner, march_2024, captured_logs):
        token = CancellationToken()

        result = runner.run(
            _requests(3),
            march_2024,
            cancel_token=token,
            on_progress=lambda progress: token.cancel("stop after first"),
        )

        assert result.status == BillingRunStatus.CANCELLED
        assert result.processed == 1
        assert result.succeeded == 1
        assert _boleta_count(session) == 1
        cancelled = [r for r in captured_logs() if r["message"] == "billing_run_cancelled"]
        assert cancelled[0]["reason"] == "stop after first"

    def test_token_reason(self):
        token = CancellationToken()
        assert not token.is_cancelled
        assert token.reason is None
        token.cancel()
        assert token.is_cancelled
        assert token.reason is None


class TestProgress:

    def test_reported_every_customer(self, runner, march_2024):
        updates = []
        runner.run(_requests(3), march_2024, on_progress=updates.append)

        assert [u.processed for u in updates] == [1, 2, 3]
        assert updates[-1].remaining == 0
        assert updates[-1].fraction_done == 1.0

    def test_reported_every_n_and_at_end(self, session, persisted_tariff, march_2024):
        config = BillingConfig(
            config_id="test",
            version=1,
            utility_name="Test Utility",
            batch=BatchSettings(progress_every=2),
        )
        updates = []
        BillingRunner(session, config).run(_requests(3), march_2024, on_progress=updates.append)

        assert [u.processed for u in updates] == [2, 3]


class TestPreview:

    def test_preview_keeps_order_and_writes_nothing(self, session, runner, march_2024):
        requests = _requests(4) + [BillingRequest(customer_id=uuid4(), consumption=Decimal("-1"))]

        previews = runner.preview(requests, march_2024)

        assert [p.customer_id for p in previews] == [r.customer_id for r in requests]
        assert all(p.ok for p in previews[:4])
        assert previews[0].breakdown.subtotal.amount == Decimal("11000")
        assert not previews[4].ok
        assert previews[4].error_code == "INVALID_CONSUMPTION"
        assert _boleta_count(session) == 0

    def test_preview_from_cache_is_pure(self, runner, march_2024, customer_id, session):
        fine = Fine(
            customer_id=customer_id,
            amount=Decimal("1000"),
            tax_applicable=True,
            applied_on=date(2024, 3, 2),
        )
        session.add(FineModel.from_dto(fine))
        session.flush()
        requests = [BillingRequest(customer_id=customer_id, consumption=Decimal("10"))]
        cache = runner.load_cache(requests, march_2024)

        previews = preview_from_cache(cache, requests, formula_cutoff=date(2024, 4, 1), max_workers=2)

        assert previews[0].breakdown.taxable_charges.amount == Decimal("1000")
        applied = session.scalar(
            select(FineModel.applied_boleta_id).where(FineModel.id == fine.fine_id)
        )
        assert applied is None
