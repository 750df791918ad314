"""
BillingRunner -- monthly billing over many customers.

Contract:
    ``run()`` finalizes one boleta per requested customer, each inside its
    own SAVEPOINT, from a BillingCache loaded once at the start.
    ``preview()`` computes breakdowns concurrently from the same kind of
    cache and writes nothing.

Invariants enforced:
    - SAVEPOINT isolation per customer: a failure rolls back that
      customer's claims, folio and boleta only.
    - Cancellation is checked between customers, never inside one.
      Boletas finalized before the cancel stay.
    - A customer that already has a boleta for the period is SKIPPED.
    - Timestamps come from the injected Clock.

Non-goals:
    - Does NOT call ``session.commit()``.  The caller decides whether the
      run's work is committed.
    - Does NOT retry failed customers.  A new run bills whatever is still
      unbilled.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from billing_batch.domain.types import (
    BillingRequest,
    BillingRunProgress,
    BillingRunResult,
    BillingRunStatus,
    CancellationToken,
    CustomerBillingResult,
    CustomerBillingStatus,
    PreviewResult,
)
from billing_config.schema import BillingConfig
from billing_engines.assembler import compute_charges, gather_inputs
from billing_kernel.domain.cache import BillingCache
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.exceptions import BillingKernelError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.selectors.billing_selector import BillingSelector
from billing_kernel.services.boleta_service import BoletaService

logger = get_logger("batch.runner")

ProgressCallback = Callable[[BillingRunProgress], None]


class BillingRunner:
    """Billing run engine with SAVEPOINT-per-customer isolation."""

    def __init__(
        self,
        session: Session,
        config: BillingConfig,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def load_cache(
        self, requests: Sequence[BillingRequest], period: BillingPeriod,
    ) -> BillingCache:
        return BillingSelector(self._session).load_cache(
            (r.customer_id for r in requests), period,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        requests: Sequence[BillingRequest],
        period: BillingPeriod,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
        run_id: UUID | None = None,
    ) -> BillingRunResult:
        """Finalize boletas for ``requests`` in order."""
        run_id = run_id or uuid4()
        start_time = time.monotonic()
        started_at = self._clock.now()
        total = len(requests)

        with LogContext.bind(billing_run_id=str(run_id), period=period.label):
            logger.info("billing_run_started", extra={"total": total})

            cache = self.load_cache(requests, period)
            service = BoletaService.for_session(
                self._session,
                formula_cutoff=self._config.subsidy_formula_cutoff,
                due_days=self._config.due_days,
                folio_sequence=self._config.folio_sequence,
                repository=cache,
            )

            results: list[CustomerBillingResult] = []
            succeeded = failed = skipped = 0
            cancelled = False

            for index, request in enumerate(requests):
                if cancel_token is not None and cancel_token.is_cancelled:
                    cancelled = True
                    logger.warning(
                        "billing_run_cancelled",
                        extra={
                            "processed": len(results),
                            "total": total,
                            "reason": cancel_token.reason,
                        },
                    )
                    break

                result = self._bill_customer(service, index, request, period)
                results.append(result)
                if result.status == CustomerBillingStatus.SUCCEEDED:
                    succeeded += 1
                elif result.status == CustomerBillingStatus.SKIPPED:
                    skipped += 1
                else:
                    failed += 1

                if on_progress is not None and (
                    len(results) % self._config.batch.progress_every == 0
                    or len(results) == total
                ):
                    on_progress(BillingRunProgress(
                        run_id=run_id,
                        processed=len(results),
                        succeeded=succeeded,
                        failed=failed,
                        skipped=skipped,
                        total=total,
                    ))

            if cancelled:
                status = BillingRunStatus.CANCELLED
            elif failed == 0:
                status = BillingRunStatus.COMPLETED
            elif succeeded == 0 and skipped == 0:
                status = BillingRunStatus.FAILED
            else:
                status = BillingRunStatus.PARTIALLY_COMPLETED

            duration = int((time.monotonic() - start_time) * 1000)
            logger.info(
                "billing_run_finished",
                extra={
                    "status": status.value,
                    "succeeded": succeeded,
                    "failed": failed,
                    "skipped": skipped,
                    "duration_ms": duration,
                },
            )

        return BillingRunResult(
            run_id=run_id,
            period=period,
            status=status,
            total=total,
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            results=tuple(results),
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=duration,
        )

    def _bill_customer(
        self,
        service: BoletaService,
        index: int,
        request: BillingRequest,
        period: BillingPeriod,
    ) -> CustomerBillingResult:
        item_start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - item_start) * 1000)

        existing = service.existing_boleta_id(request.customer_id, period)
        if existing is not None:
            return CustomerBillingResult(
                item_index=index,
                customer_id=request.customer_id,
                status=CustomerBillingStatus.SKIPPED,
                boleta_id=existing,
                duration_ms=elapsed(),
            )

        savepoint = self._session.begin_nested()
        try:
            boleta = service.finalize_boleta(
                request.customer_id,
                period,
                request.consumption,
                prior_balance=request.prior_balance,
                restructuring_installment=request.restructuring_installment,
            )
            savepoint.commit()
        except BillingKernelError as exc:
            savepoint.rollback()
            logger.warning(
                "customer_billing_failed",
                extra={"failed_customer": str(request.customer_id), "error_code": exc.code},
            )
            return CustomerBillingResult(
                item_index=index,
                customer_id=request.customer_id,
                status=CustomerBillingStatus.FAILED,
                error_code=exc.code,
                error_message=str(exc),
                duration_ms=elapsed(),
            )
        except Exception as exc:
            savepoint.rollback()
            logger.exception(
                "customer_billing_failed",
                extra={"failed_customer": str(request.customer_id)},
            )
            return CustomerBillingResult(
                item_index=index,
                customer_id=request.customer_id,
                status=CustomerBillingStatus.FAILED,
                error_code="UNHANDLED_EXCEPTION",
                error_message=str(exc),
                duration_ms=elapsed(),
            )

        return CustomerBillingResult(
            item_index=index,
            customer_id=request.customer_id,
            status=CustomerBillingStatus.SUCCEEDED,
            boleta_id=boleta.boleta_id,
            folio=boleta.folio,
            total_amount=boleta.total_amount.amount,
            duration_ms=elapsed(),
        )

    # -------------------------------------------------------------------------
    # Preview
    # -------------------------------------------------------------------------

    def preview(
        self,
        requests: Sequence[BillingRequest],
        period: BillingPeriod,
        max_workers: int | None = None,
        cache: BillingCache | None = None,
    ) -> tuple[PreviewResult, ...]:
        """Compute every breakdown in a thread pool.  Results keep request order."""
        cache = cache if cache is not None else self.load_cache(requests, period)
        return preview_from_cache(
            cache,
            requests,
            formula_cutoff=self._config.subsidy_formula_cutoff,
            max_workers=max_workers or self._config.batch.max_workers,
        )


def preview_from_cache(
    cache: BillingCache,
    requests: Sequence[BillingRequest],
    formula_cutoff: date,
    max_workers: int = 4,
) -> tuple[PreviewResult, ...]:
    """Compute breakdowns concurrently from an immutable cache.  No I/O."""

    def compute(request: BillingRequest) -> PreviewResult:
        try:
            inputs = gather_inputs(cache, request.customer_id, cache.period, request.consumption)
            computed = compute_charges(inputs, formula_cutoff)
        except BillingKernelError as exc:
            return PreviewResult(
                customer_id=request.customer_id,
                error_code=exc.code,
                error_message=str(exc),
            )
        return PreviewResult(customer_id=request.customer_id, breakdown=computed.breakdown)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return tuple(executor.map(compute, requests))
