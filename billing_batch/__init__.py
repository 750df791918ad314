"""
billing_batch -- multi-customer billing runs.

Pre-fetches one BillingCache per run, finalizes each customer inside its
own SAVEPOINT, supports cancellation between customers and progress
callbacks, and previews many customers in parallel.
"""

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
from billing_batch.services.database import init_engine_from_config
from billing_batch.services.runner import BillingRunner, preview_from_cache

__all__ = [
    "BillingRequest",
    "BillingRunProgress",
    "BillingRunResult",
    "BillingRunStatus",
    "BillingRunner",
    "CancellationToken",
    "CustomerBillingResult",
    "CustomerBillingStatus",
    "PreviewResult",
    "init_engine_from_config",
    "preview_from_cache",
]
