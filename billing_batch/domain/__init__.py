"""Pure types for billing runs."""

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

__all__ = [
    "BillingRequest",
    "BillingRunProgress",
    "BillingRunResult",
    "BillingRunStatus",
    "CancellationToken",
    "CustomerBillingResult",
    "CustomerBillingStatus",
    "PreviewResult",
]
