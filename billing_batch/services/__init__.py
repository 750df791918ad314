"""Billing run services."""

from billing_batch.services.database import init_engine_from_config
from billing_batch.services.runner import BillingRunner, preview_from_cache

__all__ = ["BillingRunner", "init_engine_from_config", "preview_from_cache"]
