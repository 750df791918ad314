"""
Engine setup for billing runs from a BillingConfig.

The kernel's ``init_engine_from_url`` takes a plain URL; this is the batch
layer's bridge from the configured ``database_url`` to it.
"""

from sqlalchemy.engine import Engine

from billing_config.schema import BillingConfig
from billing_kernel.db.engine import init_engine_from_url
from billing_kernel.logging_config import get_logger

logger = get_logger("batch.database")


def init_engine_from_config(config: BillingConfig, echo: bool = False) -> Engine:
    """
    Initialize the kernel engine from ``config.database_url``.

    Raises:
        ValueError: The configuration has no database_url.
    """
    if not config.database_url:
        raise ValueError(
            f"Billing config {config.config_id!r} v{config.version} has no database_url"
        )
    engine = init_engine_from_url(config.database_url, echo=echo)
    logger.info(
        "billing_database_configured",
        extra={"config_id": config.config_id, "config_checksum": config.checksum},
    )
    return engine
