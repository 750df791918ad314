"""
billing_config -- single public entrypoint for billing configuration.

``get_active_config()`` returns a frozen ``BillingConfig``.  The kernel never
imports this package; the batch layer reads the config and passes its
values (subsidy cutoff, due days, folio sequence) into kernel services as
plain arguments.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema violations.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from billing_config.loader import compute_checksum, load_billing_config
from billing_config.schema import BatchSettings, BillingConfig

_logger = logging.getLogger("billing_kernel.config")

CONFIG_PATH_ENV = "BILLING_CONFIG_PATH"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> BillingConfig:
    """
    Load the billing configuration.

    Resolution order: the explicit ``path``, then the ``BILLING_CONFIG_PATH``
    environment variable, then the packaged ``sets/default.yaml``.

    Raises:
        FileNotFoundError: The resolved file does not exist.
        KeyError: A required key is missing.
        ValueError: A value is invalid.
    """
    if path is not None:
        config_file = Path(path)
    elif os.environ.get(CONFIG_PATH_ENV):
        config_file = Path(os.environ[CONFIG_PATH_ENV])
    else:
        config_file = _DEFAULT_CONFIG_FILE

    config = load_billing_config(config_file)

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_file),
        },
    )
    return config


__all__ = [
    "BatchSettings",
    "BillingConfig",
    "CONFIG_PATH_ENV",
    "compute_checksum",
    "get_active_config",
]
