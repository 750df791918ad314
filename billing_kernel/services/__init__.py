"""Kernel services.  Each one flushes in the caller's transaction."""

from billing_kernel.services.base import BaseService
from billing_kernel.services.boleta_repository import BoletaRepository
from billing_kernel.services.boleta_service import BoletaService
from billing_kernel.services.claim_service import ChargeClaimService
from billing_kernel.services.sequence_service import SequenceFolioAllocator, SequenceService

__all__ = [
    "BaseService",
    "BoletaRepository",
    "BoletaService",
    "ChargeClaimService",
    "SequenceFolioAllocator",
    "SequenceService",
]
