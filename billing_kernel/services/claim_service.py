"""
ChargeClaimService -- exactly-once claiming of fines and reconnections.

Each claim is a single conditional UPDATE:

    UPDATE fines SET applied_boleta_id = :boleta
     WHERE id = :fine AND applied_boleta_id IS NULL

A rowcount of 1 means this transaction owns the charge.  A rowcount of 0
means another run (or an earlier attempt of this one) already billed it, or
it no longer exists.  Either way it must not be billed here.  The row lock
taken by the UPDATE makes a concurrent claimer wait for this transaction
and then see a non-null applied_boleta_id.
"""

from uuid import UUID

from sqlalchemy import update

from billing_kernel.exceptions import ChargeAlreadyClaimedError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.fine import FineModel
from billing_kernel.models.service_cut import ServiceCutModel
from billing_kernel.services.base import BaseService

logger = get_logger("services.claim")


class ChargeClaimService(BaseService[FineModel]):
    """SQL implementation of the ChargeClaimer port."""

    def _claim(self, model, charge_kind: str, charge_id: UUID, boleta_id: UUID) -> None:
        result = self.session.execute(
            update(model)
            .where(model.id == charge_id)
            .where(model.applied_boleta_id.is_(None))
            .values(applied_boleta_id=boleta_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ChargeAlreadyClaimedError(charge_kind, str(charge_id), str(boleta_id))
        logger.debug(
            "charge_claimed",
            extra={
                "charge_kind": charge_kind,
                "charge_id": str(charge_id),
                "claimed_for": str(boleta_id),
            },
        )

    def claim_fine(self, fine_id: UUID, boleta_id: UUID) -> None:
        """
        Raises:
            ChargeAlreadyClaimedError: The fine is already applied.
        """
        self._claim(FineModel, "fine", fine_id, boleta_id)

    def claim_reconnection(self, event_id: UUID, boleta_id: UUID) -> None:
        """
        Raises:
            ChargeAlreadyClaimedError: The reconnection is already applied.
        """
        self._claim(ServiceCutModel, "reconnection", event_id, boleta_id)
