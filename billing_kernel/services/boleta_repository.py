"""
BoletaRepository -- persistence of finalized boletas.

Implements the BoletaWriter port.  Flushes only.
"""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update

from billing_kernel.domain.dtos import Boleta
from billing_kernel.logging_config import get_logger
from billing_kernel.models.boleta import BoletaModel
from billing_kernel.models.discount import DiscountAllocationModel
from billing_kernel.services.base import BaseService

logger = get_logger("services.boleta_repository")


class BoletaRepository(BaseService[BoletaModel]):
    """Reads and writes boleta rows in the caller's transaction."""

    def existing_boleta_id(self, customer_id: UUID, period_start: date) -> UUID | None:
        return self.session.execute(
            select(BoletaModel.id)
            .where(BoletaModel.customer_id == customer_id)
            .where(BoletaModel.period_start == period_start)
        ).scalar_one_or_none()

    def save(self, boleta: Boleta) -> None:
        self.session.add(BoletaModel.from_dto(boleta))
        self.session.flush()
        logger.debug(
            "boleta_persisted",
            extra={"boleta_id": str(boleta.boleta_id), "folio": boleta.folio},
        )

    def link_discounts(self, allocation_ids: Sequence[UUID], boleta_id: UUID) -> None:
        if not allocation_ids:
            return
        self.session.execute(
            update(DiscountAllocationModel)
            .where(DiscountAllocationModel.id.in_(list(allocation_ids)))
            .values(applied_boleta_id=boleta_id)
            .execution_options(synchronize_session=False)
        )
        self.session.flush()

    def get(self, boleta_id: UUID) -> Boleta | None:
        row = self.session.get(BoletaModel, boleta_id)
        return row.to_dto() if row is not None else None

    def for_period(self, period_start: date) -> list[Boleta]:
        """Every boleta of a period, by folio."""
        rows = self.session.scalars(
            select(BoletaModel)
            .where(BoletaModel.period_start == period_start)
            .order_by(BoletaModel.folio)
        )
        return [row.to_dto() for row in rows]
