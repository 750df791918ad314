"""
Module: billing_kernel.models.service_cut
Responsibility: ORM persistence for service cuts and their reconnections.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

A restored cut is billed once, on the first boleta whose period end is on
or after the restoration date.  applied_boleta_id follows the same claim
rule as fines.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString
from billing_kernel.domain.dtos import ReconnectionEvent, ServiceCutStatus


class ServiceCutModel(TrackedBase):
    """A service cut, and its reconnection once restored."""

    __tablename__ = "service_cuts"

    __table_args__ = (
        Index("idx_service_cut_customer_pending", "customer_id", "applied_boleta_id"),
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ServiceCutStatus.CUT.value,
    )

    cut_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    restored_at: Mapped[date | None] = mapped_column(Date, nullable=True)

    # 1 = first reconnection cost, 2 = second
    sequence_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Null is treated as taxable
    tax_applicable: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Recorded at restoration; informational
    charged_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    applied_boleta_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<ServiceCut {self.id} {self.status} applied={self.applied_boleta_id}>"

    def to_dto(self) -> ReconnectionEvent:
        return ReconnectionEvent(
            customer_id=self.customer_id,
            status=ServiceCutStatus(self.status),
            restored_at=self.restored_at,
            sequence_number=self.sequence_number,
            tax_applicable=self.tax_applicable,
            charged_amount=self.charged_amount,
            applied_boleta_id=self.applied_boleta_id,
            event_id=self.id,
        )

    @classmethod
    def from_dto(cls, dto: ReconnectionEvent) -> "ServiceCutModel":
        return cls(
            id=dto.event_id,
            customer_id=dto.customer_id,
            status=dto.status.value,
            restored_at=dto.restored_at,
            sequence_number=dto.sequence_number,
            tax_applicable=dto.tax_applicable,
            charged_amount=dto.charged_amount,
            applied_boleta_id=dto.applied_boleta_id,
        )
