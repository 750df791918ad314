"""
Module: billing_kernel.models.fine
Responsibility: ORM persistence for fines and extra charges.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

Invariants enforced:
    - applied_boleta_id goes from null to a boleta id exactly once, through
      the conditional UPDATE in ChargeClaimService.  It carries no foreign
      key so the claim can precede the boleta INSERT in one transaction.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString
from billing_kernel.domain.dtos import Fine


class FineModel(TrackedBase):
    """A fine waiting to be billed, or already billed."""

    __tablename__ = "fines"

    __table_args__ = (
        Index("idx_fine_customer_pending", "customer_id", "applied_boleta_id"),
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    tax_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    applied_on: Mapped[date] = mapped_column(Date, nullable=False)

    period_from: Mapped[date | None] = mapped_column(Date, nullable=True)

    period_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    reason: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    applied_boleta_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<Fine {self.id} {self.amount} applied={self.applied_boleta_id}>"

    def to_dto(self) -> Fine:
        return Fine(
            customer_id=self.customer_id,
            amount=self.amount,
            tax_applicable=self.tax_applicable,
            applied_on=self.applied_on,
            period_from=self.period_from,
            period_to=self.period_to,
            reason=self.reason,
            applied_boleta_id=self.applied_boleta_id,
            fine_id=self.id,
        )

    @classmethod
    def from_dto(cls, dto: Fine) -> "FineModel":
        return cls(
            id=dto.fine_id,
            customer_id=dto.customer_id,
            amount=dto.amount,
            tax_applicable=dto.tax_applicable,
            applied_on=dto.applied_on,
            period_from=dto.period_from,
            period_to=dto.period_to,
            reason=dto.reason,
            applied_boleta_id=dto.applied_boleta_id,
        )
