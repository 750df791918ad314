"""
Module: billing_kernel.models.discount
Responsibility: ORM persistence for discount definitions and their
    per-customer allocations.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

Allocations carry a fixed amount already resolved for the customer.  The
validity window and the active flag live on the parent discount.  A
recurring allocation applies to every period its window overlaps, so
applied_boleta_id links it to the most recent boleta only.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import TrackedBase, UUIDString
from billing_kernel.domain.dtos import DiscountAllocation


class DiscountModel(TrackedBase):
    """A discount definition with its validity window."""

    __tablename__ = "discounts"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    valid_from: Mapped[date] = mapped_column(Date, nullable=False)

    # Null means open-ended
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    allocations: Mapped[list["DiscountAllocationModel"]] = relationship(
        back_populates="discount",
    )

    def __repr__(self) -> str:
        return f"<Discount {self.name} {self.valid_from}..{self.valid_to}>"


class DiscountAllocationModel(TrackedBase):
    """A discount amount assigned to one customer."""

    __tablename__ = "discount_allocations"

    __table_args__ = (
        Index("idx_discount_allocation_customer", "customer_id"),
    )

    discount_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("discounts.id"), nullable=False,
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Last boleta that applied the allocation.  Overwritten each period it applies.
    applied_boleta_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    discount: Mapped[DiscountModel] = relationship(back_populates="allocations")

    def to_dto(self) -> DiscountAllocation:
        """Flatten allocation and parent discount into one DTO."""
        return DiscountAllocation(
            customer_id=self.customer_id,
            amount=self.amount,
            valid_from=self.discount.valid_from,
            valid_to=self.discount.valid_to,
            active=self.discount.active,
            discount_name=self.discount.name,
            allocation_id=self.id,
            applied_boleta_id=self.applied_boleta_id,
        )
