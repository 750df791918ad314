"""
Module: billing_kernel.models.subsidy
Responsibility: ORM persistence for subsidy programs and the append-only
    per-customer subsidy history.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

Invariants enforced:
    - History rows are never updated.  A change of subsidy is a new row.
    - Only 0, 50 and 100 percent map to a subsidy type.  Any other
      percentage loads as SubsidyType.NONE with a warning, so one bad row
      never blocks a billing run.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString
from billing_kernel.domain.dtos import SubsidyAssignment, SubsidyChangeKind, SubsidyType
from billing_kernel.exceptions import UnsupportedSubsidyError
from billing_kernel.logging_config import get_logger

logger = get_logger("models.subsidy")


class SubsidyProgramModel(TrackedBase):
    """A government subsidy program (e.g. the 50% and 100% programs)."""

    __tablename__ = "subsidy_programs"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    percentage: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SubsidyProgram {self.name} {self.percentage}%>"


class SubsidyHistoryModel(TrackedBase):
    """One subsidy change for a customer."""

    __tablename__ = "subsidy_history"

    __table_args__ = (
        Index("idx_subsidy_history_customer", "customer_id", "effective_from"),
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Null for removals
    program_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("subsidy_programs.id"), nullable=True,
    )

    change_kind: Mapped[str] = mapped_column(String(20), nullable=False)

    effective_from: Mapped[date] = mapped_column(Date, nullable=False)

    # Percentage in effect after the change (0 for removals)
    percentage: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<SubsidyHistory {self.customer_id} {self.change_kind} {self.effective_from}>"

    def to_dto(self) -> SubsidyAssignment:
        """Convert to a SubsidyAssignment.  Unsupported percentages load as NONE."""
        change_kind = SubsidyChangeKind(self.change_kind)
        if change_kind == SubsidyChangeKind.REMOVED:
            subsidy_type = SubsidyType.NONE
        else:
            try:
                subsidy_type = SubsidyType.from_percentage(self.percentage)
            except UnsupportedSubsidyError:
                logger.warning(
                    "subsidy_unsupported_percentage",
                    extra={
                        "customer_id": str(self.customer_id),
                        "percentage": str(self.percentage),
                        "effective_from": self.effective_from.isoformat(),
                    },
                )
                subsidy_type = SubsidyType.NONE

        return SubsidyAssignment(
            customer_id=self.customer_id,
            subsidy_type=subsidy_type,
            effective_from=self.effective_from,
            change_kind=change_kind,
            percentage=self.percentage,
            assignment_id=self.id,
        )

    @classmethod
    def from_dto(cls, dto: SubsidyAssignment) -> "SubsidyHistoryModel":
        return cls(
            id=dto.assignment_id,
            customer_id=dto.customer_id,
            change_kind=dto.change_kind.value,
            effective_from=dto.effective_from,
            percentage=dto.percentage,
        )
