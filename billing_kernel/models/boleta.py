"""
Module: billing_kernel.models.boleta
Responsibility: ORM persistence for finalized boletas and their itemized
    charge breakdown.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

Invariants enforced:
    - At most one boleta per (customer_id, period_start) (uq_boleta_customer_period).
    - Folio numbers are unique (uq_boleta_folio).
    - A finalized boleta's amounts are never rewritten; only status changes
      afterwards, and that happens outside the billing kernel.

Failure modes:
    - IntegrityError on a second boleta for the same customer and period
      that slipped past BoletaService's existence check.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString
from billing_kernel.domain.dtos import Boleta, BoletaStatus, ChargeBreakdown
from billing_kernel.domain.values import Money


def _money_column() -> Mapped[Decimal]:
    return mapped_column(Numeric(38, 9), nullable=False, default=Decimal("0"))


class BoletaModel(TrackedBase):
    """A customer's invoice for one billing period."""

    __tablename__ = "boletas"

    __table_args__ = (
        UniqueConstraint("customer_id", "period_start", name="uq_boleta_customer_period"),
        UniqueConstraint("folio", name="uq_boleta_folio"),
        Index("idx_boleta_status", "status"),
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    folio: Mapped[int] = mapped_column(nullable=False)

    tariff_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    consumption_m3: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CLP")

    # Itemized charges
    fixed_charge: Mapped[Decimal] = _money_column()
    water_charge: Mapped[Decimal] = _money_column()
    sewage_charge: Mapped[Decimal] = _money_column()
    treatment_charge: Mapped[Decimal] = _money_column()
    subtotal: Mapped[Decimal] = _money_column()
    discount_amount: Mapped[Decimal] = _money_column()
    subsidy_amount: Mapped[Decimal] = _money_column()
    taxable_charges: Mapped[Decimal] = _money_column()
    untaxed_charges: Mapped[Decimal] = _money_column()
    gross_before_subsidy: Mapped[Decimal] = _money_column()
    gross_after_subsidy: Mapped[Decimal] = _money_column()
    net_amount: Mapped[Decimal] = _money_column()
    tax_amount: Mapped[Decimal] = _money_column()
    combined_rate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Totals
    prior_balance: Mapped[Decimal] = _money_column()
    other_charges: Mapped[Decimal] = _money_column()
    restructuring_amount: Mapped[Decimal] = _money_column()
    interest_amount: Mapped[Decimal] = _money_column()
    total_amount: Mapped[Decimal] = _money_column()

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BoletaStatus.PENDING.value,
    )

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Boleta folio={self.folio} {self.customer_id} {self.period_start}>"

    def to_dto(self) -> Boleta:
        """Convert to the domain Boleta.

        fine_ids and reconnection_ids are not stored on the row; they are
        recoverable from the claimed charges' applied_boleta_id.
        """

        def money(amount: Decimal) -> Money:
            return Money.of(amount, self.currency)

        charges = ChargeBreakdown(
            fixed_charge=money(self.fixed_charge),
            water_charge=money(self.water_charge),
            sewage_charge=money(self.sewage_charge),
            treatment_charge=money(self.treatment_charge),
            subtotal=money(self.subtotal),
            discount_amount=money(self.discount_amount),
            subsidy_amount=money(self.subsidy_amount),
            taxable_charges=money(self.taxable_charges),
            untaxed_charges=money(self.untaxed_charges),
            gross_before_subsidy=money(self.gross_before_subsidy),
            gross_after_subsidy=money(self.gross_after_subsidy),
            net_amount=money(self.net_amount),
            tax_amount=money(self.tax_amount),
            combined_rate=self.combined_rate,
        )
        return Boleta(
            boleta_id=self.id,
            customer_id=self.customer_id,
            folio=self.folio,
            period_start=self.period_start,
            period_end=self.period_end,
            issue_date=self.issue_date,
            due_date=self.due_date,
            consumption_m3=self.consumption_m3,
            charges=charges,
            prior_balance=money(self.prior_balance),
            other_charges=money(self.other_charges),
            restructuring_amount=money(self.restructuring_amount),
            interest_amount=money(self.interest_amount),
            total_amount=money(self.total_amount),
            tariff_id=self.tariff_id,
            status=BoletaStatus(self.status),
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto: Boleta) -> "BoletaModel":
        """Create ORM model from a finalized Boleta."""
        c = dto.charges
        return cls(
            id=dto.boleta_id,
            customer_id=dto.customer_id,
            folio=dto.folio,
            tariff_id=dto.tariff_id,
            period_start=dto.period_start,
            period_end=dto.period_end,
            issue_date=dto.issue_date,
            due_date=dto.due_date,
            consumption_m3=dto.consumption_m3,
            currency=dto.total_amount.currency.code,
            fixed_charge=c.fixed_charge.amount,
            water_charge=c.water_charge.amount,
            sewage_charge=c.sewage_charge.amount,
            treatment_charge=c.treatment_charge.amount,
            subtotal=c.subtotal.amount,
            discount_amount=c.discount_amount.amount,
            subsidy_amount=c.subsidy_amount.amount,
            taxable_charges=c.taxable_charges.amount,
            untaxed_charges=c.untaxed_charges.amount,
            gross_before_subsidy=c.gross_before_subsidy.amount,
            gross_after_subsidy=c.gross_after_subsidy.amount,
            net_amount=c.net_amount.amount,
            tax_amount=c.tax_amount.amount,
            combined_rate=c.combined_rate,
            prior_balance=dto.prior_balance.amount,
            other_charges=dto.other_charges.amount,
            restructuring_amount=dto.restructuring_amount.amount,
            interest_amount=dto.interest_amount.amount,
            total_amount=dto.total_amount.amount,
            status=dto.status.value,
            notes=dto.notes,
        )
