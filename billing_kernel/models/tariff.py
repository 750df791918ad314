"""
Module: billing_kernel.models.tariff
Responsibility: ORM persistence for tariffs.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

The table keeps both historical rate shapes: nullable separate sewage and
treatment rates, and the nullable combined rate that replaced them.
to_dto() resolves the shape once.  A populated combined rate wins.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.tariff import CombinedRates, SeparateRates, Tariff


class TariffModel(TrackedBase):
    """A tariff in effect over ``[effective_from, effective_to)``."""

    __tablename__ = "tariffs"

    __table_args__ = (
        Index("idx_tariff_dates", "effective_from", "effective_to"),
    )

    effective_from: Mapped[date] = mapped_column(Date, nullable=False)

    # Null means open-ended
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    fixed_charge: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    water_rate_per_m3: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Legacy shape
    sewage_rate_per_m3: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9), nullable=True,
    )
    treatment_rate_per_m3: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9), nullable=True,
    )

    # Current shape
    sewage_treatment_rate_per_m3: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9), nullable=True,
    )

    reconnection_cost_1: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    reconnection_cost_2: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Fractional, e.g. 0.19
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    monthly_interest_rate: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    interest_grace_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CLP")

    def __repr__(self) -> str:
        return f"<Tariff {self.effective_from}..{self.effective_to}>"

    def to_dto(self) -> Tariff:
        """Convert to the domain Tariff, resolving the rate shape."""
        if self.sewage_treatment_rate_per_m3 is not None:
            rate_model = CombinedRates(
                sewage_treatment_rate_per_m3=self.sewage_treatment_rate_per_m3,
            )
        else:
            rate_model = SeparateRates(
                sewage_rate_per_m3=self.sewage_rate_per_m3 or Decimal("0"),
                treatment_rate_per_m3=self.treatment_rate_per_m3 or Decimal("0"),
            )

        return Tariff(
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            fixed_charge=self.fixed_charge,
            water_rate_per_m3=self.water_rate_per_m3,
            rate_model=rate_model,
            reconnection_cost_1=self.reconnection_cost_1,
            reconnection_cost_2=self.reconnection_cost_2,
            tax_rate=self.tax_rate,
            monthly_interest_rate=self.monthly_interest_rate,
            interest_grace_days=self.interest_grace_days,
            currency=self.currency,
            tariff_id=self.id,
        )

    @classmethod
    def from_dto(cls, dto: Tariff) -> "TariffModel":
        """Create ORM model from the domain Tariff."""
        sewage = treatment = combined = None
        match dto.rate_model:
            case CombinedRates(sewage_treatment_rate_per_m3=rate):
                combined = rate
            case SeparateRates(sewage_rate_per_m3=s, treatment_rate_per_m3=t):
                sewage, treatment = s, t

        return cls(
            id=dto.tariff_id,
            effective_from=dto.effective_from,
            effective_to=dto.effective_to,
            fixed_charge=dto.fixed_charge,
            water_rate_per_m3=dto.water_rate_per_m3,
            sewage_rate_per_m3=sewage,
            treatment_rate_per_m3=treatment,
            sewage_treatment_rate_per_m3=combined,
            reconnection_cost_1=dto.reconnection_cost_1,
            reconnection_cost_2=dto.reconnection_cost_2,
            tax_rate=dto.tax_rate,
            monthly_interest_rate=dto.monthly_interest_rate,
            interest_grace_days=dto.interest_grace_days,
            currency=dto.currency,
        )
