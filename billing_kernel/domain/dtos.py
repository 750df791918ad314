"""
Domain DTOs for billing inputs and outputs.

Frozen dataclasses with enum status fields and tuples for collections.  No
ORM, no I/O.  Input records (subsidy assignments, discount allocations,
fines, reconnection events) arrive from the repository; ChargeBreakdown and
Boleta are produced by the engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from billing_kernel.domain.values import Money
from billing_kernel.exceptions import UnsupportedSubsidyError


# =============================================================================
# Subsidies
# =============================================================================


class SubsidyType(str, Enum):
    """Government subsidy coverage."""

    NONE = "none"
    HALF = "half"  # 50%
    FULL = "full"  # 100%

    @classmethod
    def from_percentage(cls, percentage: Decimal | int) -> SubsidyType:
        """Map a subsidy program percentage to a type.

        Raises:
            UnsupportedSubsidyError: For percentages other than 0, 50 and 100.
        """
        value = Decimal(percentage)
        if value == 0:
            return cls.NONE
        if value == 50:
            return cls.HALF
        if value == 100:
            return cls.FULL
        raise UnsupportedSubsidyError(str(percentage))


class SubsidyChangeKind(str, Enum):
    """How a subsidy history entry changed the customer's subsidy."""

    GRANTED = "granted"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class SubsidyAssignment:
    """One append-only subsidy history entry for a customer."""

    customer_id: UUID
    subsidy_type: SubsidyType
    effective_from: date
    change_kind: SubsidyChangeKind
    percentage: Decimal = Decimal("0")
    assignment_id: UUID = field(default_factory=uuid4)


# =============================================================================
# Discounts, fines, reconnections
# =============================================================================


@dataclass(frozen=True)
class DiscountAllocation:
    """A discount amount already resolved for one customer.

    ``valid_from``/``valid_to`` and ``active`` come from the parent discount
    definition.
    """

    customer_id: UUID
    amount: Decimal
    valid_from: date
    valid_to: date | None = None
    active: bool = True
    discount_name: str = ""
    allocation_id: UUID = field(default_factory=uuid4)
    # Last boleta that applied this allocation
    applied_boleta_id: UUID | None = None


@dataclass(frozen=True)
class Fine:
    """A fine or extra charge waiting to be billed.

    ``applied_boleta_id`` stays None until a boleta claims it.
    """

    customer_id: UUID
    amount: Decimal
    tax_applicable: bool
    applied_on: date
    period_from: date | None = None
    period_to: date | None = None
    reason: str = ""
    applied_boleta_id: UUID | None = None
    fine_id: UUID = field(default_factory=uuid4)


class ServiceCutStatus(str, Enum):
    """State of a service cut."""

    CUT = "cut"
    RESTORED = "restored"


@dataclass(frozen=True)
class ReconnectionEvent:
    """A service cut whose reconnection is billed per tariff.

    ``charged_amount`` is the amount recorded when service was restored; it
    is informational only, the tariff decides the charge.
    """

    customer_id: UUID
    status: ServiceCutStatus
    restored_at: date | None
    sequence_number: int | None = 1
    tax_applicable: bool | None = True
    charged_amount: Decimal | None = None
    applied_boleta_id: UUID | None = None
    event_id: UUID = field(default_factory=uuid4)


# =============================================================================
# Outputs
# =============================================================================


@dataclass(frozen=True)
class ChargeBreakdown:
    """
    Itemized monthly charges, built progressively and immutable once final.

    Every amount is whole currency units.  ``gross_before_subsidy`` is the
    taxable base (subtotal - discounts + taxable fines/reconnections);
    ``net_amount + tax_amount == gross_before_subsidy``.
    """

    fixed_charge: Money
    water_charge: Money
    sewage_charge: Money
    treatment_charge: Money
    subtotal: Money
    discount_amount: Money
    subsidy_amount: Money
    taxable_charges: Money
    untaxed_charges: Money
    gross_before_subsidy: Money
    gross_after_subsidy: Money
    net_amount: Money
    tax_amount: Money
    combined_rate: bool = False


class BoletaStatus(str, Enum):
    """Payment status of an issued boleta (maintained outside the core)."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class Boleta:
    """A customer's finalized invoice for one billing period."""

    boleta_id: UUID
    customer_id: UUID
    folio: int
    period_start: date
    period_end: date
    issue_date: date
    due_date: date
    consumption_m3: Decimal
    charges: ChargeBreakdown
    prior_balance: Money
    other_charges: Money
    restructuring_amount: Money
    interest_amount: Money
    total_amount: Money
    tariff_id: UUID | None = None
    status: BoletaStatus = BoletaStatus.PENDING
    notes: str = ""
    fine_ids: tuple[UUID, ...] = ()
    reconnection_ids: tuple[UUID, ...] = ()
    discount_allocation_ids: tuple[UUID, ...] = ()
