"""
Typed exception hierarchy for the billing kernel.

Every error has a typed class (catch by type, not by message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
carrying the data needed to report it.

    BillingKernelError (base)
    |
    +-- ComputationError
    |   +-- NoEffectiveTariffError
    |   +-- TariffOverlapError
    |   +-- InvalidConsumptionError
    |   +-- UnsupportedSubsidyError
    |
    +-- BoletaError
    |   +-- BoletaAlreadyExistsError
    |   +-- InvalidBoletaTransitionError
    |
    +-- ConcurrencyError
        +-- ChargeAlreadyClaimedError

Category        | Code                       | When Raised
----------------|----------------------------|-------------------------------------------
Computation     | NO_EFFECTIVE_TARIFF        | No tariff covers the billing date (fatal)
                | TARIFF_OVERLAP             | Two tariffs cover the same date
                | INVALID_CONSUMPTION        | Consumption is negative or not a Decimal
                | UNSUPPORTED_SUBSIDY        | Subsidy percentage is not 0, 50 or 100
----------------|----------------------------|-------------------------------------------
Boleta          | BOLETA_ALREADY_EXISTS      | Customer already billed for the period
                | INVALID_BOLETA_TRANSITION  | Draft/Computed/Finalized order violated
----------------|----------------------------|-------------------------------------------
Concurrency     | CHARGE_ALREADY_CLAIMED     | Fine/reconnection applied by another run

Handling pattern for finalization::

    try:
        claim_service.claim_fine(fine_id, boleta_id)
    except ChargeAlreadyClaimedError as e:
        # Another run billed it first; exclude and keep going.
        excluded.append(e.charge_id)
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Computation errors


class ComputationError(BillingKernelError):
    """Base exception for errors that stop a boleta from being computed."""

    code: str = "COMPUTATION_ERROR"


class NoEffectiveTariffError(ComputationError):
    """No tariff is in effect on the billing date.

    Fatal for the customer/period: no partial boleta is produced.
    """

    code: str = "NO_EFFECTIVE_TARIFF"

    def __init__(self, billing_date: str):
        self.billing_date = billing_date
        super().__init__(f"No effective tariff for billing date {billing_date}")


class TariffOverlapError(ComputationError):
    """More than one tariff covers the same billing date."""

    code: str = "TARIFF_OVERLAP"

    def __init__(self, billing_date: str, tariff_ids: list[str]):
        self.billing_date = billing_date
        self.tariff_ids = tariff_ids
        super().__init__(
            f"Tariffs {', '.join(tariff_ids)} overlap on {billing_date}"
        )


class InvalidConsumptionError(ComputationError):
    """Metered consumption is not a non-negative Decimal."""

    code: str = "INVALID_CONSUMPTION"

    def __init__(self, consumption: str):
        self.consumption = consumption
        super().__init__(f"Invalid consumption: {consumption}")


class UnsupportedSubsidyError(ComputationError):
    """Subsidy program percentage has no subsidy type."""

    code: str = "UNSUPPORTED_SUBSIDY"

    def __init__(self, percentage: str):
        self.percentage = percentage
        super().__init__(
            f"Unsupported subsidy percentage: {percentage} (expected 0, 50 or 100)"
        )


# Boleta errors


class BoletaError(BillingKernelError):
    """Base exception for boleta lifecycle errors."""

    code: str = "BOLETA_ERROR"


class BoletaAlreadyExistsError(BoletaError):
    """A boleta already exists for this customer and period."""

    code: str = "BOLETA_ALREADY_EXISTS"

    def __init__(self, customer_id: str, period_start: str, boleta_id: str | None = None):
        self.customer_id = customer_id
        self.period_start = period_start
        self.boleta_id = boleta_id
        super().__init__(
            f"Boleta already exists for customer {customer_id} "
            f"period starting {period_start}"
        )


class InvalidBoletaTransitionError(BoletaError):
    """Assembly state machine was driven out of order."""

    code: str = "INVALID_BOLETA_TRANSITION"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Cannot transition boleta from {from_state} to {to_state}")


# Concurrency errors


class ConcurrencyError(BillingKernelError):
    """Base exception for concurrency conflicts."""

    code: str = "CONCURRENCY_ERROR"


class ChargeAlreadyClaimedError(ConcurrencyError):
    """Conditional claim lost: the charge is already applied to a boleta."""

    code: str = "CHARGE_ALREADY_CLAIMED"

    def __init__(self, charge_kind: str, charge_id: str, boleta_id: str):
        self.charge_kind = charge_kind
        self.charge_id = charge_id
        self.boleta_id = boleta_id
        super().__init__(
            f"{charge_kind} {charge_id} already claimed; not applied to boleta {boleta_id}"
        )
