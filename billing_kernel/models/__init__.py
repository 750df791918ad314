"""ORM models for the billing kernel."""

from billing_kernel.models.boleta import BoletaModel
from billing_kernel.models.discount import DiscountAllocationModel, DiscountModel
from billing_kernel.models.fine import FineModel
from billing_kernel.models.sequence import SequenceCounter
from billing_kernel.models.service_cut import ServiceCutModel
from billing_kernel.models.subsidy import SubsidyHistoryModel, SubsidyProgramModel
from billing_kernel.models.tariff import TariffModel

__all__ = [
    "BoletaModel",
    "DiscountModel",
    "DiscountAllocationModel",
    "FineModel",
    "SequenceCounter",
    "ServiceCutModel",
    "SubsidyProgramModel",
    "SubsidyHistoryModel",
    "TariffModel",
]
