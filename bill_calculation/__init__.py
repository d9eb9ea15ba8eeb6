"""Electricity bill calculation prorated across tariff regime changes."""

from .engine import BillCalculationEngine
from .errors import BillCalculationError, InvalidRequest, LookupFailure, NoTariffFound
from .models import (
    BillCalculationRequest,
    BillSummary,
    BlockCharge,
    DetailedBillResult,
    SubPeriod,
    TariffBlock,
    TariffRegime,
)
from .rates import CATEGORY_RULES, BlockPolicy, CategoryRule
from .tariffs import InMemoryTariffLookup, SqliteTariffLookup, TariffLookup, make_block

__all__ = [
    "BillCalculationEngine",
    "BillCalculationError",
    "BillCalculationRequest",
    "BillSummary",
    "BlockCharge",
    "BlockPolicy",
    "CATEGORY_RULES",
    "CategoryRule",
    "DetailedBillResult",
    "InMemoryTariffLookup",
    "InvalidRequest",
    "LookupFailure",
    "NoTariffFound",
    "SqliteTariffLookup",
    "SubPeriod",
    "TariffBlock",
    "TariffLookup",
    "TariffRegime",
    "make_block",
]
