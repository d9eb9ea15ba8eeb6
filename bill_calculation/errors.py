"""Exceptions raised by the bill calculation engine."""

from __future__ import annotations

from datetime import date


class BillCalculationError(Exception):
    """Base class for all bill calculation errors."""


class InvalidRequest(BillCalculationError):
    """The request was rejected before any tariff lookup."""


class NoTariffFound(BillCalculationError):
    """No tariff regime overlaps the requested billing window."""

    def __init__(self, category: int, from_date: date, to_date: date) -> None:
        super().__init__(
            f"No tariff periods found for category {category} "
            f"between {from_date.isoformat()} and {to_date.isoformat()}"
        )
        self.category = category
        self.from_date = from_date
        self.to_date = to_date


class LookupFailure(BillCalculationError):
    """The tariff data source could not answer a query."""
