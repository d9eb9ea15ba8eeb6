"""Records produced and consumed by the bill calculation engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from .const import DEFAULT_CATEGORY, DISPLAY_DATE_FORMAT
from .errors import InvalidRequest

ZERO = Decimal("0")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if hasattr(value, "as_dict"):
        return value.as_dict()
    return value


class _Serializable:
    """Mixin giving dataclasses a JSON-ready ``as_dict``."""

    def as_dict(self) -> dict[str, Any]:
        """Return the record as a dict of JSON-safe values.

        Dates become ISO strings and Decimals become strings so no
        precision is lost in transport.
        """
        return {f.name: _jsonable(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class TariffRegime(_Serializable):
    """A window during which one rate table is in effect for a category."""

    category: int
    effective_from: date
    effective_to: date  # inclusive

    def __post_init__(self) -> None:
        if self.effective_from > self.effective_to:
            raise ValueError(
                f"Regime for category {self.category} ends before it starts: "
                f"{self.effective_from} > {self.effective_to}"
            )


@dataclass(frozen=True)
class TariffBlock(_Serializable):
    """One rate block of a regime, declared against a 30-day month."""

    category: int
    effective_from: date
    effective_to: date
    from_units: int
    to_units: int  # 0 for the unbounded last block
    block_limit: int  # 0 for the unbounded last block
    rate: Decimal
    # Fixed-charge descriptors, carried through but not billed.
    type_fixed: str = ""  # "S" or "V"
    basic_block: str = ""  # "BA" or "BL"
    min_charge: str = ""  # "Y" or "N"
    fix_charge: Decimal = ZERO

    @property
    def is_unbounded(self) -> bool:
        return self.to_units == 0


@dataclass(frozen=True)
class BillCalculationRequest(_Serializable):
    """Consumption to bill for one category over [from_date, to_date)."""

    total_units: Decimal
    from_date: date
    to_date: date
    category: int = DEFAULT_CATEGORY

    def __post_init__(self) -> None:
        if not isinstance(self.total_units, Decimal):
            try:
                units = Decimal(str(self.total_units))
            except InvalidOperation as err:
                raise InvalidRequest(
                    f"total_units is not a number: {self.total_units!r}"
                ) from err
            object.__setattr__(self, "total_units", units)

    def validate(self) -> None:
        """Reject requests the engine cannot bill.

        Raises:
            InvalidRequest: units are not positive, the window is empty or
                reversed, or the category is not an integer.
        """
        if isinstance(self.category, bool) or not isinstance(self.category, int):
            raise InvalidRequest(f"category must be an integer: {self.category!r}")
        if not self.total_units.is_finite() or self.total_units <= 0:
            raise InvalidRequest("total_units must be greater than 0")
        if self.from_date >= self.to_date:
            raise InvalidRequest("from_date must be before to_date")

    @property
    def day_count(self) -> int:
        return (self.to_date - self.from_date).days


@dataclass(frozen=True)
class BlockCharge(_Serializable):
    """Charge for one tariff block within a sub-period."""

    from_units: int
    to_units: int
    block_limit: int
    prorated_from: int
    prorated_to: int  # 0 for the unbounded last block
    rate: Decimal  # applied, possibly a special rate
    original_rate: Decimal
    units_in_block: Decimal  # rounded to whole units
    charge: Decimal  # rounded to cents

    @property
    def charge_calculation(self) -> str:
        """Working shown on a printed bill, e.g. ``127 * 4.00 = 508.00``."""
        if self.units_in_block > 0 and self.charge > 0:
            return f"{self.units_in_block} * {self.rate:.2f} = {self.charge:.2f}"
        return ""

    @property
    def block_limit_display(self) -> str:
        return f"{self.from_units} - {self.to_units}"

    @property
    def prorated_blocks_display(self) -> str:
        return f"{self.prorated_from} - {self.prorated_to}"


@dataclass(frozen=True)
class SubPeriod(_Serializable):
    """The part of a billing window that falls inside one tariff regime."""

    from_date: date
    to_date: date
    day_count: int
    allocated_units: Decimal
    block_charges: list[BlockCharge] = field(default_factory=list)
    kwh_charge: Decimal = ZERO
    fixed_charge: Decimal = ZERO
    fac_charge: Decimal = ZERO

    @property
    def total_charge(self) -> Decimal:
        return self.kwh_charge + self.fixed_charge + self.fac_charge

    @property
    def from_date_display(self) -> str:
        return self.from_date.strftime(DISPLAY_DATE_FORMAT)

    @property
    def to_date_display(self) -> str:
        return self.to_date.strftime(DISPLAY_DATE_FORMAT)

    @property
    def period_display(self) -> str:
        return f"From {self.from_date_display} To {self.to_date_display}"

    def as_dict(self) -> dict[str, Any]:
        data = super().as_dict()
        data["total_charge"] = str(self.total_charge)
        return data


@dataclass(frozen=True)
class DetailedBillResult(_Serializable):
    """Period-by-period, block-by-block breakdown of one bill."""

    category: int
    total_units: Decimal
    from_date: date
    to_date: date
    total_day_count: int
    sub_periods: list[SubPeriod] = field(default_factory=list)
    kwh_charge: Decimal = ZERO
    fixed_charge: Decimal = ZERO
    fac_charge: Decimal = ZERO
    total_charge: Decimal = ZERO

    @property
    def total_periods(self) -> int:
        return len(self.sub_periods)

    @property
    def total_units_processed(self) -> Decimal:
        return sum((p.allocated_units for p in self.sub_periods), ZERO)


@dataclass(frozen=True)
class BillSummary(_Serializable):
    """Headline totals of a bill with its sub-period breakdown."""

    from_date: date
    to_date: date
    day_count: int
    units: Decimal
    kwh_charge: Decimal
    fixed_charge: Decimal
    fac_charge: Decimal
    total_charge: Decimal
    sub_periods: list[SubPeriod] = field(default_factory=list)

    @property
    def from_date_display(self) -> str:
        return self.from_date.strftime(DISPLAY_DATE_FORMAT)

    @property
    def to_date_display(self) -> str:
        return self.to_date.strftime(DISPLAY_DATE_FORMAT)
