"""Category rate rules and per-block proration for prorated billing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Mapping

from .const import MONEY_QUANTUM, REFERENCE_MONTH_DAYS, UNIT_QUANTUM
from .models import ZERO, BlockCharge, TariffBlock


class BlockPolicy(Enum):
    """How a category's consumption is charged against its blocks."""

    TIERED = "tiered"  # telescopic blocks on prorated boundaries
    FLAT = "flat"  # all units at a single rate picked by consumption level


@dataclass(frozen=True)
class SpecialRatePeriod:
    """A special rate in force up to and including last_day."""

    last_day: date | None  # None for the open-ended latest period
    rate: Decimal


@dataclass(frozen=True)
class SpecialRateRule:
    """Override of the low block rates for high consumers.

    When a sub-period's units exceed threshold_units prorated to the
    sub-period length, every bounded block with to_units up to
    max_to_units is billed at the special rate in force on the
    sub-period's start date instead of its own rate.
    """

    threshold_units: int
    max_to_units: int
    schedule: list[SpecialRatePeriod] = field(default_factory=list)

    def rate_on(self, day: date) -> Decimal:
        """Return the special rate for a sub-period starting on day."""
        for period in self.schedule:
            if period.last_day is None or day <= period.last_day:
                return period.rate
        raise ValueError(f"No special rate scheduled for {day.isoformat()}")


@dataclass(frozen=True)
class CategoryRule:
    """Billing policy for one tariff category."""

    policy: BlockPolicy = BlockPolicy.TIERED
    # FLAT only: monthly-equivalent kWh above which the unbounded rate applies
    high_consumption_kwh: Decimal | None = None
    special_rate: SpecialRateRule | None = None


DOMESTIC_SPECIAL_RATES = SpecialRateRule(
    threshold_units=60,
    max_to_units=60,
    schedule=[
        SpecialRatePeriod(last_day=date(2024, 7, 15), rate=Decimal("25.00")),
        SpecialRatePeriod(last_day=date(2025, 1, 17), rate=Decimal("15.00")),
        SpecialRatePeriod(last_day=date(2025, 6, 11), rate=Decimal("11.00")),
        SpecialRatePeriod(last_day=None, rate=Decimal("12.75")),
    ],
)

DEFAULT_RULE = CategoryRule()

CATEGORY_RULES: dict[int, CategoryRule] = {
    11: CategoryRule(special_rate=DOMESTIC_SPECIAL_RATES),
    21: CategoryRule(policy=BlockPolicy.FLAT, high_consumption_kwh=Decimal(300)),
    41: CategoryRule(policy=BlockPolicy.FLAT, high_consumption_kwh=Decimal(300)),
    31: CategoryRule(policy=BlockPolicy.FLAT, high_consumption_kwh=Decimal(180)),
    33: CategoryRule(policy=BlockPolicy.FLAT, high_consumption_kwh=Decimal(180)),
}


def rule_for(
    category: int, rules: Mapping[int, CategoryRule] = CATEGORY_RULES
) -> CategoryRule:
    """Return the rule for a category, falling back to plain tiered billing."""
    return rules.get(category, DEFAULT_RULE)


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


def round_units(units: Decimal) -> Decimal:
    return units.quantize(UNIT_QUANTUM, rounding=ROUND_HALF_EVEN)


def prorate_units(units: int, day_count: int) -> int:
    """Scale a 30-day block boundary to day_count days, rounding up."""
    return -(-units * day_count // REFERENCE_MONTH_DAYS)


def prorate_block(block: TariffBlock, day_count: int) -> tuple[int, int]:
    """Return the (from, to) bounds of a block prorated to day_count days.

    The first block always starts at 1 and the unbounded block keeps an
    upper bound of 0.
    """
    if block.from_units == 1:
        prorated_from = 1
    else:
        prorated_from = prorate_units(block.from_units - 1, day_count) + 1
    prorated_to = 0 if block.is_unbounded else prorate_units(block.to_units, day_count)
    return prorated_from, prorated_to


def monthly_equivalent(units: Decimal, day_count: int) -> Decimal:
    """Scale sub-period units to a 30-day month.

    A zero-day sub-period cannot be scaled and reports its units as is.
    """
    if day_count <= 0:
        return units
    return units * REFERENCE_MONTH_DAYS / day_count


def special_rate_for(
    rule: CategoryRule, units: Decimal, day_count: int, period_start: date
) -> Decimal | None:
    """Return the special rate owed for a sub-period, or None if none applies."""
    special = rule.special_rate
    if special is None:
        return None
    if units > prorate_units(special.threshold_units, day_count):
        return special.rate_on(period_start)
    return None


def tiered_units(
    units: Decimal, prorated_from: int, prorated_to: int, unbounded: bool
) -> Decimal:
    """Return how many of units fall inside one prorated block."""
    if unbounded:
        if units >= prorated_from:
            return units - prorated_from + 1
        return ZERO
    if prorated_from <= units <= prorated_to:
        return units - prorated_from + 1
    if units > prorated_to:
        return Decimal(prorated_to - prorated_from + 1)
    return ZERO


def flat_units(units: Decimal, unbounded: bool, high_consumption: bool) -> Decimal:
    """Return the units a flat-rate category bills against one block.

    High consumers pay everything at the unbounded block's rate; everyone
    else pays everything at the rate of each bounded block.
    """
    if high_consumption and unbounded:
        return units
    if not high_consumption and not unbounded:
        return units
    return ZERO


def charge_blocks(
    blocks: list[TariffBlock],
    rule: CategoryRule,
    units: Decimal,
    day_count: int,
    period_start: date,
) -> tuple[list[BlockCharge], Decimal]:
    """Charge a sub-period's units against its tariff blocks.

    Args:
        blocks: Blocks in effect on period_start, ordered by from_units.
        rule: Billing policy of the category.
        units: Units allocated to the sub-period (whole units).
        day_count: Length of the sub-period in days.
        period_start: First day of the sub-period.

    Returns:
        One BlockCharge per block, zero-unit blocks included, and the
        unrounded sum of the block charges.
    """
    special_rate = special_rate_for(rule, units, day_count, period_start)
    high_consumption = (
        rule.policy is BlockPolicy.FLAT
        and rule.high_consumption_kwh is not None
        and monthly_equivalent(units, day_count) > rule.high_consumption_kwh
    )

    charges: list[BlockCharge] = []
    total = ZERO
    for block in blocks:
        prorated_from, prorated_to = prorate_block(block, day_count)

        rate = block.rate
        if (
            special_rate is not None
            and 0 < block.to_units <= rule.special_rate.max_to_units
        ):
            rate = special_rate

        if rule.policy is BlockPolicy.FLAT:
            in_block = flat_units(units, block.is_unbounded, high_consumption)
        else:
            in_block = tiered_units(
                units, prorated_from, prorated_to, block.is_unbounded
            )
        charge = in_block * rate

        charges.append(
            BlockCharge(
                from_units=block.from_units,
                to_units=block.to_units,
                block_limit=block.block_limit,
                prorated_from=prorated_from,
                prorated_to=prorated_to,
                rate=rate,
                original_rate=block.rate,
                units_in_block=round_units(in_block),
                charge=round_money(charge),
            )
        )
        total += charge

    return charges, total
