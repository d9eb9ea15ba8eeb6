"""Prorated bill calculation across tariff regime changes."""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_CEILING, Decimal
from typing import Mapping

from .errors import NoTariffFound
from .models import (
    ZERO,
    BillCalculationRequest,
    BillSummary,
    DetailedBillResult,
    SubPeriod,
    TariffBlock,
    TariffRegime,
)
from .rates import CATEGORY_RULES, CategoryRule, charge_blocks, round_money, rule_for
from .tariffs import TariffLookup

_LOGGER = logging.getLogger(__name__)


def sub_period_window(
    regime: TariffRegime, from_date: date, to_date: date, balance_days: int
) -> tuple[date, date, int]:
    """Intersect a regime with the billing window.

    The plain day difference misses the first day of a regime that starts
    strictly inside the window, so one day is added back when the
    sub-period opens on the regime's own start date, the window does not,
    and days remain to be billed.

    Args:
        regime: The tariff regime.
        from_date: Start of the billing window.
        to_date: End of the billing window.
        balance_days: Days of the window not yet assigned to a sub-period.

    Returns:
        The sub-period's start date, end date and day count.
    """
    period_start = max(regime.effective_from, from_date)
    period_end = min(regime.effective_to, to_date)
    day_count = (period_end - period_start).days

    if (
        period_start == regime.effective_from
        and from_date != regime.effective_from
        and balance_days > 0
    ):
        day_count += 1

    return period_start, period_end, day_count


def allocate_units(balance_units: Decimal, day_count: int, balance_days: int) -> Decimal:
    """Share the remaining units out to a sub-period by its day count.

    The share is always rounded up to a whole unit. With no days left to
    share over, the sub-period takes every remaining unit.
    """
    if balance_days <= 0:
        share = balance_units
    else:
        share = balance_units * day_count / balance_days
    return share.to_integral_value(rounding=ROUND_CEILING)


class BillCalculationEngine:
    """Computes bills from a tariff lookup and a table of category rules."""

    def __init__(
        self,
        lookup: TariffLookup,
        rules: Mapping[int, CategoryRule] | None = None,
    ) -> None:
        self._lookup = lookup
        self._rules = CATEGORY_RULES if rules is None else rules

    def calculate_detailed_bill(
        self, request: BillCalculationRequest
    ) -> DetailedBillResult:
        """Calculate a bill, split by tariff regime and by block.

        Raises:
            InvalidRequest: The request fails validation.
            NoTariffFound: No regime of the category overlaps the window.
            LookupFailure: The tariff lookup failed.
        """
        request.validate()

        total_days = request.day_count
        regimes = self._lookup.get_regimes(
            request.category, request.from_date, request.to_date
        )
        if not regimes:
            raise NoTariffFound(request.category, request.from_date, request.to_date)
        _LOGGER.debug(
            "Category %s: %d regime(s) overlap %s to %s",
            request.category,
            len(regimes),
            request.from_date,
            request.to_date,
        )

        rule = rule_for(request.category, self._rules)
        balance_units = request.total_units
        balance_days = total_days
        sub_periods: list[SubPeriod] = []

        for regime in regimes:
            period_start, period_end, day_count = sub_period_window(
                regime, request.from_date, request.to_date, balance_days
            )
            if balance_days <= 0:
                _LOGGER.warning(
                    "No balance days left for category %s, assigning remaining "
                    "%s units to period %s to %s",
                    request.category,
                    balance_units,
                    period_start,
                    period_end,
                )
            units = allocate_units(balance_units, day_count, balance_days)

            blocks = self._lookup.get_blocks(request.category, period_start)
            block_charges, raw_charge = charge_blocks(
                blocks, rule, units, day_count, period_start
            )
            sub_period = SubPeriod(
                from_date=period_start,
                to_date=period_end,
                day_count=day_count,
                allocated_units=units,
                block_charges=block_charges,
                kwh_charge=round_money(raw_charge),
            )
            _LOGGER.debug(
                "%s: %d days, %s units, kWh charge %s",
                sub_period.period_display,
                day_count,
                units,
                sub_period.kwh_charge,
            )
            sub_periods.append(sub_period)

            balance_days -= day_count
            balance_units -= units

        kwh_charge = round_money(sum((p.kwh_charge for p in sub_periods), ZERO))
        return DetailedBillResult(
            category=request.category,
            total_units=request.total_units,
            from_date=request.from_date,
            to_date=request.to_date,
            total_day_count=total_days,
            sub_periods=sub_periods,
            kwh_charge=kwh_charge,
            # Fixed and fuel adjustment charges are not billed.
            total_charge=kwh_charge,
        )

    def get_bill_summary(
        self,
        category: int,
        units: Decimal | int | str,
        from_date: date,
        to_date: date,
    ) -> BillSummary:
        """Return the headline totals of calculate_detailed_bill."""
        request = BillCalculationRequest(
            total_units=units, from_date=from_date, to_date=to_date, category=category
        )
        result = self.calculate_detailed_bill(request)
        return BillSummary(
            from_date=from_date,
            to_date=to_date,
            day_count=result.total_day_count,
            units=request.total_units,
            kwh_charge=result.kwh_charge,
            fixed_charge=result.fixed_charge,
            fac_charge=result.fac_charge,
            total_charge=result.total_charge,
            sub_periods=result.sub_periods,
        )

    def get_tariff_blocks(self, category: int, effective_date: date) -> list[TariffBlock]:
        """Return the blocks in effect for a category on a date."""
        return self._lookup.get_blocks(category, effective_date)
