"""Constants for the prorated bill calculation engine."""

from decimal import Decimal

# Block boundaries in the tariff table are declared against this month length.
REFERENCE_MONTH_DAYS = 30

# to_units at or above this value means "no upper bound" and is stored as 0.
UNBOUNDED_TO_UNITS = 10_000_000

MONEY_QUANTUM = Decimal("0.01")
UNIT_QUANTUM = Decimal("1")

DEFAULT_CATEGORY = 11  # domestic

DISPLAY_DATE_FORMAT = "%d-%m-%y"
