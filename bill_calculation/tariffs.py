"""Tariff table lookups used by the bill calculation engine."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Protocol

from .const import UNBOUNDED_TO_UNITS
from .errors import LookupFailure
from .models import ZERO, TariffBlock, TariffRegime

_LOGGER = logging.getLogger(__name__)

TARIFF_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS tariff_table (
    category INTEGER NOT NULL,
    effective_from TEXT NOT NULL,
    effective_to TEXT NOT NULL,
    from_units INTEGER,
    to_units INTEGER,
    rate TEXT,
    type_fixed TEXT,
    basic_block TEXT,
    min_charge TEXT,
    fix_charge TEXT
)
"""


class TariffLookup(Protocol):
    """Read-only source of tariff regimes and rate blocks."""

    def get_regimes(
        self, category: int, from_date: date, to_date: date
    ) -> list[TariffRegime]:
        """Return regimes overlapping [from_date, to_date], oldest first."""

    def get_blocks(self, category: int, effective_date: date) -> list[TariffBlock]:
        """Return blocks in effect on effective_date, ordered by from_units."""


def make_block(
    category: int,
    effective_from: date,
    effective_to: date,
    from_units: int | None,
    to_units: int | None,
    rate: Decimal | str | int | float | None,
    type_fixed: str | None = "",
    basic_block: str | None = "",
    min_charge: str | None = "",
    fix_charge: Decimal | str | int | float | None = ZERO,
) -> TariffBlock:
    """Build a TariffBlock from a raw tariff table row.

    Missing unit bounds read as 0 and a missing rate reads as 0. An upper
    bound of 0 or of UNBOUNDED_TO_UNITS and above marks the unbounded last
    block and is normalized to 0, with a block limit of 0.
    """
    from_units = int(from_units or 0)
    to_units = int(to_units or 0)
    if to_units == 0 or to_units >= UNBOUNDED_TO_UNITS:
        to_units = 0
        block_limit = 0
    else:
        block_limit = to_units - from_units + 1

    return TariffBlock(
        category=int(category),
        effective_from=effective_from,
        effective_to=effective_to,
        from_units=from_units,
        to_units=to_units,
        block_limit=block_limit,
        rate=_to_decimal(rate),
        type_fixed=type_fixed or "",
        basic_block=basic_block or "",
        min_charge=min_charge or "",
        fix_charge=_to_decimal(fix_charge),
    )


def _to_decimal(value: Decimal | str | int | float | None) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class InMemoryTariffLookup:
    """Tariff lookup over a list of blocks held in memory.

    Regimes are the distinct (category, effective_from, effective_to)
    windows of the blocks, as in the tariff table itself.
    """

    def __init__(self, blocks: Iterable[TariffBlock] = ()) -> None:
        self._blocks: list[TariffBlock] = list(blocks)

    def add_block(self, block: TariffBlock) -> None:
        self._blocks.append(block)

    def get_regimes(
        self, category: int, from_date: date, to_date: date
    ) -> list[TariffRegime]:
        regimes = {
            TariffRegime(b.category, b.effective_from, b.effective_to)
            for b in self._blocks
            if b.category == category
            and b.effective_from <= to_date
            and b.effective_to >= from_date
        }
        return sorted(regimes, key=lambda r: (r.effective_from, r.effective_to))

    def get_blocks(self, category: int, effective_date: date) -> list[TariffBlock]:
        blocks = [
            b
            for b in self._blocks
            if b.category == category
            and b.effective_from <= effective_date <= b.effective_to
        ]
        return sorted(blocks, key=lambda b: b.from_units)


class SqliteTariffLookup:
    """Tariff lookup over a SQLite ``tariff_table``.

    Dates are stored as ISO ``YYYY-MM-DD`` text so that string comparison
    in SQL matches date order. Rates are stored as text to keep them exact.
    """

    def __init__(self, db_file: str | Path) -> None:
        self._db_file = str(db_file)

    def create_schema(self) -> None:
        self._execute(TARIFF_TABLE_SCHEMA)

    def insert_block(self, block: TariffBlock) -> None:
        self._execute(
            "INSERT INTO tariff_table (category, effective_from, effective_to, "
            "from_units, to_units, rate, type_fixed, basic_block, min_charge, "
            "fix_charge) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                block.category,
                block.effective_from.isoformat(),
                block.effective_to.isoformat(),
                block.from_units,
                block.to_units,
                str(block.rate),
                block.type_fixed,
                block.basic_block,
                block.min_charge,
                str(block.fix_charge),
            ),
        )

    def get_regimes(
        self, category: int, from_date: date, to_date: date
    ) -> list[TariffRegime]:
        rows = self._fetch(
            "SELECT DISTINCT category, effective_from, effective_to "
            "FROM tariff_table "
            "WHERE category = ? AND effective_from <= ? AND effective_to >= ? "
            "ORDER BY effective_from, effective_to",
            (category, to_date.isoformat(), from_date.isoformat()),
        )
        return [
            TariffRegime(
                category=int(row["category"]),
                effective_from=date.fromisoformat(row["effective_from"]),
                effective_to=date.fromisoformat(row["effective_to"]),
            )
            for row in rows
        ]

    def get_blocks(self, category: int, effective_date: date) -> list[TariffBlock]:
        day = effective_date.isoformat()
        rows = self._fetch(
            "SELECT * FROM tariff_table "
            "WHERE category = ? AND effective_from <= ? AND effective_to >= ? "
            "ORDER BY from_units",
            (category, day, day),
        )
        return [
            make_block(
                category=row["category"],
                effective_from=date.fromisoformat(row["effective_from"]),
                effective_to=date.fromisoformat(row["effective_to"]),
                from_units=row["from_units"],
                to_units=row["to_units"],
                rate=row["rate"],
                type_fixed=row["type_fixed"],
                basic_block=row["basic_block"],
                min_charge=row["min_charge"],
                fix_charge=row["fix_charge"],
            )
            for row in rows
        ]

    def _execute(self, query: str, params: tuple = ()) -> None:
        try:
            conn = sqlite3.connect(self._db_file)
        except sqlite3.Error as err:
            raise LookupFailure(f"Cannot open tariff database: {err}") from err
        try:
            conn.execute(query, params)
            conn.commit()
        except sqlite3.Error as err:
            raise LookupFailure(f"Tariff table write failed: {err}") from err
        finally:
            conn.close()

    def _fetch(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        _LOGGER.debug("Querying %s with %s", self._db_file, params)
        try:
            conn = sqlite3.connect(self._db_file)
        except sqlite3.Error as err:
            raise LookupFailure(f"Cannot open tariff database: {err}") from err
        conn.row_factory = sqlite3.Row
        try:
            return conn.execute(query, params).fetchall()
        except sqlite3.Error as err:
            raise LookupFailure(f"Tariff table query failed: {err}") from err
        finally:
            conn.close()
