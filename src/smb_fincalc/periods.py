# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB FinCalc.

This module defines the period vocabulary shared by the calculators:

- PeriodKind: installment periodicity of a loan (monthly ... annual),
- MonthRef: a (month, year) value object identifying one cash-flow column,
- calendar helpers (month arithmetic, clamped day-of-month dates).

None of these helpers reads the system clock: "today" is always an
explicit argument.
"""

from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum


class PeriodKind(str, Enum):
    """Installment periodicity of a loan."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        """Number of calendar months covered by one period."""
        return MONTHS_PER_PERIOD[self]

    @property
    def periods_per_year(self) -> int:
        """Number of periods in a year (12, 4, 2 or 1)."""
        return 12 // MONTHS_PER_PERIOD[self]


MONTHS_PER_PERIOD: dict[PeriodKind, int] = {
    PeriodKind.MONTHLY: 1,
    PeriodKind.QUARTERLY: 3,
    PeriodKind.SEMIANNUAL: 6,
    PeriodKind.ANNUAL: 12,
}


@dataclass(frozen=True, order=True)
class MonthRef:
    """One calendar month. Ordering is chronological (year, then month)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")

    @property
    def label(self) -> str:
        """ISO-like label, e.g. '2025-03'."""
        return f"{self.year:04d}-{self.month:02d}"

    def day(self, day_of_month: int) -> date:
        """Return the given day of this month, clamped to the month's last day."""
        return clamped_date(self.year, self.month, day_of_month)


def clamped_date(year: int, month: int, day: int) -> date:
    """
    Build a date, clamping the day to the last day of the month.

    Examples:
        (2025, 2, 31) -> 2025-02-28
        (2024, 2, 31) -> 2024-02-29
    """
    last_day = monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


def add_months(start: date, months: int) -> date:
    """
    Shift a date by a number of months, keeping the day when possible.

    The day is clamped to the last day of the target month, so 31 January
    plus one month gives 28 (or 29) February.
    """
    total = start.year * 12 + (start.month - 1) + months
    year, month_index = divmod(total, 12)
    return clamped_date(year, month_index + 1, start.day)


def month_sequence(start_month: int, start_year: int, count: int) -> list[MonthRef]:
    """Return ``count`` consecutive months starting at (start_month, start_year)."""
    first = date(start_year, start_month, 1)
    out = []
    for i in range(count):
        d = add_months(first, i)
        out.append(MonthRef(year=d.year, month=d.month))
    return out


def sort_chronologically(months: Iterable[MonthRef]) -> list[MonthRef]:
    """Return months sorted by (year, month)."""
    return sorted(months)
