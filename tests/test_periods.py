from datetime import date

import pytest

from smb_fincalc.periods import (
    MonthRef,
    PeriodKind,
    add_months,
    clamped_date,
    month_sequence,
    sort_chronologically,
)


@pytest.mark.parametrize(
    "kind, months, per_year",
    [
        (PeriodKind.MONTHLY, 1, 12),
        (PeriodKind.QUARTERLY, 3, 4),
        (PeriodKind.SEMIANNUAL, 6, 2),
        (PeriodKind.ANNUAL, 12, 1),
    ],
)
def test_period_kind_lengths(kind, months, per_year) -> None:
    assert kind.months == months
    assert kind.periods_per_year == per_year


def test_clamped_date_handles_short_months() -> None:
    assert clamped_date(2025, 2, 31) == date(2025, 2, 28)
    assert clamped_date(2024, 2, 31) == date(2024, 2, 29)
    assert clamped_date(2025, 4, 15) == date(2025, 4, 15)


def test_add_months_crosses_years_and_clamps() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)
    assert add_months(date(2025, 3, 31), -1) == date(2025, 2, 28)


def test_month_sequence_and_labels() -> None:
    months = month_sequence(11, 2024, 4)

    assert [m.label for m in months] == ["2024-11", "2024-12", "2025-01", "2025-02"]
    assert months[0].day(31) == date(2024, 11, 30)


def test_month_ref_ordering_and_validation() -> None:
    months = [MonthRef(2025, 3), MonthRef(2024, 12), MonthRef(2025, 1)]

    assert sort_chronologically(months) == [
        MonthRef(2024, 12),
        MonthRef(2025, 1),
        MonthRef(2025, 3),
    ]
    with pytest.raises(ValueError):
        MonthRef(2025, 13)
