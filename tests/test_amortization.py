from datetime import date

import pytest

from smb_fincalc.amortization import (
    ExtraPayment,
    InstallmentStatus,
    Loan,
    build_schedule,
    debt_cash_flow_item,
    fixed_installment,
    installments_by_column,
    simulate_extra_payment,
    summarize,
)
from smb_fincalc.cash_flow import CashFlowPeriodInput, build_cash_flow
from smb_fincalc.periods import PeriodKind, month_sequence


def _reference_loan(**overrides) -> Loan:
    params = dict(
        principal=10_000_000,
        annual_rate_percent=12,
        installment_count=12,
        period_kind=PeriodKind.MONTHLY,
    )
    params.update(overrides)
    return Loan(**params)


def test_reference_loan_schedule() -> None:
    """10M at 12% over 12 months: ~888,488 per month, fully repaid."""
    schedule = build_schedule(_reference_loan())

    assert len(schedule) == 12
    assert schedule[0].installment == pytest.approx(888_488, abs=1.0)
    assert schedule[0].interest_portion == pytest.approx(100_000)
    assert schedule[-1].remaining_balance == 0
    assert sum(e.principal_portion for e in schedule) == pytest.approx(
        10_000_000, abs=0.01 * 12
    )
    assert [e.period for e in schedule] == list(range(1, 13))


@pytest.mark.parametrize(
    "principal, rate, count, kind",
    [
        (5_000_000, 18, 24, "monthly"),
        (1_200_000, 12, 4, "quarterly"),
        (800_000, 10, 6, "semiannual"),
        (2_000_000, 9.5, 5, "annual"),
    ],
)
def test_schedule_repays_principal(principal, rate, count, kind) -> None:
    schedule = build_schedule(
        Loan(principal=principal, annual_rate_percent=rate, installment_count=count, period_kind=kind)
    )

    assert len(schedule) == count
    assert schedule[-1].remaining_balance == 0
    assert sum(e.principal_portion for e in schedule) == pytest.approx(
        principal, abs=0.01 * count
    )


def test_periodic_rate_follows_period_kind() -> None:
    assert _reference_loan().periodic_rate == pytest.approx(0.01)
    assert _reference_loan(period_kind="quarterly").periodic_rate == pytest.approx(0.03)
    assert _reference_loan(period_kind="annual").periodic_rate == pytest.approx(0.12)


@pytest.mark.parametrize(
    "principal, rate, count",
    [(0, 12, 12), (1_000, 0, 12), (1_000, 12, 0), (-5, 12, 12)],
)
def test_invalid_loan_yields_empty_schedule(principal, rate, count) -> None:
    """Non-positive parameters are a no-op, not an error."""
    loan = Loan(principal=principal, annual_rate_percent=rate, installment_count=count)

    assert build_schedule(loan) == []
    summary = summarize(loan, 0)
    assert summary.remaining_installments == 0
    assert summary.monthly_payment == 0.0


def test_fixed_installment_zero_rate() -> None:
    assert fixed_installment(1200, 0, 12) == pytest.approx(100)
    assert fixed_installment(1200, 0.01, 0) == 0.0


def test_due_dates_are_clamped_to_month_end() -> None:
    schedule = build_schedule(_reference_loan(start_date=date(2025, 1, 31)))

    assert schedule[0].due_date == date(2025, 1, 31)
    assert schedule[1].due_date == date(2025, 2, 28)
    assert schedule[2].due_date == date(2025, 3, 31)


def test_status_relative_to_paid_installments() -> None:
    schedule = build_schedule(_reference_loan(), as_of_installment=3)

    assert [e.status for e in schedule[:3]] == [InstallmentStatus.PAID] * 3
    assert schedule[3].status is InstallmentStatus.CURRENT
    assert all(e.status is InstallmentStatus.FUTURE for e in schedule[4:])


def test_extra_payment_reamortizes_remaining_installments() -> None:
    loan = _reference_loan(extra_payments=(ExtraPayment(3, 2_000_000),))
    schedule = build_schedule(loan)

    assert len(schedule) == 12
    assert schedule[2].extra_payment == pytest.approx(2_000_000)
    assert schedule[3].installment < schedule[2].installment
    assert schedule[-1].remaining_balance == 0
    assert sum(e.principal_portion + e.extra_payment for e in schedule) == pytest.approx(
        10_000_000, abs=0.12
    )
    assert summarize(loan).savings_from_extra > 0


def test_extra_payment_can_repay_the_loan_early() -> None:
    """An extra payment larger than the balance is capped and ends the schedule."""
    schedule = simulate_extra_payment(_reference_loan(), ExtraPayment(2, 20_000_000))

    assert len(schedule) == 2
    assert schedule[-1].remaining_balance == 0
    assert schedule[1].extra_payment < 20_000_000


def test_simulate_extra_payment_leaves_loan_unchanged() -> None:
    loan = _reference_loan()
    simulate_extra_payment(loan, ExtraPayment(1, 1_000_000))

    assert loan.extra_payments == ()
    assert build_schedule(loan) == build_schedule(_reference_loan())


def test_summary_before_any_payment() -> None:
    loan = _reference_loan(start_date=date(2025, 1, 15))
    summary = summarize(loan, 0)
    first = build_schedule(loan)[0]

    assert summary.current_balance == pytest.approx(10_000_000)
    assert summary.remaining_installments == 12
    assert summary.monthly_payment == pytest.approx(first.installment)
    assert summary.total_paid == 0.0
    assert summary.savings_from_extra == 0.0
    assert summary.estimated_end_date == date(2025, 12, 15)


def test_summary_after_three_installments() -> None:
    loan = _reference_loan()
    schedule = build_schedule(loan)
    summary = summarize(loan, 3)

    assert summary.current_balance == pytest.approx(schedule[2].remaining_balance)
    assert summary.remaining_installments == 9
    assert summary.total_paid == pytest.approx(
        sum(e.installment for e in schedule[:3]), abs=0.01
    )
    assert summary.total_interest_paid == pytest.approx(
        sum(e.interest_portion for e in schedule[:3]), abs=0.01
    )
    assert summary.total_principal_paid + summary.current_balance == pytest.approx(
        10_000_000, abs=0.05
    )


def test_summary_fully_paid() -> None:
    summary = summarize(_reference_loan(), 12)

    assert summary.current_balance == 0
    assert summary.remaining_installments == 0
    assert summary.monthly_payment == 0.0


def test_quarterly_monthly_payment() -> None:
    """The monthly payment spreads a quarterly installment over 3 months."""
    loan = Loan(
        principal=1_200_000,
        annual_rate_percent=12,
        installment_count=4,
        period_kind=PeriodKind.QUARTERLY,
    )
    first = build_schedule(loan)[0]

    assert summarize(loan).monthly_payment == pytest.approx(first.installment / 3, abs=0.01)


def test_installments_by_column() -> None:
    loan = Loan(
        principal=300_000,
        annual_rate_percent=12,
        installment_count=3,
        start_date=date(2025, 3, 10),
    )
    columns = month_sequence(1, 2025, 6)
    schedule = build_schedule(loan)

    mapped = installments_by_column(loan, columns)
    assert sorted(mapped) == [3, 4, 5]
    assert mapped[3] == pytest.approx(schedule[0].total_payment)

    assert sorted(installments_by_column(loan, columns, as_of_installment=1)) == [4, 5]


def test_debt_item_feeds_cash_flow() -> None:
    loan = Loan(
        principal=300_000,
        annual_rate_percent=12,
        installment_count=3,
        start_date=date(2025, 3, 10),
        name="Bank loan",
    )
    periods = [CashFlowPeriodInput(month=m.month, year=m.year) for m in month_sequence(1, 2025, 6)]
    item = debt_cash_flow_item(loan, periods)

    flow = build_cash_flow(periods, expenses=[item])

    assert item.recurrence.payment_day == 10
    assert flow[0].additional_outflows == 0.0
    assert flow[2].additional_outflows == pytest.approx(build_schedule(loan)[0].total_payment)
    assert flow[-1].cumulative_cash_flow == pytest.approx(-sum(item.overrides.values()))


def test_build_schedule_is_idempotent() -> None:
    loan = _reference_loan(extra_payments=(ExtraPayment(5, 500_000),))
    assert build_schedule(loan, 4) == build_schedule(loan, 4)
