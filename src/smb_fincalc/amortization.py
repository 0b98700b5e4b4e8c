# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Fixed-installment (French) loan amortization.

Schedule construction
---------------------
periodic rate = annual rate / 100 / periods per year
installment   = principal * r / (1 - (1 + r) ** -n)

Each step charges interest on the outstanding balance, the rest of the
installment repays principal. Extra payments are applied after the
installment they are attached to; the installment is then re-amortized
over the remaining periods and the schedule ends early once the loan is
repaid. The last entry's balance is clamped to 0.

Entry fields are rounded to cents; the running balance is not.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from .cash_flow import Frequency, Recurrence, RecurringItem
from .log import get_logger
from .periods import PeriodKind, add_months

logger = get_logger(__name__)

# Balances below half a cent are treated as fully repaid.
_PAID_OFF = 0.005


@dataclass(frozen=True)
class ExtraPayment:
    """An additional principal payment made with a given installment."""

    installment: int
    amount: float


@dataclass(frozen=True)
class Loan:
    """
    A fixed-installment loan.

    Attributes:
        principal: Amount borrowed.
        annual_rate_percent: Nominal annual rate in percent (12 for 12%).
        installment_count: Number of installments.
        period_kind: Installment periodicity.
        start_date: Due date of the first installment, if known.
        extra_payments: Extra principal payments.
        name: Optional label.
    """

    principal: float
    annual_rate_percent: float
    installment_count: int
    period_kind: PeriodKind = PeriodKind.MONTHLY
    start_date: Optional[date] = None
    extra_payments: tuple[ExtraPayment, ...] = field(default_factory=tuple)
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "period_kind", PeriodKind(self.period_kind))
        object.__setattr__(self, "extra_payments", tuple(self.extra_payments))

    @property
    def periodic_rate(self) -> float:
        return self.annual_rate_percent / 100 / self.period_kind.periods_per_year

    @property
    def is_valid(self) -> bool:
        return (
            self.principal > 0
            and self.annual_rate_percent > 0
            and self.installment_count > 0
        )


class InstallmentStatus(str, Enum):
    PAID = "paid"
    CURRENT = "current"
    FUTURE = "future"


@dataclass(frozen=True)
class AmortizationEntry:
    period: int
    due_date: Optional[date]
    installment: float
    principal_portion: float
    interest_portion: float
    extra_payment: float
    remaining_balance: float
    status: InstallmentStatus

    @property
    def total_payment(self) -> float:
        return round(self.installment + self.extra_payment, 2)


@dataclass(frozen=True)
class DebtSummary:
    current_balance: float
    monthly_payment: float
    remaining_installments: int
    total_paid: float
    total_interest_paid: float
    total_principal_paid: float
    savings_from_extra: float
    estimated_end_date: Optional[date]


def fixed_installment(principal: float, rate: float, count: int) -> float:
    """Installment repaying ``principal`` in ``count`` periods at ``rate``."""
    if count <= 0:
        return 0.0
    if rate == 0:
        return principal / count
    return principal * rate / (1 - (1 + rate) ** (-count))


def _status(period: int, as_of_installment: int) -> InstallmentStatus:
    if period <= as_of_installment:
        return InstallmentStatus.PAID
    if period == as_of_installment + 1:
        return InstallmentStatus.CURRENT
    return InstallmentStatus.FUTURE


def build_schedule(loan: Loan, as_of_installment: int = 0) -> list[AmortizationEntry]:
    """
    Generate the amortization schedule of a loan.

    Args:
        loan: The loan.
        as_of_installment: Number of installments already paid; only used
            to set each entry's status.

    Returns:
        One entry per installment, or an empty list when the principal,
        the rate or the installment count is not positive.

    Examples:
        10,000,000 at 12% over 12 monthly installments
        -> installment ~888,488, last remaining balance 0
    """
    if not loan.is_valid:
        logger.debug("Loan %r has non-positive parameters, empty schedule", loan.name)
        return []

    rate = loan.periodic_rate
    n = loan.installment_count
    months = loan.period_kind.months
    extras: dict[int, float] = {}
    for extra in loan.extra_payments:
        if extra.amount > 0:
            extras[extra.installment] = extras.get(extra.installment, 0.0) + extra.amount

    balance = float(loan.principal)
    installment = fixed_installment(balance, rate, n)
    schedule: list[AmortizationEntry] = []

    for i in range(1, n + 1):
        interest = balance * rate
        principal_part = min(installment - interest, balance)
        balance -= principal_part

        extra = min(extras.get(i, 0.0), balance)
        balance -= extra

        last = i == n or balance <= _PAID_OFF
        if last:
            balance = 0.0

        due = add_months(loan.start_date, (i - 1) * months) if loan.start_date else None
        schedule.append(
            AmortizationEntry(
                period=i,
                due_date=due,
                installment=round(principal_part + interest, 2),
                principal_portion=round(principal_part, 2),
                interest_portion=round(interest, 2),
                extra_payment=round(extra, 2),
                remaining_balance=round(balance, 2),
                status=_status(i, as_of_installment),
            )
        )
        if last:
            break
        if extra > 0:
            installment = fixed_installment(balance, rate, n - i)

    return schedule


def simulate_extra_payment(
    loan: Loan,
    extra: ExtraPayment,
    as_of_installment: int = 0,
) -> list[AmortizationEntry]:
    """Schedule of the loan with one more extra payment, the loan unchanged."""
    simulated = Loan(
        principal=loan.principal,
        annual_rate_percent=loan.annual_rate_percent,
        installment_count=loan.installment_count,
        period_kind=loan.period_kind,
        start_date=loan.start_date,
        extra_payments=loan.extra_payments + (extra,),
        name=loan.name,
    )
    return build_schedule(simulated, as_of_installment)


def _total_interest(schedule: Iterable[AmortizationEntry]) -> float:
    return sum(e.interest_portion for e in schedule)


def summarize(loan: Loan, as_of_installment: int = 0) -> DebtSummary:
    """
    Summarize a loan after ``as_of_installment`` installments are paid.

    current_balance is the remaining balance after the last paid
    installment (the principal when nothing is paid, 0 once the schedule
    is exhausted). monthly_payment spreads the current installment over the
    months of one period. Paid totals sum the paid entries, extra payments
    included.
    """
    schedule = build_schedule(loan, as_of_installment)
    if not schedule:
        return DebtSummary(
            current_balance=max(float(loan.principal), 0.0),
            monthly_payment=0.0,
            remaining_installments=0,
            total_paid=0.0,
            total_interest_paid=0.0,
            total_principal_paid=0.0,
            savings_from_extra=0.0,
            estimated_end_date=None,
        )

    paid = [e for e in schedule if e.status is InstallmentStatus.PAID]
    if as_of_installment <= 0:
        current_balance = float(loan.principal)
    elif as_of_installment <= len(schedule):
        current_balance = schedule[as_of_installment - 1].remaining_balance
    else:
        current_balance = 0.0

    current = next((e for e in schedule if e.status is InstallmentStatus.CURRENT), None)
    monthly_payment = (
        round(current.installment / loan.period_kind.months, 2) if current else 0.0
    )
    remaining = max(0, min(loan.installment_count, len(schedule)) - max(as_of_installment, 0))

    savings = 0.0
    if loan.extra_payments:
        baseline = build_schedule(
            Loan(
                principal=loan.principal,
                annual_rate_percent=loan.annual_rate_percent,
                installment_count=loan.installment_count,
                period_kind=loan.period_kind,
                start_date=loan.start_date,
            )
        )
        savings = round(_total_interest(baseline) - _total_interest(schedule), 2)

    return DebtSummary(
        current_balance=current_balance,
        monthly_payment=monthly_payment,
        remaining_installments=remaining,
        total_paid=round(sum(e.installment + e.extra_payment for e in paid), 2),
        total_interest_paid=round(_total_interest(paid), 2),
        total_principal_paid=round(
            sum(e.principal_portion + e.extra_payment for e in paid), 2
        ),
        savings_from_extra=savings,
        estimated_end_date=schedule[-1].due_date,
    )


# ---------------------------------------------------------------------------
# Cash-flow integration
# ---------------------------------------------------------------------------


def installments_by_column(
    loan: Loan,
    columns: Sequence[Any],
    as_of_installment: int = 0,
) -> dict[int, float]:
    """
    Map unpaid installments onto cash-flow columns.

    Args:
        loan: The loan; entries without a due date are not placed.
        columns: Chronological columns, any objects with ``month`` and
            ``year`` attributes.
        as_of_installment: Installments already paid are skipped.

    Returns:
        {column (1-based): installment + extra payment due that month}.
    """
    index = {(c.year, c.month): i + 1 for i, c in enumerate(columns)}
    out: dict[int, float] = {}
    for entry in build_schedule(loan, as_of_installment):
        if entry.status is InstallmentStatus.PAID or entry.due_date is None:
            continue
        col = index.get((entry.due_date.year, entry.due_date.month))
        if col is not None:
            out[col] = round(out.get(col, 0.0) + entry.total_payment, 2)
    return out


def debt_cash_flow_item(
    loan: Loan,
    columns: Sequence[Any],
    as_of_installment: int = 0,
) -> RecurringItem:
    """Return the loan's unpaid installments as a cash-flow expense item.

    The item recurs monthly with a zero base amount; the installments are
    carried as column overrides, so months without an installment add 0
    and raise no payment alert.
    """
    payment_day = loan.start_date.day if loan.start_date else None
    return RecurringItem(
        name=loan.name or "Loan installment",
        base_amount=0.0,
        recurrence=Recurrence(
            frequency=Frequency.MONTHLY, start_column=1, payment_day=payment_day
        ),
        overrides=installments_by_column(loan, columns, as_of_installment),
    )
