# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow projection, health analysis and payment alerts.

This module has three responsibilities:

1. Period aggregation
   ``build_cash_flow`` sorts the period inputs chronologically, expands the
   recurring income and expense items onto the period columns, and computes
   inflow, outflow, net and cumulative series. Columns are the 1-based
   positions of the periods in chronological order.

2. Health analysis
   ``analyze_health`` derives summary metrics, a 0-100 health score and a
   ranked list of recommendations. Recommendations come from a table of
   RecommendationRule rows whose conditions are expressions over the
   health metrics, so new rules can be added through configuration.

3. Payment alerts
   ``payment_alerts`` lists the payments of recurring items falling in a
   window around ``today`` (3 days overdue to 7 days ahead by default),
   most urgent first.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional

from .expressions import evaluate_condition, validate_expression
from .log import get_logger
from .periods import MonthRef, clamped_date

logger = get_logger(__name__)


class Frequency(str, Enum):
    SINGLE = "single"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


# Column step for each frequency; 0 means a one-off item.
FREQUENCY_STEP: dict[Frequency, int] = {
    Frequency.SINGLE: 0,
    Frequency.MONTHLY: 1,
    Frequency.BIMONTHLY: 2,
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUAL: 6,
    Frequency.ANNUAL: 12,
}


@dataclass(frozen=True)
class Recurrence:
    """
    When a recurring item contributes.

    Attributes:
        frequency: One of Frequency.
        start_column: First column (1-based) receiving the amount.
        end_column: Last column included; None means up to the last column.
        payment_day: Day of month the payment is due, used for alerts.
    """

    frequency: Frequency
    start_column: int = 1
    end_column: Optional[int] = None
    payment_day: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", Frequency(self.frequency))


@dataclass(frozen=True)
class RecurringItem:
    """A user-defined income or expense template.

    ``overrides`` replaces the base amount for specific columns. An
    override only applies to a column the recurrence touches.
    """

    name: str
    base_amount: float
    recurrence: Recurrence
    overrides: Mapping[int, float] = field(default_factory=dict)


@dataclass(frozen=True)
class CashFlowPeriodInput:
    month: int
    year: int
    sales_collections: float = 0.0
    other_income: float = 0.0
    supplier_payments: float = 0.0
    payroll: float = 0.0
    rent: float = 0.0
    utilities: float = 0.0
    taxes: float = 0.0
    other_expenses: float = 0.0

    @property
    def month_ref(self) -> MonthRef:
        return MonthRef(year=self.year, month=self.month)

    @property
    def static_inflows(self) -> float:
        return self.sales_collections + self.other_income

    @property
    def static_outflows(self) -> float:
        return (
            self.supplier_payments
            + self.payroll
            + self.rent
            + self.utilities
            + self.taxes
            + self.other_expenses
        )


@dataclass(frozen=True)
class CashFlowPeriod:
    column: int
    month: int
    year: int
    sales_collections: float
    other_income: float
    supplier_payments: float
    payroll: float
    rent: float
    utilities: float
    taxes: float
    other_expenses: float
    additional_inflows: float
    additional_outflows: float
    total_inflows: float
    total_outflows: float
    net_cash_flow: float
    cumulative_cash_flow: float

    @property
    def month_ref(self) -> MonthRef:
        return MonthRef(year=self.year, month=self.month)


# ---------------------------------------------------------------------------
# Recurring item expansion
# ---------------------------------------------------------------------------


def touched_columns(recurrence: Recurrence, column_count: int) -> list[int]:
    """
    Return the columns (1-based) a recurrence contributes to.

    A column c receives a contribution iff it lies within
    [start_column, end_column] and (c - start_column) % step == 0. A single
    item touches its start column only.

    Examples:
        quarterly, start 1, end 12 -> [1, 4, 7, 10]
        bimonthly, start 2, 6 columns -> [2, 4, 6]
    """
    start = recurrence.start_column
    step = FREQUENCY_STEP[recurrence.frequency]
    if step == 0:
        return [start] if 1 <= start <= column_count else []

    end = recurrence.end_column if recurrence.end_column is not None else column_count
    end = min(end, column_count)
    first = max(start, 1)
    # Align on the recurrence grid when start lies before column 1.
    if first != start:
        first += (step - (first - start) % step) % step
    return list(range(first, end + 1, step))


def expand_recurring_item(item: RecurringItem, column_count: int) -> dict[int, float]:
    """Return {column: amount} for every column the item touches."""
    return {
        col: float(item.overrides.get(col, item.base_amount))
        for col in touched_columns(item.recurrence, column_count)
    }


def _sum_items(items: Iterable[RecurringItem], column_count: int) -> list[float]:
    totals = [0.0] * column_count
    for item in items:
        for col, amount in expand_recurring_item(item, column_count).items():
            totals[col - 1] += amount
    return totals


def build_cash_flow(
    periods: Iterable[CashFlowPeriodInput],
    incomes: Iterable[RecurringItem] = (),
    expenses: Iterable[RecurringItem] = (),
) -> list[CashFlowPeriod]:
    """
    Build the cash-flow series.

    Periods are sorted by (year, month); sorting is stable, so periods of
    the same month keep their input order. The cumulative series is a
    running sum of the net flows starting from 0.

    Args:
        periods: Static inflow and outflow components per month.
        incomes: Recurring items added to the inflows.
        expenses: Recurring items added to the outflows.

    Returns:
        One CashFlowPeriod per input period, in chronological order.
    """
    ordered = sorted(periods, key=lambda p: (p.year, p.month))
    n = len(ordered)
    extra_in = _sum_items(incomes, n)
    extra_out = _sum_items(expenses, n)

    out: list[CashFlowPeriod] = []
    cumulative = 0.0
    for i, p in enumerate(ordered):
        total_in = p.static_inflows + extra_in[i]
        total_out = p.static_outflows + extra_out[i]
        net = total_in - total_out
        cumulative += net
        out.append(
            CashFlowPeriod(
                column=i + 1,
                month=p.month,
                year=p.year,
                sales_collections=p.sales_collections,
                other_income=p.other_income,
                supplier_payments=p.supplier_payments,
                payroll=p.payroll,
                rent=p.rent,
                utilities=p.utilities,
                taxes=p.taxes,
                other_expenses=p.other_expenses,
                additional_inflows=extra_in[i],
                additional_outflows=extra_out[i],
                total_inflows=total_in,
                total_outflows=total_out,
                net_cash_flow=net,
                cumulative_cash_flow=cumulative,
            )
        )
    return out


# ---------------------------------------------------------------------------
# Health analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecommendationRule:
    """
    One row of the recommendation table.

    ``condition`` is an expression over the health metrics: period_count,
    average_net_flow, positive_months, negative_months,
    longest_negative_streak, final_cumulative, cumulative_non_decreasing
    (1 or 0) and health_score.
    """

    key: str
    condition: str
    message: str
    priority: int = 100

    def __post_init__(self) -> None:
        validate_expression(self.condition)


@dataclass(frozen=True)
class Recommendation:
    key: str
    message: str
    priority: int


DEFAULT_RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        key="negative_majority",
        condition="negative_months > positive_months",
        message=(
            "Most months have a negative cash flow. Review your costs and "
            "look for ways to increase revenue."
        ),
        priority=10,
    ),
    RecommendationRule(
        key="negative_streak",
        condition="longest_negative_streak >= 3",
        message=(
            "Three or more consecutive months with a negative cash flow. "
            "Plan financing or cut expenses before the next period."
        ),
        priority=20,
    ),
    RecommendationRule(
        key="negative_cumulative",
        condition="final_cumulative < 0",
        message=(
            "The cumulative cash flow is negative. Consider external "
            "financing or a credit line."
        ),
        priority=30,
    ),
    RecommendationRule(
        key="negative_average",
        condition="average_net_flow < 0",
        message=(
            "The average monthly cash flow is negative. Optimize your "
            "collections and payment terms."
        ),
        priority=40,
    ),
    RecommendationRule(
        key="all_positive",
        condition="period_count > 0 and positive_months == period_count",
        message=(
            "Excellent: every month has a positive cash flow. Consider "
            "investing the surplus."
        ),
        priority=50,
    ),
    RecommendationRule(
        key="healthy_score",
        condition="health_score >= 70 and positive_months < period_count",
        message="Your cash flow is healthy. Keep the current discipline.",
        priority=60,
    ),
)

FALLBACK_MESSAGE = "Your cash flow is balanced. Keep monitoring it every month."
EMPTY_MESSAGE = "Add periods to obtain a cash-flow analysis."


@dataclass(frozen=True)
class HealthAnalysis:
    period_count: int
    average_net_flow: float
    positive_months: int
    negative_months: int
    longest_negative_streak: int
    final_cumulative: float
    cumulative_non_decreasing: bool
    health_score: float
    recommendations: tuple[Recommendation, ...]

    def metrics(self) -> dict[str, float]:
        """Metrics exposed to recommendation rule conditions."""
        return {
            "period_count": float(self.period_count),
            "average_net_flow": self.average_net_flow,
            "positive_months": float(self.positive_months),
            "negative_months": float(self.negative_months),
            "longest_negative_streak": float(self.longest_negative_streak),
            "final_cumulative": self.final_cumulative,
            "cumulative_non_decreasing": 1.0 if self.cumulative_non_decreasing else 0.0,
            "health_score": self.health_score,
        }


def _longest_negative_streak(nets: Sequence[float]) -> int:
    best = current = 0
    for net in nets:
        current = current + 1 if net < 0 else 0
        best = max(best, current)
    return best


def health_score(
    positive_months: int,
    negative_months: int,
    period_count: int,
    final_cumulative: float,
    cumulative_non_decreasing: bool,
) -> float:
    """
    Compute the 0-100 cash-flow health score.

    Base 50; +30 * positive / n when positive months outnumber negative
    ones; +20 when the final cumulative flow is positive; -10 when the
    cumulative series ever declines. Empty series score 0.
    """
    if period_count == 0:
        return 0.0
    score = 50.0
    if positive_months > negative_months:
        score += 30.0 * positive_months / period_count
    if final_cumulative > 0:
        score += 20.0
    if not cumulative_non_decreasing:
        score -= 10.0
    return max(0.0, min(100.0, score))


def rank_recommendations(
    metrics: Mapping[str, float],
    rules: Sequence[RecommendationRule] = DEFAULT_RECOMMENDATION_RULES,
) -> tuple[Recommendation, ...]:
    """Evaluate the rule table and return matched rules by priority, then
    table order. Falls back to a neutral message when nothing matches."""
    matched = [
        (rule.priority, idx, rule)
        for idx, rule in enumerate(rules)
        if evaluate_condition(rule.condition, metrics)
    ]
    matched.sort(key=lambda t: (t[0], t[1]))
    if not matched:
        return (Recommendation(key="fallback", message=FALLBACK_MESSAGE, priority=1000),)
    return tuple(
        Recommendation(key=rule.key, message=rule.message, priority=rule.priority)
        for _, _, rule in matched
    )


def analyze_health(
    periods: Sequence[CashFlowPeriod],
    rules: Sequence[RecommendationRule] = DEFAULT_RECOMMENDATION_RULES,
) -> HealthAnalysis:
    """Analyze a cash-flow series built by ``build_cash_flow``."""
    n = len(periods)
    if n == 0:
        logger.debug("Health analysis requested for an empty cash-flow series")
        return HealthAnalysis(
            period_count=0,
            average_net_flow=0.0,
            positive_months=0,
            negative_months=0,
            longest_negative_streak=0,
            final_cumulative=0.0,
            cumulative_non_decreasing=True,
            health_score=0.0,
            recommendations=(Recommendation(key="empty", message=EMPTY_MESSAGE, priority=0),),
        )

    nets = [p.net_cash_flow for p in periods]
    cumulative = [0.0] + [p.cumulative_cash_flow for p in periods]
    positive = sum(1 for v in nets if v > 0)
    negative = sum(1 for v in nets if v < 0)
    non_decreasing = all(b >= a for a, b in zip(cumulative, cumulative[1:]))
    final = cumulative[-1]
    score = health_score(positive, negative, n, final, non_decreasing)

    partial = HealthAnalysis(
        period_count=n,
        average_net_flow=sum(nets) / n,
        positive_months=positive,
        negative_months=negative,
        longest_negative_streak=_longest_negative_streak(nets),
        final_cumulative=final,
        cumulative_non_decreasing=non_decreasing,
        health_score=score,
        recommendations=(),
    )
    recommendations = rank_recommendations(partial.metrics(), rules)
    return replace(partial, recommendations=recommendations)


# ---------------------------------------------------------------------------
# Payment alerts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlertWindow:
    """Alert window around a due date.

    An alert is raised from ``days_before`` days before the due date until
    ``days_after`` days after it.
    """

    days_before: int = 7
    days_after: int = 3


DEFAULT_ALERT_WINDOW = AlertWindow()


@dataclass(frozen=True)
class PaymentAlert:
    item_name: str
    amount: float
    column: int
    payment_date: date
    days_until: int
    is_past_due: bool


def payment_alerts(
    items: Iterable[RecurringItem],
    periods: Sequence[Any],
    today: date,
    window: AlertWindow = DEFAULT_ALERT_WINDOW,
) -> list[PaymentAlert]:
    """
    List payments due in the alert window, most urgent first.

    Args:
        items: Recurring items; those without a payment_day are skipped.
            A zero base amount only alerts on overridden columns, so an
            item that carries all its amounts as overrides (a loan) alerts
            on those columns alone.
        periods: Chronological period columns; any objects with ``month``
            and ``year`` attributes (MonthRef, CashFlowPeriod...).
        today: Reference date.
        window: Alert window, 3 days overdue to 7 days ahead by default.

    Returns:
        Alerts sorted ascending by days_until (ties keep item order).
    """
    alerts: list[PaymentAlert] = []
    column_count = len(periods)
    for item in items:
        day = item.recurrence.payment_day
        if day is None:
            continue
        amounts = expand_recurring_item(item, column_count)
        for col, amount in amounts.items():
            if item.base_amount == 0 and col not in item.overrides:
                continue
            period = periods[col - 1]
            due = clamped_date(period.year, period.month, day)
            days_until = (due - today).days
            if -window.days_after <= days_until <= window.days_before:
                alerts.append(
                    PaymentAlert(
                        item_name=item.name,
                        amount=amount,
                        column=col,
                        payment_date=due,
                        days_until=days_until,
                        is_past_due=days_until < 0,
                    )
                )
    alerts.sort(key=lambda a: a.days_until)
    return alerts
