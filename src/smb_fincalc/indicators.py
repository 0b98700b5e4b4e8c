# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Financial indicators for SMB FinCalc.

This module derives the liquidity, profitability, leverage and efficiency
ratios of one period from its balance totals and income statement, then
summarizes them into a 0-100 health score and a risk level.

Conventions
-----------
- Every ratio is a plain ratio (0.12 for 12%), except ``*_days`` fields
  which are expressed in days.
- Divisions by zero return 0.0 instead of raising.
- The health score is a weighted average of normalized components. A
  component normalizes one ratio to [0, 1] against a healthy threshold:
  higher-is-better ratios score ``value / healthy`` (capped at 1),
  lower-is-better ratios score 1 up to the threshold and decrease
  linearly to 0 at ``worst``.

User-defined ratios
-------------------
Additional ratios can be declared in configuration as formulas over the
measures returned by ``indicator_measures``. They are organized in
cumulative levels (basic, advanced, full) and evaluated by
``compute_custom_ratios``; a formula that fails evaluates to None.
"""

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from .balance import BalanceTotals
from .errors import ExpressionError
from .expressions import evaluate
from .income import IncomeStatement
from .log import get_logger

logger = get_logger(__name__)

DEFAULT_PERIOD_DAYS = 365
TREND_THRESHOLD = 5.0

LEVEL_ORDER: dict[str, int] = {
    "basic": 1,
    "advanced": 2,
    "full": 3,
}


class HealthRisk(str, Enum):
    BAJO = "bajo"
    MEDIO = "medio"
    ALTO = "alto"
    CRITICO = "critico"


class Trend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True)
class ScoreComponent:
    """
    One component of the health score.

    Attributes:
        key: IndicatorSet field name (e.g. 'current_ratio').
        weight: Relative weight in the composite score.
        healthy: Threshold at which the component scores 1.
        higher_is_better: Direction of the ratio.
        worst: For lower-is-better ratios, the value scoring 0.
    """

    key: str
    weight: float
    healthy: float
    higher_is_better: bool = True
    worst: float = 1.0

    def normalize(self, value: float) -> float:
        if self.higher_is_better:
            if self.healthy <= 0:
                return 1.0 if value >= self.healthy else 0.0
            return max(0.0, min(1.0, value / self.healthy))
        if value <= self.healthy:
            return 1.0
        if value >= self.worst or self.worst <= self.healthy:
            return 0.0
        return (self.worst - value) / (self.worst - self.healthy)


DEFAULT_SCORE_COMPONENTS: tuple[ScoreComponent, ...] = (
    ScoreComponent("current_ratio", weight=20, healthy=1.5),
    ScoreComponent("acid_test", weight=15, healthy=1.0),
    ScoreComponent("net_margin", weight=20, healthy=0.10),
    ScoreComponent("roe", weight=15, healthy=0.15),
    ScoreComponent("roa", weight=10, healthy=0.05),
    ScoreComponent("debt_ratio", weight=20, healthy=0.5, higher_is_better=False, worst=1.0),
)


@dataclass(frozen=True)
class RiskBands:
    """Lower score bounds of the bajo, medio and alto risk levels."""

    bajo: float = 80.0
    medio: float = 60.0
    alto: float = 40.0


@dataclass(frozen=True)
class IndicatorThresholds:
    components: tuple[ScoreComponent, ...] = DEFAULT_SCORE_COMPONENTS
    risk_bands: RiskBands = RiskBands()
    period_days: int = DEFAULT_PERIOD_DAYS


DEFAULT_THRESHOLDS = IndicatorThresholds()


@dataclass(frozen=True)
class IndicatorSet:
    working_capital: float
    current_ratio: float
    acid_test: float
    gross_margin: float
    operating_margin: float
    net_margin: float
    roe: float
    roa: float
    debt_ratio: float
    debt_to_equity: float
    financial_leverage: float
    asset_turnover: float
    inventory_turnover: float
    receivables_days: float
    payables_days: float
    ebitda: float
    health_score: float
    risk_level: HealthRisk

    def ratios(self) -> dict[str, float]:
        """All numeric fields, risk level excluded."""
        data = asdict(self)
        data.pop("risk_level")
        return data


@dataclass(frozen=True)
class RatioDefinition:
    """User-defined ratio: a formula over indicator measures."""

    key: str
    label: str
    formula: str
    level: str = "basic"
    unit: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class RatioResult:
    key: str
    label: str
    value: Optional[float]
    unit: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PeriodComparison:
    """Percent changes between the last two indicator sets.

    A change is None when either value is 0.
    """

    working_capital_change: Optional[float]
    current_ratio_change: Optional[float]
    net_margin_change: Optional[float]
    roe_change: Optional[float]
    roa_change: Optional[float]
    debt_ratio_change: Optional[float]
    health_score_change: float
    trend: Trend


# ---------------------------------------------------------------------------
# Ratios and score
# ---------------------------------------------------------------------------


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is 0."""
    return numerator / denominator if denominator != 0 else 0.0


def composite_score(
    values: Mapping[str, float],
    components: Sequence[ScoreComponent] = DEFAULT_SCORE_COMPONENTS,
) -> float:
    """Weighted average of normalized components, scaled to [0, 100]."""
    total_weight = sum(c.weight for c in components)
    if total_weight <= 0:
        return 0.0
    weighted = sum(c.weight * c.normalize(values[c.key]) for c in components)
    return round(max(0.0, min(100.0, weighted / total_weight * 100)), 2)


def risk_level_for(score: float, bands: RiskBands = RiskBands()) -> HealthRisk:
    if score >= bands.bajo:
        return HealthRisk.BAJO
    if score >= bands.medio:
        return HealthRisk.MEDIO
    if score >= bands.alto:
        return HealthRisk.ALTO
    return HealthRisk.CRITICO


def calculate_indicators(
    totals: BalanceTotals,
    income: IncomeStatement,
    thresholds: IndicatorThresholds = DEFAULT_THRESHOLDS,
) -> IndicatorSet:
    """
    Derive the indicator set of one period.

    Args:
        totals: Balance-sheet totals of the period.
        income: Income statement of the same period.
        thresholds: Score components, risk bands and period length.
    """
    days = thresholds.period_days
    equity = totals.total_equity
    assets = totals.total_assets

    values = {
        "working_capital": totals.current_assets - totals.current_liabilities,
        "current_ratio": safe_ratio(totals.current_assets, totals.current_liabilities),
        "acid_test": safe_ratio(
            totals.current_assets - totals.inventory, totals.current_liabilities
        ),
        "gross_margin": safe_ratio(income.gross_profit, income.revenue),
        "operating_margin": safe_ratio(income.operating_profit, income.revenue),
        "net_margin": safe_ratio(income.net_profit, income.revenue),
        "roe": safe_ratio(income.net_profit, equity),
        "roa": safe_ratio(income.net_profit, assets),
        "debt_ratio": safe_ratio(totals.total_liabilities, assets),
        "debt_to_equity": safe_ratio(totals.total_liabilities, equity),
        "financial_leverage": safe_ratio(assets, equity),
        "asset_turnover": safe_ratio(income.revenue, assets),
        "inventory_turnover": safe_ratio(income.cost_of_sales, totals.inventory),
        "receivables_days": safe_ratio(totals.receivables, income.revenue) * days,
        "payables_days": safe_ratio(totals.payables, income.cost_of_sales) * days,
        "ebitda": income.ebitda,
    }
    score = composite_score(values, thresholds.components)
    return IndicatorSet(
        **values,
        health_score=score,
        risk_level=risk_level_for(score, thresholds.risk_bands),
    )


# ---------------------------------------------------------------------------
# Trend and comparison
# ---------------------------------------------------------------------------


def determine_trend(scores: Sequence[float]) -> Trend:
    """
    Classify the trend of the last three health scores.

    The average change (last - first) / 3 is compared against +/-5.
    Fewer than three scores is a stable trend.
    """
    if len(scores) < 3:
        return Trend.STABLE
    recent = scores[-3:]
    avg_change = (recent[-1] - recent[0]) / 3
    if avg_change > TREND_THRESHOLD:
        return Trend.IMPROVING
    if avg_change < -TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


def percent_change(current: float, previous: float) -> Optional[float]:
    if current == 0 or previous == 0:
        return None
    return (current - previous) / abs(previous) * 100


def compare_periods(sets: Sequence[IndicatorSet]) -> Optional[PeriodComparison]:
    """Compare the last two indicator sets of a chronological series.

    Returns None with fewer than two sets.
    """
    if len(sets) < 2:
        return None
    previous, current = sets[-2], sets[-1]
    return PeriodComparison(
        working_capital_change=percent_change(
            current.working_capital, previous.working_capital
        ),
        current_ratio_change=percent_change(current.current_ratio, previous.current_ratio),
        net_margin_change=percent_change(current.net_margin, previous.net_margin),
        roe_change=percent_change(current.roe, previous.roe),
        roa_change=percent_change(current.roa, previous.roa),
        debt_ratio_change=percent_change(current.debt_ratio, previous.debt_ratio),
        health_score_change=current.health_score - previous.health_score,
        trend=determine_trend([s.health_score for s in sets]),
    )


# ---------------------------------------------------------------------------
# User-defined ratios
# ---------------------------------------------------------------------------


def indicator_measures(
    totals: BalanceTotals,
    income: IncomeStatement,
    indicators: Optional[IndicatorSet] = None,
) -> dict[str, float]:
    """Flat measure dictionary available to custom ratio formulas."""
    measures: dict[str, float] = {}
    for key, value in asdict(totals).items():
        if isinstance(value, bool):
            continue
        measures[key] = float(value)
    measures.update({k: float(v) for k, v in asdict(income).items()})
    if indicators is not None:
        measures.update(indicators.ratios())
    return measures


def compute_custom_ratios(
    measures: Mapping[str, float],
    definitions: Sequence[RatioDefinition],
    level: str = "full",
) -> list[RatioResult]:
    """
    Evaluate user-defined ratios up to the requested level.

    Levels are cumulative: 'advanced' includes 'basic' ratios, 'full'
    includes everything.

    Raises:
        ValueError: if ``level`` is unknown.
    """
    if level not in LEVEL_ORDER:
        raise ValueError(
            f"Unknown ratio level: {level!r}. Expected one of: {', '.join(LEVEL_ORDER)}."
        )
    max_rank = LEVEL_ORDER[level]

    results: list[RatioResult] = []
    for definition in definitions:
        if LEVEL_ORDER.get(definition.level, LEVEL_ORDER["full"]) > max_rank:
            continue
        try:
            value: Optional[float] = evaluate(definition.formula, measures)
        except (ExpressionError, ZeroDivisionError) as exc:
            logger.debug("Ratio %s could not be evaluated: %s", definition.key, exc)
            value = None
        results.append(
            RatioResult(
                key=definition.key,
                label=definition.label,
                value=value,
                unit=definition.unit,
                notes=definition.notes,
            )
        )
    return results
