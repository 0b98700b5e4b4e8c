# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Investment return projections and portfolio allocation.

Projections are simple interest against the product's published annual
rate for the horizon (3, 6 or 12 months); horizons are never compounded
into one another.

Portfolios are built from a candidate set matching a risk profile, then
allocated with one of three strategies:

- equal: every product gets 100 / n percent,
- return-optimized: proportional to the 12-month return,
- risk-weighted: proportional to the 12-month return divided by a risk
  weight (conservative 3, moderate 2, aggressive 1).

Percentages and amounts are rounded to cents; the rounding residue is
carried by the last line so that the totals are exact.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from .log import get_logger

logger = get_logger(__name__)

HORIZONS: tuple[int, ...] = (3, 6, 12)
DEFAULT_CANDIDATE_LIMIT = 5


class RiskLevel(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class Liquidity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Strategy(str, Enum):
    EQUAL = "equal"
    RETURN_OPTIMIZED = "return-optimized"
    RISK_WEIGHTED = "risk-weighted"


DEFAULT_RISK_WEIGHTS: dict[RiskLevel, float] = {
    RiskLevel.CONSERVATIVE: 3.0,
    RiskLevel.MODERATE: 2.0,
    RiskLevel.AGGRESSIVE: 1.0,
}

# Tier used to top up the candidate set when a profile has too few products.
FALLBACK_TIER: dict[RiskLevel, RiskLevel] = {
    RiskLevel.CONSERVATIVE: RiskLevel.MODERATE,
    RiskLevel.AGGRESSIVE: RiskLevel.MODERATE,
    RiskLevel.MODERATE: RiskLevel.CONSERVATIVE,
}

LIQUIDITY_SCORE: dict[Liquidity, float] = {
    Liquidity.HIGH: 10.0,
    Liquidity.MEDIUM: 5.0,
    Liquidity.LOW: 0.0,
}


@dataclass(frozen=True)
class InvestmentProduct:
    """
    A read-only investment product.

    Expected returns are annual rates in percent for each horizon.
    """

    id: str
    name: str
    kind: str
    institution: str
    min_amount: float
    expected_return_3m: float
    expected_return_6m: float
    expected_return_12m: float
    risk_level: RiskLevel
    liquidity: Liquidity
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "risk_level", RiskLevel(self.risk_level))
        object.__setattr__(self, "liquidity", Liquidity(self.liquidity))

    def annual_rate_for(self, months: int) -> float:
        """Annual rate of the horizon covering ``months``."""
        if months <= 3:
            return self.expected_return_3m
        if months <= 6:
            return self.expected_return_6m
        return self.expected_return_12m


@dataclass(frozen=True)
class ReturnProjection:
    months: int
    invested_amount: float
    annual_rate: float
    earnings: float
    total_amount: float
    effective_rate: float


@dataclass(frozen=True)
class AllocationLine:
    product_id: str
    product_name: str
    percentage: float
    amount: float
    expected_return: float


@dataclass(frozen=True)
class PortfolioProjection:
    months: int
    invested_amount: float
    earnings: float
    total_amount: float
    effective_rate: float


# Colombian market reference products, rates as published in January 2025.
PRODUCT_CATALOG: tuple[InvestmentProduct, ...] = (
    InvestmentProduct(
        id="cdt-bancolombia-1",
        name="CDT Bancolombia",
        kind="cdt",
        institution="Bancolombia",
        min_amount=1_000_000,
        expected_return_3m=12.5,
        expected_return_6m=13.0,
        expected_return_12m=13.5,
        risk_level=RiskLevel.CONSERVATIVE,
        liquidity=Liquidity.LOW,
        description="Fixed-term deposit with a guaranteed rate.",
    ),
    InvestmentProduct(
        id="cdt-davivienda-1",
        name="CDT Davivienda",
        kind="cdt",
        institution="Davivienda",
        min_amount=500_000,
        expected_return_3m=12.0,
        expected_return_6m=13.2,
        expected_return_12m=13.8,
        risk_level=RiskLevel.CONSERVATIVE,
        liquidity=Liquidity.LOW,
        description="Fixed-term deposit with a rising rate by term.",
    ),
    InvestmentProduct(
        id="bonos-gobierno-1",
        name="TES Government Bonds",
        kind="bonds",
        institution="Ministerio de Hacienda",
        min_amount=1_000_000,
        expected_return_3m=10.5,
        expected_return_6m=11.0,
        expected_return_12m=11.5,
        risk_level=RiskLevel.CONSERVATIVE,
        liquidity=Liquidity.MEDIUM,
        description="Sovereign debt securities.",
    ),
    InvestmentProduct(
        id="bonos-corporativos-1",
        name="Grupo Éxito Corporate Bonds",
        kind="bonds",
        institution="Grupo Éxito",
        min_amount=5_000_000,
        expected_return_3m=12.0,
        expected_return_6m=12.8,
        expected_return_12m=13.5,
        risk_level=RiskLevel.MODERATE,
        liquidity=Liquidity.MEDIUM,
        description="Investment-grade corporate debt.",
    ),
    InvestmentProduct(
        id="fondo-btg-1",
        name="BTG Pactual Liquidity Fund",
        kind="fund",
        institution="BTG Pactual",
        min_amount=200_000,
        expected_return_3m=11.5,
        expected_return_6m=12.0,
        expected_return_12m=12.8,
        risk_level=RiskLevel.MODERATE,
        liquidity=Liquidity.HIGH,
        description="Money-market fund with daily liquidity.",
    ),
    InvestmentProduct(
        id="fondo-credicorp-1",
        name="Credicorp Capital Balanced Fund",
        kind="fund",
        institution="Credicorp Capital",
        min_amount=500_000,
        expected_return_3m=13.0,
        expected_return_6m=14.5,
        expected_return_12m=16.0,
        risk_level=RiskLevel.MODERATE,
        liquidity=Liquidity.HIGH,
        description="Mixed fixed-income and equity fund.",
    ),
    InvestmentProduct(
        id="acciones-ecopetrol-1",
        name="Ecopetrol Shares",
        kind="stocks",
        institution="Bolsa de Valores de Colombia",
        min_amount=100_000,
        expected_return_3m=5.0,
        expected_return_6m=8.0,
        expected_return_12m=18.0,
        risk_level=RiskLevel.AGGRESSIVE,
        liquidity=Liquidity.HIGH,
        description="Listed equity with dividends.",
    ),
    InvestmentProduct(
        id="fondo-acciones-1",
        name="Skandia Equity Fund",
        kind="fund",
        institution="Skandia",
        min_amount=1_000_000,
        expected_return_3m=6.0,
        expected_return_6m=10.0,
        expected_return_12m=20.0,
        risk_level=RiskLevel.AGGRESSIVE,
        liquidity=Liquidity.HIGH,
        description="Diversified equity fund.",
    ),
    InvestmentProduct(
        id="fiducia-bogota-1",
        name="Fiduciaria Bogotá Trust",
        kind="trust",
        institution="Fiduciaria Bogotá",
        min_amount=2_000_000,
        expected_return_3m=12.5,
        expected_return_6m=13.5,
        expected_return_12m=14.5,
        risk_level=RiskLevel.MODERATE,
        liquidity=Liquidity.MEDIUM,
        description="Collective investment trust.",
    ),
    InvestmentProduct(
        id="fiducia-alianza-1",
        name="Alianza Real Estate Trust",
        kind="trust",
        institution="Alianza Fiduciaria",
        min_amount=10_000_000,
        expected_return_3m=10.0,
        expected_return_6m=14.0,
        expected_return_12m=22.0,
        risk_level=RiskLevel.AGGRESSIVE,
        liquidity=Liquidity.LOW,
        description="Real-estate trust with long holding periods.",
    ),
)


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


def project_return(amount: float, product: InvestmentProduct, months: int) -> ReturnProjection:
    """
    Simple-interest projection over ``months``.

    monthly rate = annual rate / 100 / 12
    earnings     = amount * monthly rate * months
    effective    = earnings / amount * 100 (0 when amount is 0)
    """
    annual = product.annual_rate_for(months)
    earnings = amount * (annual / 100 / 12) * months
    effective = earnings / amount * 100 if amount != 0 else 0.0
    return ReturnProjection(
        months=months,
        invested_amount=amount,
        annual_rate=annual,
        earnings=round(earnings, 2),
        total_amount=round(amount + earnings, 2),
        effective_rate=round(effective, 2),
    )


def project_all_horizons(amount: float, product: InvestmentProduct) -> dict[int, ReturnProjection]:
    return {m: project_return(amount, product, m) for m in HORIZONS}


# ---------------------------------------------------------------------------
# Candidate selection
# ---------------------------------------------------------------------------


def _by_return(products: Sequence[InvestmentProduct]) -> list[InvestmentProduct]:
    return sorted(products, key=lambda p: p.expected_return_12m, reverse=True)


def select_products(
    risk_profile: RiskLevel,
    products: Sequence[InvestmentProduct] = PRODUCT_CATALOG,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
) -> list[InvestmentProduct]:
    """
    Pick the candidate products of a portfolio.

    Products of the profile's tier come first; when fewer than ``limit``
    match, the set is topped up with the first products of the adjacent
    tier, in catalog order. The result is sorted by 12-month return,
    highest first, and truncated to ``limit``.
    """
    profile = RiskLevel(risk_profile)
    selected = [p for p in products if p.risk_level is profile]
    if len(selected) < limit:
        fallback = FALLBACK_TIER[profile]
        needed = limit - len(selected)
        selected += [p for p in products if p.risk_level is fallback][:needed]
    return _by_return(selected)[:limit]


def top_products(
    products: Sequence[InvestmentProduct] = PRODUCT_CATALOG,
    limit: int = 3,
) -> list[InvestmentProduct]:
    """Rank products by 12-month return (60%), liquidity (20%) and a
    moderate-risk bonus (20%)."""

    def score(p: InvestmentProduct) -> float:
        bonus = 5.0 if p.risk_level is RiskLevel.MODERATE else 0.0
        return p.expected_return_12m * 0.6 + LIQUIDITY_SCORE[p.liquidity] * 0.2 + bonus * 0.2

    return sorted(products, key=score, reverse=True)[:limit]


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------


def _weights(
    candidates: Sequence[InvestmentProduct],
    strategy: Strategy,
    risk_weights: Mapping[RiskLevel, float],
) -> list[float]:
    if strategy is Strategy.EQUAL:
        return [1.0] * len(candidates)
    if strategy is Strategy.RETURN_OPTIMIZED:
        return [p.expected_return_12m for p in candidates]
    return [p.expected_return_12m / risk_weights.get(p.risk_level, 2.0) for p in candidates]


def build_portfolio(
    amount: float,
    risk_profile: RiskLevel,
    strategy: Strategy = Strategy.RISK_WEIGHTED,
    products: Sequence[InvestmentProduct] = PRODUCT_CATALOG,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
    risk_weights: Mapping[RiskLevel, float] = DEFAULT_RISK_WEIGHTS,
) -> list[AllocationLine]:
    """
    Build a diversified allocation of ``amount``.

    Returns:
        One AllocationLine per candidate, in candidate order. Empty when
        there is no candidate or the weights sum to zero or less.
    """
    strategy = Strategy(strategy)
    candidates = select_products(risk_profile, products, limit)
    weights = _weights(candidates, strategy, risk_weights)
    total = sum(weights)
    if not candidates or total <= 0:
        logger.debug(
            "No allocation for profile %s (%d candidates)", risk_profile, len(candidates)
        )
        return []

    shares = [w / total for w in weights]
    percentages = [round(s * 100, 2) for s in shares[:-1]]
    percentages.append(round(100 - sum(percentages), 2))
    amounts = [round(amount * s, 2) for s in shares[:-1]]
    amounts.append(round(amount - sum(amounts), 2))

    return [
        AllocationLine(
            product_id=p.id,
            product_name=p.name,
            percentage=pct,
            amount=amt,
            expected_return=p.expected_return_12m,
        )
        for p, pct, amt in zip(candidates, percentages, amounts)
    ]


def portfolio_projection(
    allocations: Sequence[AllocationLine],
    products: Sequence[InvestmentProduct] = PRODUCT_CATALOG,
) -> list[PortfolioProjection]:
    """Aggregate the 3, 6 and 12-month projections of an allocation."""
    by_id = {p.id: p for p in products}
    invested = round(sum(a.amount for a in allocations), 2)
    out = []
    for months in HORIZONS:
        earnings = sum(
            project_return(a.amount, by_id[a.product_id], months).earnings
            for a in allocations
        )
        out.append(
            PortfolioProjection(
                months=months,
                invested_amount=invested,
                earnings=round(earnings, 2),
                total_amount=round(invested + earnings, 2),
                effective_rate=round(earnings / invested * 100, 2) if invested else 0.0,
            )
        )
    return out
