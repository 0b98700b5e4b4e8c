# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Unit economics and break-even analysis for one product.

The CostModel is the only durable fact: every derived metric is recomputed
by ``analyze_costs`` on each call and never stored.

Degenerate input never raises: a non-positive contribution margin yields
a zero break-even point ("never profitable"), a zero price yields a zero
margin ratio, and a zero profit yields a zero operating leverage.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CostBreakdownItem:
    """One line of a cost breakdown (e.g. 'Raw materials', 12000)."""

    name: str
    amount: float


@dataclass(frozen=True)
class CostModel:
    """
    Unit economics of a product.

    Attributes:
        unit_price: Selling price per unit.
        variable_cost_per_unit: Variable cost per unit.
        monthly_fixed_costs: Fixed costs per month.
        current_monthly_units: Units currently sold per month.
        production_capacity: Optional monthly capacity in units.
        product_name: Optional label, used in log messages only.
    """

    unit_price: float
    variable_cost_per_unit: float
    monthly_fixed_costs: float
    current_monthly_units: float = 0.0
    production_capacity: Optional[float] = None
    product_name: str = ""


@dataclass(frozen=True)
class CostAnalysis:
    """Derived metrics of a CostModel.

    ``contribution_margin_ratio`` is a ratio (0-1); every ``*_percentage``
    field is expressed in percent (0-100).
    """

    contribution_margin_per_unit: float
    contribution_margin_ratio: float
    total_contribution_margin: float
    break_even_units: int
    break_even_revenue: float
    margin_of_safety: float
    margin_of_safety_percentage: float
    current_monthly_revenue: float
    current_monthly_total_costs: float
    current_monthly_profit: float
    operating_leverage: float
    capacity_utilization: Optional[float] = None
    max_potential_profit: Optional[float] = None

    @property
    def is_profitable(self) -> bool:
        return self.current_monthly_profit > 0


def cost_model_from_breakdown(
    unit_price: float,
    variable_cost_breakdown: Iterable[CostBreakdownItem],
    fixed_cost_breakdown: Iterable[CostBreakdownItem],
    current_monthly_units: float = 0.0,
    production_capacity: Optional[float] = None,
    product_name: str = "",
) -> CostModel:
    """Build a CostModel by summing itemized variable and fixed costs."""
    return CostModel(
        unit_price=unit_price,
        variable_cost_per_unit=float(sum(i.amount for i in variable_cost_breakdown)),
        monthly_fixed_costs=float(sum(i.amount for i in fixed_cost_breakdown)),
        current_monthly_units=current_monthly_units,
        production_capacity=production_capacity,
        product_name=product_name,
    )


def _break_even_units(fixed_costs: float, margin: float) -> int:
    if margin <= 0:
        return 0
    # Rounded before ceil so that 1.1 / 0.1 = 11.000000000000002 gives 11.
    units = max(math.ceil(round(fixed_costs / margin, 9)), 0)
    if units * margin < fixed_costs:
        units += 1
    return units


def analyze_costs(model: CostModel) -> CostAnalysis:
    """
    Run the unit-economics analysis, in this order:

    1. contribution margin per unit = price - variable cost
    2. contribution margin ratio = margin / price
    3. break-even units = ceil(fixed costs / margin), 0 if margin <= 0
    4. break-even revenue = break-even units * price
    5. margin of safety = units - break-even units, and its percentage
    6. monthly profit = price * units - variable cost * units - fixed costs
    7. operating leverage = total contribution margin / profit
    8. capacity utilization and max potential profit, when capacity is set

    Examples:
        price 50000, variable 20000, fixed 3000000, 150 units
        -> margin 30000, break-even 100 units, profit 1500000
    """
    price = model.unit_price
    units = model.current_monthly_units
    fixed = model.monthly_fixed_costs

    margin = price - model.variable_cost_per_unit
    margin_ratio = margin / price if price != 0 else 0.0
    be_units = _break_even_units(fixed, margin)
    be_revenue = be_units * price

    safety = units - be_units
    safety_pct = safety / units * 100 if units != 0 else 0.0

    revenue = price * units
    total_costs = model.variable_cost_per_unit * units + fixed
    profit = revenue - total_costs

    total_margin = margin * units
    leverage = total_margin / profit if profit != 0 and total_margin != 0 else 0.0

    utilization = None
    max_profit = None
    if model.production_capacity:
        capacity = model.production_capacity
        utilization = units / capacity * 100
        max_profit = margin * capacity - fixed

    if margin <= 0:
        logger.debug(
            "Non-positive contribution margin for %s: no finite break-even",
            model.product_name or "product",
        )

    return CostAnalysis(
        contribution_margin_per_unit=margin,
        contribution_margin_ratio=margin_ratio,
        total_contribution_margin=total_margin,
        break_even_units=be_units,
        break_even_revenue=be_revenue,
        margin_of_safety=safety,
        margin_of_safety_percentage=safety_pct,
        current_monthly_revenue=revenue,
        current_monthly_total_costs=total_costs,
        current_monthly_profit=profit,
        operating_leverage=leverage,
        capacity_utilization=utilization,
        max_potential_profit=max_profit,
    )


def is_profitable(model: CostModel) -> bool:
    """True when the model currently yields a positive monthly profit."""
    return analyze_costs(model).is_profitable


def break_even_reachable(model: CostModel) -> bool:
    """True when each unit contributes a positive margin."""
    return model.unit_price - model.variable_cost_per_unit > 0
