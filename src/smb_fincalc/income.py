# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Income statement for one period.

Figures are positive magnitudes: expenses are entered as positive amounts
and subtracted here. Margins are expressed in percent of revenue and are
0.0 when revenue is not positive.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from .accounts import (
    DEFAULT_CLASSIFICATION,
    TAG_DEPRECIATION,
    TAG_FINANCIAL_EXPENSE,
    AccountCategory,
    ClassificationTable,
)
from .log import get_logger

logger = get_logger(__name__)

DEFAULT_TAX_RATE = 0.35


@dataclass(frozen=True)
class IncomeFigures:
    revenue: float
    cost_of_sales: float = 0.0
    operating_expenses: float = 0.0
    non_operating_income: float = 0.0
    non_operating_expenses: float = 0.0
    depreciation: float = 0.0
    interest_expense: float = 0.0
    tax_rate: float = DEFAULT_TAX_RATE


@dataclass(frozen=True)
class IncomeStatement:
    """Computed income statement.

    ``depreciation`` is part of ``operating_expenses``; ``interest_expense``
    is part of ``non_operating_expenses``. Both are kept separately to
    derive EBITDA.
    """

    revenue: float
    cost_of_sales: float
    gross_profit: float
    operating_expenses: float
    operating_profit: float
    non_operating_income: float
    non_operating_expenses: float
    profit_before_tax: float
    income_tax: float
    net_profit: float
    ebitda: float
    gross_margin: float
    operating_margin: float
    net_margin: float


def _margin(value: float, revenue: float) -> float:
    return value / revenue * 100 if revenue > 0 else 0.0


def compute_income_statement(figures: IncomeFigures) -> IncomeStatement:
    """
    Compute the income statement cascade.

    gross = revenue - cost_of_sales
    operating = gross - operating_expenses
    before tax = operating + non_operating_income - non_operating_expenses
    tax = before tax * tax_rate, only when before tax is positive
    net = before tax - tax
    EBITDA = operating + depreciation
    """
    gross = figures.revenue - figures.cost_of_sales
    operating = gross - figures.operating_expenses
    before_tax = (
        operating + figures.non_operating_income - figures.non_operating_expenses
    )
    tax = before_tax * figures.tax_rate if before_tax > 0 else 0.0
    net = before_tax - tax

    return IncomeStatement(
        revenue=figures.revenue,
        cost_of_sales=figures.cost_of_sales,
        gross_profit=gross,
        operating_expenses=figures.operating_expenses,
        operating_profit=operating,
        non_operating_income=figures.non_operating_income,
        non_operating_expenses=figures.non_operating_expenses,
        profit_before_tax=before_tax,
        income_tax=tax,
        net_profit=net,
        ebitda=operating + figures.depreciation,
        gross_margin=_margin(gross, figures.revenue),
        operating_margin=_margin(operating, figures.revenue),
        net_margin=_margin(net, figures.revenue),
    )


def income_figures_from_accounts(
    balances: Mapping[str, float],
    table: ClassificationTable = DEFAULT_CLASSIFICATION,
    tax_rate: float = DEFAULT_TAX_RATE,
) -> IncomeFigures:
    """Aggregate {code: amount} income-statement balances into IncomeFigures.

    Balance-sheet codes are ignored; unknown codes are logged and ignored.
    """
    sums = {cat: 0.0 for cat in AccountCategory}
    depreciation = 0.0
    interest = 0.0
    for code, amount in balances.items():
        cls = table.classify(code)
        if cls is None:
            logger.warning("Unknown account code %s, ignored", code)
            continue
        sums[cls.category] += float(amount)
        if cls.tag == TAG_DEPRECIATION:
            depreciation += float(amount)
        elif cls.tag == TAG_FINANCIAL_EXPENSE:
            interest += float(amount)

    return IncomeFigures(
        revenue=sums[AccountCategory.REVENUE],
        cost_of_sales=sums[AccountCategory.COST_OF_SALES],
        operating_expenses=sums[AccountCategory.OPERATING_EXPENSE],
        non_operating_income=sums[AccountCategory.NON_OPERATING_INCOME],
        non_operating_expenses=sums[AccountCategory.NON_OPERATING_EXPENSE],
        depreciation=depreciation,
        interest_expense=interest,
        tax_rate=tax_rate,
    )
