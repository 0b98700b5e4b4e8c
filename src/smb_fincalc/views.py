# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB FinCalc.

This module turns engine output into pandas DataFrames ready for display
or export. It never changes engine results: display customizations such as
custom row labels and hidden rows are applied to a freshly built frame.

The main views are:

- cash_flow_frame:          one row per period (long, record-oriented),
- cash_flow_statement_view: one row per cash-flow line, one column per
                            period (wide, as printed in the dashboard),
- amortization_frame:       one row per installment,
- allocation_frame:         one row per portfolio line,
- indicators_frame:         long format, one row per (period, indicator),
- ratios_frame:             long format, one row per (period, custom ratio).
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict
from typing import Optional

import pandas as pd

from .amortization import AmortizationEntry
from .cash_flow import CashFlowPeriod, RecurringItem, expand_recurring_item
from .indicators import IndicatorSet, RatioResult
from .investments import AllocationLine

# (key, default label, kind) in statement order.
CASH_FLOW_ROWS: tuple[tuple[str, str, str], ...] = (
    ("sales_collections", "Sales collections", "inflow"),
    ("other_income", "Other income", "inflow"),
    ("additional_inflows", "Additional income", "inflow"),
    ("total_inflows", "Total inflows", "total"),
    ("supplier_payments", "Supplier payments", "outflow"),
    ("payroll", "Payroll", "outflow"),
    ("rent", "Rent", "outflow"),
    ("utilities", "Utilities", "outflow"),
    ("taxes", "Taxes", "outflow"),
    ("other_expenses", "Other expenses", "outflow"),
    ("additional_outflows", "Additional expenses", "outflow"),
    ("total_outflows", "Total outflows", "total"),
    ("net_cash_flow", "Net cash flow", "total"),
    ("cumulative_cash_flow", "Cumulative cash flow", "total"),
)


def period_label(period: CashFlowPeriod) -> str:
    return period.month_ref.label


def cash_flow_frame(periods: Sequence[CashFlowPeriod]) -> pd.DataFrame:
    """Return one row per period with every CashFlowPeriod field and a
    ``period_label`` column."""
    columns = ["period_label", *CashFlowPeriod.__dataclass_fields__]
    records = [{"period_label": period_label(p), **asdict(p)} for p in periods]
    return pd.DataFrame(records, columns=columns)


def cash_flow_statement_view(
    periods: Sequence[CashFlowPeriod],
    labels: Optional[Mapping[str, str]] = None,
    hidden_rows: Iterable[str] = (),
    incomes: Sequence[RecurringItem] = (),
    expenses: Sequence[RecurringItem] = (),
) -> pd.DataFrame:
    """Return the cash-flow statement as a row x period DataFrame.

    Steps:
      1) build one row per statement line, plus one detail row per
         recurring item (keys 'income:<name>' and 'expense:<name>') placed
         under the matching additional total,
      2) drop hidden rows,
      3) apply custom labels,
      4) renumber display_order to 10, 20, 30, ...

    Columns: display_order, key, label, kind, then one column per period
    label. Unknown keys in ``labels`` or ``hidden_rows`` are ignored.

    Raises:
        ValueError: if two periods share a month.
    """
    labels = labels or {}
    hidden = set(hidden_rows)
    period_labels = [period_label(p) for p in periods]
    duplicates = sorted({lbl for lbl in period_labels if period_labels.count(lbl) > 1})
    if duplicates:
        raise ValueError(f"Duplicate cash-flow periods: {', '.join(duplicates)}.")
    n = len(periods)

    def _item_rows(items: Sequence[RecurringItem], prefix: str, kind: str) -> list[dict]:
        rows = []
        for item in items:
            amounts = expand_recurring_item(item, n)
            values = {lbl: amounts.get(i + 1, 0.0) for i, lbl in enumerate(period_labels)}
            rows.append(
                {"key": f"{prefix}:{item.name}", "label": item.name, "kind": kind, **values}
            )
        return rows

    rows: list[dict] = []
    for key, default_label, kind in CASH_FLOW_ROWS:
        values = {lbl: float(getattr(p, key)) for lbl, p in zip(period_labels, periods)}
        rows.append({"key": key, "label": default_label, "kind": kind, **values})
        if key == "additional_inflows":
            rows.extend(_item_rows(incomes, "income", "detail"))
        elif key == "additional_outflows":
            rows.extend(_item_rows(expenses, "expense", "detail"))

    df = pd.DataFrame(rows, columns=["key", "label", "kind", *period_labels])
    df = df[~df["key"].isin(hidden)].reset_index(drop=True)
    df["label"] = [labels.get(k, lbl) for k, lbl in zip(df["key"], df["label"])]
    df.insert(0, "display_order", (df.index + 1) * 10)
    return df


def amortization_frame(schedule: Sequence[AmortizationEntry]) -> pd.DataFrame:
    columns = [*AmortizationEntry.__dataclass_fields__, "total_payment"]
    records = [
        {**asdict(e), "status": e.status.value, "total_payment": e.total_payment}
        for e in schedule
    ]
    return pd.DataFrame(records, columns=columns)


def allocation_frame(allocations: Sequence[AllocationLine]) -> pd.DataFrame:
    columns = list(AllocationLine.__dataclass_fields__)
    return pd.DataFrame([asdict(a) for a in allocations], columns=columns)


def indicators_frame(labelled_sets: Sequence[tuple[str, IndicatorSet]]) -> pd.DataFrame:
    """
    Long-format indicators across periods.

    Args:
        labelled_sets: (period_label, IndicatorSet) pairs, in period order.

    Returns:
        DataFrame with columns period_label, key, value. The risk level is
        reported as its own row with key 'risk_level' and a string value.
    """
    rows: list[dict[str, object]] = []
    for label, indicators in labelled_sets:
        for key, value in indicators.ratios().items():
            rows.append({"period_label": label, "key": key, "value": value})
        rows.append(
            {"period_label": label, "key": "risk_level", "value": indicators.risk_level.value}
        )
    return pd.DataFrame(rows, columns=["period_label", "key", "value"])


def ratios_frame(labelled_results: Sequence[tuple[str, Sequence[RatioResult]]]) -> pd.DataFrame:
    """Long-format custom ratios: period_label, key, label, value, unit, notes."""
    rows = [
        {"period_label": label, **asdict(r)}
        for label, results in labelled_results
        for r in results
    ]
    return pd.DataFrame(
        rows, columns=["period_label", "key", "label", "value", "unit", "notes"]
    )
