import pytest

from smb_fincalc.amortization import Loan, build_schedule
from smb_fincalc.balance import compute_balance_totals
from smb_fincalc.cash_flow import (
    CashFlowPeriodInput,
    Frequency,
    Recurrence,
    RecurringItem,
    build_cash_flow,
)
from smb_fincalc.income import IncomeFigures, compute_income_statement
from smb_fincalc.indicators import RatioResult, calculate_indicators
from smb_fincalc.investments import build_portfolio
from smb_fincalc.views import (
    CASH_FLOW_ROWS,
    allocation_frame,
    amortization_frame,
    cash_flow_frame,
    cash_flow_statement_view,
    indicators_frame,
    ratios_frame,
)

INCOME = RecurringItem("Consulting", 100.0, Recurrence(Frequency.MONTHLY))
EXPENSE = RecurringItem("Insurance", 30.0, Recurrence(Frequency.BIMONTHLY))


def _flow():
    periods = [
        CashFlowPeriodInput(month=1, year=2025, sales_collections=1000, payroll=400),
        CashFlowPeriodInput(month=2, year=2025, sales_collections=800, rent=300),
    ]
    return build_cash_flow(periods, [INCOME], [EXPENSE])


def test_cash_flow_frame_has_one_row_per_period() -> None:
    df = cash_flow_frame(_flow())

    assert list(df["period_label"]) == ["2025-01", "2025-02"]
    assert list(df["net_cash_flow"]) == pytest.approx([670.0, 600.0])
    assert list(df["cumulative_cash_flow"]) == pytest.approx([670.0, 1270.0])


def test_statement_view_default_layout() -> None:
    df = cash_flow_statement_view(_flow(), incomes=[INCOME], expenses=[EXPENSE])

    assert list(df.columns) == ["display_order", "key", "label", "kind", "2025-01", "2025-02"]
    assert len(df) == len(CASH_FLOW_ROWS) + 2
    assert list(df["display_order"]) == [10 * (i + 1) for i in range(len(df))]

    keys = list(df["key"])
    assert keys.index("income:Consulting") == keys.index("additional_inflows") + 1
    assert keys.index("expense:Insurance") == keys.index("additional_outflows") + 1

    insurance = df.set_index("key").loc["expense:Insurance"]
    assert insurance["2025-01"] == pytest.approx(30.0)
    assert insurance["2025-02"] == pytest.approx(0.0)


def test_statement_view_hidden_rows_and_labels_do_not_touch_engine_output() -> None:
    """Display annotations apply to the view only."""
    flow = _flow()
    before = list(flow)

    df = cash_flow_statement_view(
        flow,
        labels={"sales_collections": "Cobros de ventas", "unknown": "ignored"},
        hidden_rows=["utilities", "taxes", "unknown"],
    )

    assert "utilities" not in set(df["key"])
    assert "taxes" not in set(df["key"])
    assert df.loc[df["key"] == "sales_collections", "label"].item() == "Cobros de ventas"
    assert list(df["display_order"]) == [10 * (i + 1) for i in range(len(df))]
    assert flow == before


def test_amortization_frame() -> None:
    schedule = build_schedule(Loan(principal=1_000_000, annual_rate_percent=12, installment_count=6))

    df = amortization_frame(schedule)

    assert len(df) == 6
    assert df["status"].iloc[0] == "current"
    assert df["remaining_balance"].iloc[-1] == 0
    assert "total_payment" in df.columns


def test_allocation_frame_sums_to_amount() -> None:
    df = allocation_frame(build_portfolio(3_000_000, "moderate", "equal"))

    assert list(df.columns) == [
        "product_id",
        "product_name",
        "percentage",
        "amount",
        "expected_return",
    ]
    assert df["amount"].sum() == pytest.approx(3_000_000, abs=0.01)


def test_indicators_and_ratios_frames_are_long_format() -> None:
    indicators = calculate_indicators(
        compute_balance_totals([]),
        compute_income_statement(IncomeFigures(revenue=100.0, cost_of_sales=40.0)),
    )

    df = indicators_frame([("2024", indicators), ("2025", indicators)])
    per_period = len(indicators.ratios()) + 1
    assert len(df) == 2 * per_period
    assert set(df["period_label"]) == {"2024", "2025"}
    assert df.loc[df["key"] == "gross_margin", "value"].tolist() == pytest.approx([0.6, 0.6])

    ratios = ratios_frame([("2025", [RatioResult("k", "Label", 1.5, "%", None)])])
    assert ratios.to_dict("records") == [
        {
            "period_label": "2025",
            "key": "k",
            "label": "Label",
            "value": 1.5,
            "unit": "%",
            "notes": None,
        }
    ]


def test_statement_view_rejects_duplicate_months() -> None:
    periods = build_cash_flow(
        [
            CashFlowPeriodInput(month=1, year=2025, sales_collections=1000),
            CashFlowPeriodInput(month=1, year=2025, sales_collections=500),
        ]
    )

    with pytest.raises(ValueError, match="2025-01"):
        cash_flow_statement_view(periods)
