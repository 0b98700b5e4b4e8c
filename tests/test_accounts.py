import logging

import pytest

from smb_fincalc.accounts import (
    DEFAULT_CLASSIFICATION,
    AccountCategory,
    AccountClass,
    ClassificationTable,
    LedgerAccount,
    accounts_frame,
    build_ledger_accounts,
    code_key,
    load_classification_table,
    sum_by_category,
    sum_by_prefix,
    sum_by_subcategory,
    sum_by_tag,
)
from smb_fincalc.errors import ClassificationError


def _sample_accounts() -> list[LedgerAccount]:
    return build_ledger_accounts(
        {
            "1105": 300.0,
            "1305": 200.0,
            "1435": 100.0,
            "1504": 400.0,
            "2105": 200.0,
            "2205": 200.0,
            "3105": 600.0,
        }
    )


@pytest.mark.parametrize(
    "code, expected",
    [
        ("11", 1100),
        ("1105", 1105),
        ("110505", 1105),
        (" 2205 ", 2205),
        (4135, 4135),
        ("", None),
        ("11A5", None),
    ],
)
def test_code_key_pads_and_truncates(code, expected) -> None:
    """Codes are matched on their first four digits, right-padded with zeros."""
    assert code_key(code) == expected


@pytest.mark.parametrize(
    "code, category, subcategory, tag",
    [
        ("1105", AccountCategory.ASSET, "current", "cash"),
        ("1435", AccountCategory.ASSET, "current", "inventory"),
        ("1516", AccountCategory.ASSET, "non_current", None),
        ("2105", AccountCategory.LIABILITY, "non_current", "financial_debt"),
        ("2205", AccountCategory.LIABILITY, "current", "payables"),
        ("2505", AccountCategory.LIABILITY, "current", None),
        ("3605", AccountCategory.EQUITY, "equity", None),
        ("4135", AccountCategory.REVENUE, "operating", None),
        ("5160", AccountCategory.OPERATING_EXPENSE, "administrative", "depreciation"),
        ("5305", AccountCategory.NON_OPERATING_EXPENSE, "non_operating", "financial_expense"),
        ("6135", AccountCategory.COST_OF_SALES, "cost_of_sales", None),
    ],
)
def test_default_classification(code, category, subcategory, tag) -> None:
    """The default table covers the simplified PUC codes."""
    cls = DEFAULT_CLASSIFICATION.classify(code)
    assert cls is not None
    assert cls.category is category
    assert cls.subcategory == subcategory
    assert cls.tag == tag


@pytest.mark.parametrize("code", ["0999", "9999", "abc", ""])
def test_classify_unknown_code_returns_none(code) -> None:
    assert DEFAULT_CLASSIFICATION.classify(code) is None


def test_classification_table_rejects_overlaps() -> None:
    """Overlapping ranges are rejected when the table is built."""
    rows = [
        AccountClass(1100, 1199, AccountCategory.ASSET, "current"),
        AccountClass(1150, 1299, AccountCategory.ASSET, "current"),
    ]
    with pytest.raises(ClassificationError):
        ClassificationTable(rows)


def test_account_class_rejects_inverted_range_and_unknown_category() -> None:
    with pytest.raises(ClassificationError):
        AccountClass(1200, 1100, AccountCategory.ASSET, "current")
    with pytest.raises(ClassificationError):
        AccountClass(1100, 1199, "goodwill", "current")


def test_load_classification_table_from_csv(tmp_path) -> None:
    """Column names are matched case-insensitively; tag is optional."""
    csv_path = tmp_path / "classes.csv"
    csv_path.write_text(
        "From,To,Category,Subcategory,Tag\n"
        "1000,1099,asset,current,cash\n"
        "1100,1999,asset,non_current,\n"
        "2000,2999,liability,current,\n"
        "3000,3999,equity,equity,\n",
        encoding="utf-8",
    )

    table = load_classification_table(str(csv_path))

    assert len(table) == 4
    assert table.classify("1050").tag == "cash"
    assert table.classify("1500").tag is None
    assert table.classify("2500").category is AccountCategory.LIABILITY


def test_load_classification_table_missing_column(tmp_path) -> None:
    csv_path = tmp_path / "classes.csv"
    csv_path.write_text("low,high,category\n1000,1999,asset\n", encoding="utf-8")

    with pytest.raises(ClassificationError):
        load_classification_table(str(csv_path))


def test_build_ledger_accounts_skips_income_and_unknown_codes(caplog) -> None:
    """Only balance-sheet accounts are returned; unknown codes are logged."""
    balances = {"3105": 400.0, "1105": 500.0, "4135": 999.0, "9999": 1.0}

    with caplog.at_level(logging.WARNING, logger="smb_fincalc"):
        accounts = build_ledger_accounts(balances, names={"1105": "Caja"})

    assert [a.code for a in accounts] == ["1105", "3105"]
    assert accounts[0].name == "Caja"
    assert accounts[1].category is AccountCategory.EQUITY
    assert "9999" in caplog.text


def test_ledger_account_rejects_income_category() -> None:
    with pytest.raises(ValueError):
        LedgerAccount("4135", "Sales", "revenue", "operating", 100.0)


def test_sum_helpers() -> None:
    accounts = _sample_accounts()

    by_category = sum_by_category(accounts)
    assert by_category[AccountCategory.ASSET] == pytest.approx(1000.0)
    assert by_category[AccountCategory.LIABILITY] == pytest.approx(400.0)
    assert by_category[AccountCategory.EQUITY] == pytest.approx(600.0)

    assert sum_by_subcategory(accounts, "asset") == {
        "current": pytest.approx(600.0),
        "non_current": pytest.approx(400.0),
    }
    assert sum_by_prefix(accounts, "1") == pytest.approx(1000.0)
    assert sum_by_prefix(accounts, "22") == pytest.approx(200.0)
    assert sum_by_tag(accounts, "inventory") == pytest.approx(100.0)


def test_sum_helpers_on_empty_input() -> None:
    """Empty input sums to zero rather than failing."""
    assert sum_by_category([]) == {
        AccountCategory.ASSET: 0.0,
        AccountCategory.LIABILITY: 0.0,
        AccountCategory.EQUITY: 0.0,
    }
    assert sum_by_subcategory([], "asset") == {}
    assert sum_by_prefix([], "11") == 0.0
    assert sum_by_tag([], "cash") == 0.0
    assert list(accounts_frame([]).columns) == [
        "code",
        "name",
        "category",
        "subcategory",
        "tag",
        "amount",
    ]
