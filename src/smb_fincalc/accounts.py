# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Account utilities for SMB FinCalc.

This module is the foundation every other calculator builds on. It covers:

- the ledger record (LedgerAccount),
- the chart-of-accounts classification table: an explicit, enumerated list
  of account-code ranges mapped to a category and subcategory, validated
  once when it is built (overlapping or inverted ranges are rejected),
- aggregation helpers summing accounts by category, subcategory, code
  prefix or tag.

Classification rule
-------------------
Account codes are matched on their first four digits. Shorter codes are
right-padded with zeros, longer codes are truncated:

    '11'     -> 1100
    '1105'   -> 1105
    '110505' -> 1105

A code belongs to the AccountClass whose [low, high] range contains that
key. Codes that no range contains are reported and ignored.

The default table follows the simplified Colombian PUC (Plan Único de
Cuentas) used by the dashboard: classes 1-3 for the balance sheet, 4-7
for the income statement.
"""

import bisect
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import pandas as pd

from .errors import ClassificationError
from .log import get_logger

logger = get_logger(__name__)


class AccountCategory(str, Enum):
    """Top-level account classes."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    COST_OF_SALES = "cost_of_sales"
    OPERATING_EXPENSE = "operating_expense"
    NON_OPERATING_INCOME = "non_operating_income"
    NON_OPERATING_EXPENSE = "non_operating_expense"


BALANCE_CATEGORIES: tuple[AccountCategory, ...] = (
    AccountCategory.ASSET,
    AccountCategory.LIABILITY,
    AccountCategory.EQUITY,
)

# Subcategories used for liquidity ratios.
CURRENT = "current"
NON_CURRENT = "non_current"

# Tags used to isolate specific balances (acid test, turnover ratios...).
TAG_CASH = "cash"
TAG_RECEIVABLES = "receivables"
TAG_INVENTORY = "inventory"
TAG_PAYABLES = "payables"
TAG_FINANCIAL_DEBT = "financial_debt"
TAG_DEPRECIATION = "depreciation"
TAG_FINANCIAL_EXPENSE = "financial_expense"

_FRAME_COLUMNS = ["code", "name", "category", "subcategory", "tag", "amount"]


@dataclass(frozen=True)
class LedgerAccount:
    """
    One balance-sheet account with its balance for a period.

    Attributes:
        code: Account code (e.g. '1105').
        name: Human-readable label (e.g. 'Cash').
        category: 'asset', 'liability' or 'equity'.
        subcategory: Free-form subcategory, typically 'current',
            'non_current' or 'equity'.
        amount: Balance in the snapshot's base currency unit.
        tag: Optional tag isolating a specific balance ('inventory', ...).
    """

    code: str
    name: str
    category: AccountCategory
    subcategory: str
    amount: float
    tag: Optional[str] = None

    def __post_init__(self) -> None:
        category = AccountCategory(self.category)
        if category not in BALANCE_CATEGORIES:
            raise ValueError(
                f"Ledger account {self.code!r} must be an asset, liability or "
                f"equity account, got {category.value!r}."
            )
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "code", str(self.code).strip())
        object.__setattr__(self, "amount", float(self.amount))


@dataclass(frozen=True)
class AccountClass:
    """One row of the classification table: a code range and its class."""

    low: int
    high: int
    category: AccountCategory
    subcategory: str
    tag: Optional[str] = None
    name: str = ""

    def __post_init__(self) -> None:
        try:
            category = AccountCategory(self.category)
        except ValueError as exc:
            raise ClassificationError(
                f"Unknown account category {self.category!r} for range "
                f"{self.low}-{self.high}."
            ) from exc
        object.__setattr__(self, "category", category)
        if self.low > self.high:
            raise ClassificationError(
                f"Invalid account range {self.low}-{self.high}: low > high."
            )

    def contains(self, key: int) -> bool:
        return self.low <= key <= self.high


def code_key(code: Union[str, int]) -> Optional[int]:
    """Return the 4-digit classification key of an account code.

    Returns None when the code is empty or not purely numeric.
    """
    s = str(code).strip()
    if not s or not s.isdigit():
        return None
    return int(s[:4].ljust(4, "0"))


class ClassificationTable:
    """Validated, ordered set of AccountClass rows.

    The table is checked once, at construction: ranges must be well formed
    and must not overlap. Lookups are a binary search over the sorted
    range lower bounds.
    """

    def __init__(self, rows: Iterable[AccountClass]):
        ordered = sorted(rows, key=lambda r: (r.low, r.high))
        for previous, current in zip(ordered, ordered[1:]):
            if current.low <= previous.high:
                raise ClassificationError(
                    f"Overlapping account ranges {previous.low}-{previous.high} "
                    f"and {current.low}-{current.high}."
                )
        self._rows: tuple[AccountClass, ...] = tuple(ordered)
        self._lows = [r.low for r in self._rows]

    @property
    def rows(self) -> tuple[AccountClass, ...]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def classify(self, code: Union[str, int]) -> Optional[AccountClass]:
        """Return the class of an account code, or None if no range holds it."""
        key = code_key(code)
        if key is None:
            return None
        idx = bisect.bisect_right(self._lows, key) - 1
        if idx < 0:
            return None
        row = self._rows[idx]
        return row if row.contains(key) else None

    @staticmethod
    def from_frame(df: pd.DataFrame) -> "ClassificationTable":
        """Build a table from a DataFrame with low/high/category/subcategory
        columns and optional tag/name columns."""
        rows = []
        for _, r in df.iterrows():
            tag = r.get("tag", "")
            name = r.get("name", "")
            try:
                low = int(r["low"])
                high = int(r["high"])
            except (TypeError, ValueError) as exc:
                raise ClassificationError(
                    f"Invalid range bounds in classification row: "
                    f"{r['low']!r}-{r['high']!r}"
                ) from exc
            rows.append(
                AccountClass(
                    low=low,
                    high=high,
                    category=str(r["category"]).strip(),
                    subcategory=str(r["subcategory"]).strip(),
                    tag=str(tag).strip() if pd.notna(tag) and str(tag).strip() else None,
                    name=str(name).strip() if pd.notna(name) else "",
                )
            )
        return ClassificationTable(rows)


def load_classification_table(path: str) -> ClassificationTable:
    """Load a classification table from CSV.

    Expected structure
    ------------------
    The CSV must contain:
        - a lower bound column: 'low', 'from' or 'code_from'
        - an upper bound column: 'high', 'to' or 'code_to'
        - 'category' and 'subcategory' columns
    and may contain 'tag' and 'name' columns.

    Column names are matched case-insensitively and trimmed.

    Raises:
        ClassificationError: if a required column is missing or the ranges
            are invalid or overlapping.
    """
    df = pd.read_csv(path, dtype=str)
    col_map = {str(c).strip().lower(): c for c in df.columns}

    def _find(candidates: tuple[str, ...], required: bool = True) -> Optional[str]:
        for cand in candidates:
            if cand in col_map:
                return col_map[cand]
        if required:
            raise ClassificationError(
                "Could not find a column in classification file. "
                f"Expected one of: {', '.join(repr(c) for c in candidates)}."
            )
        return None

    selected = {
        "low": _find(("low", "from", "code_from")),
        "high": _find(("high", "to", "code_to")),
        "category": _find(("category",)),
        "subcategory": _find(("subcategory",)),
        "tag": _find(("tag",), required=False),
        "name": _find(("name", "label"), required=False),
    }
    out = pd.DataFrame(
        {key: (df[col] if col is not None else "") for key, col in selected.items()}
    )
    out = out.fillna("")
    table = ClassificationTable.from_frame(out)
    logger.debug("Loaded %d classification ranges from %s", len(table), path)
    return table


def _row(low, high, category, subcategory, tag=None, name=""):
    return AccountClass(low, high, AccountCategory(category), subcategory, tag, name)


DEFAULT_CLASSIFICATION = ClassificationTable(
    [
        _row(1100, 1199, "asset", CURRENT, TAG_CASH, "Cash and banks"),
        _row(1200, 1299, "asset", CURRENT, None, "Short-term investments"),
        _row(1300, 1399, "asset", CURRENT, TAG_RECEIVABLES, "Receivables"),
        _row(1400, 1499, "asset", CURRENT, TAG_INVENTORY, "Inventories"),
        _row(1500, 1999, "asset", NON_CURRENT, None, "Fixed and other assets"),
        _row(2100, 2199, "liability", NON_CURRENT, TAG_FINANCIAL_DEBT, "Bank loans"),
        _row(2200, 2299, "liability", CURRENT, TAG_PAYABLES, "Suppliers"),
        _row(2300, 2599, "liability", CURRENT, None, "Payables, taxes, payroll"),
        _row(2600, 2999, "liability", NON_CURRENT, None, "Provisions and other"),
        _row(3000, 3999, "equity", "equity", None, "Equity"),
        _row(4100, 4199, "revenue", "operating", None, "Operating revenue"),
        _row(4200, 4299, "non_operating_income", "non_operating", None, "Other income"),
        _row(5100, 5159, "operating_expense", "administrative", None, "Administrative"),
        _row(5160, 5160, "operating_expense", "administrative", TAG_DEPRECIATION, "Depreciation"),
        _row(5161, 5299, "operating_expense", "selling", None, "Selling"),
        _row(5300, 5399, "non_operating_expense", "non_operating", TAG_FINANCIAL_EXPENSE, "Financial"),
        _row(6000, 7999, "cost_of_sales", "cost_of_sales", None, "Cost of sales"),
    ]
)


# ---------------------------------------------------------------------------
# Building ledger accounts from raw balances
# ---------------------------------------------------------------------------


def build_ledger_accounts(
    balances: Mapping[str, float],
    table: ClassificationTable = DEFAULT_CLASSIFICATION,
    names: Optional[Mapping[str, str]] = None,
) -> list[LedgerAccount]:
    """Turn raw {code: amount} balances into classified ledger accounts.

    Only balance-sheet codes (assets, liabilities, equity) are returned,
    in code order. Income-statement codes are skipped; codes that no range
    of the table contains are logged and ignored.

    Args:
        balances: Mapping of account code to balance.
        table: Classification table used to resolve each code.
        names: Optional mapping of account code to label. Defaults to the
            name of the matching range.

    Returns:
        List of LedgerAccount instances sorted by code.
    """
    names = names or {}
    out: list[LedgerAccount] = []
    for code in sorted(balances, key=str):
        cls = table.classify(code)
        if cls is None:
            logger.warning("Unknown account code %s, ignored", code)
            continue
        if cls.category not in BALANCE_CATEGORIES:
            logger.debug("Account code %s is not a balance-sheet account", code)
            continue
        out.append(
            LedgerAccount(
                code=str(code),
                name=names.get(code, cls.name),
                category=cls.category,
                subcategory=cls.subcategory,
                amount=float(balances[code]),
                tag=cls.tag,
            )
        )
    return out


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def accounts_frame(accounts: Iterable[LedgerAccount]) -> pd.DataFrame:
    """Return a DataFrame view of ledger accounts.

    Columns: code, name, category, subcategory, tag, amount. Category is
    exposed as its string value. An empty input yields an empty frame with
    the same columns.
    """
    records = [
        {
            "code": a.code,
            "name": a.name,
            "category": a.category.value,
            "subcategory": a.subcategory,
            "tag": a.tag or "",
            "amount": a.amount,
        }
        for a in accounts
    ]
    df = pd.DataFrame(records, columns=_FRAME_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    return df


def sum_by_category(accounts: Iterable[LedgerAccount]) -> dict[AccountCategory, float]:
    """Sum account balances per category.

    The three balance-sheet categories are always present (0.0 when empty).
    """
    df = accounts_frame(accounts)
    sums = df.groupby("category", sort=True)["amount"].sum()
    return {cat: float(sums.get(cat.value, 0.0)) for cat in BALANCE_CATEGORIES}


def sum_by_subcategory(
    accounts: Iterable[LedgerAccount],
    category: Union[AccountCategory, str],
) -> dict[str, float]:
    """Sum balances per subcategory within one category."""
    cat = AccountCategory(category)
    df = accounts_frame(accounts)
    df = df[df["category"] == cat.value]
    sums = df.groupby("subcategory", sort=True)["amount"].sum()
    return {str(k): float(v) for k, v in sums.items()}


def sum_by_prefix(accounts: Iterable[LedgerAccount], prefix: str) -> float:
    """Sum balances of accounts whose code starts with ``prefix``."""
    df = accounts_frame(accounts)
    mask = df["code"].str.startswith(str(prefix).strip())
    return float(df.loc[mask, "amount"].sum())


def sum_by_tag(accounts: Iterable[LedgerAccount], tag: str) -> float:
    """Sum balances of accounts carrying the given tag."""
    df = accounts_frame(accounts)
    return float(df.loc[df["tag"] == tag, "amount"].sum())
