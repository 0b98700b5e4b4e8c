# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Balance-sheet snapshots and the accounting equation.

A BalanceSnapshot is a labelled set of ledger accounts for one period. It
starts as a draft that can be edited freely; finalizing it checks the
accounting equation (Assets = Liabilities + Equity, within a tolerance)
and freezes it. A finalized snapshot rejects every mutation.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .accounts import (
    CURRENT,
    NON_CURRENT,
    TAG_CASH,
    TAG_FINANCIAL_DEBT,
    TAG_INVENTORY,
    TAG_PAYABLES,
    TAG_RECEIVABLES,
    AccountCategory,
    LedgerAccount,
    accounts_frame,
)
from .errors import BalanceNotBalancedError, SnapshotFinalizedError, ValidationError
from .log import get_logger

logger = get_logger(__name__)

BALANCE_TOLERANCE = 0.01


class SnapshotStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"


@dataclass(frozen=True)
class BalanceCheck:
    """Result of checking the accounting equation."""

    is_balanced: bool
    difference: float


def validate_balance_equation(
    total_assets: float,
    total_liabilities: float,
    total_equity: float,
    tolerance: float = BALANCE_TOLERANCE,
) -> BalanceCheck:
    """
    Check that Assets = Liabilities + Equity.

    The equation holds when the absolute difference is strictly below
    ``tolerance`` (one cent by default).

    Examples:
        (1000, 600, 400) -> balanced, difference 0
        (1000, 600, 399) -> not balanced, difference 1
    """
    difference = abs(total_assets - (total_liabilities + total_equity))
    return BalanceCheck(is_balanced=difference < tolerance, difference=difference)


@dataclass(frozen=True)
class BalanceTotals:
    """Aggregated balance-sheet figures used by the indicator calculator."""

    total_assets: float
    current_assets: float
    non_current_assets: float
    total_liabilities: float
    current_liabilities: float
    non_current_liabilities: float
    total_equity: float
    cash: float
    receivables: float
    inventory: float
    payables: float
    financial_debt: float
    is_balanced: bool
    difference: float


def compute_balance_totals(
    accounts: Iterable[LedgerAccount],
    tolerance: float = BALANCE_TOLERANCE,
) -> BalanceTotals:
    """Aggregate ledger accounts into BalanceTotals."""
    df = accounts_frame(accounts)

    def _sum(mask) -> float:
        return float(df.loc[mask, "amount"].sum())

    is_asset = df["category"] == AccountCategory.ASSET.value
    is_liability = df["category"] == AccountCategory.LIABILITY.value
    is_equity = df["category"] == AccountCategory.EQUITY.value

    total_assets = _sum(is_asset)
    total_liabilities = _sum(is_liability)
    total_equity = _sum(is_equity)
    check = validate_balance_equation(
        total_assets, total_liabilities, total_equity, tolerance
    )

    return BalanceTotals(
        total_assets=total_assets,
        current_assets=_sum(is_asset & (df["subcategory"] == CURRENT)),
        non_current_assets=_sum(is_asset & (df["subcategory"] == NON_CURRENT)),
        total_liabilities=total_liabilities,
        current_liabilities=_sum(is_liability & (df["subcategory"] == CURRENT)),
        non_current_liabilities=_sum(is_liability & (df["subcategory"] == NON_CURRENT)),
        total_equity=total_equity,
        cash=_sum(df["tag"] == TAG_CASH),
        receivables=_sum(df["tag"] == TAG_RECEIVABLES),
        inventory=_sum(df["tag"] == TAG_INVENTORY),
        payables=_sum(df["tag"] == TAG_PAYABLES),
        financial_debt=_sum(df["tag"] == TAG_FINANCIAL_DEBT),
        is_balanced=check.is_balanced,
        difference=check.difference,
    )


@dataclass
class BalanceSnapshot:
    """
    A labelled set of ledger accounts for one period.

    Attributes:
        label: Period label (e.g. '2025-03' or 'FY2024').
        accounts: Ledger accounts, unique by code, in insertion order.
            Stored as a tuple; edit through the draft-only methods.
        status: DRAFT while editable, FINAL once finalized.
        organization_id: Optional owner scope, carried through untouched.
        tolerance: Balance tolerance a FINAL snapshot is checked against.

    Raises:
        BalanceNotBalancedError: if built FINAL with unbalanced accounts.
    """

    label: str
    accounts: tuple[LedgerAccount, ...] = ()
    status: SnapshotStatus = SnapshotStatus.DRAFT
    organization_id: Optional[str] = None
    tolerance: float = BALANCE_TOLERANCE

    def __post_init__(self) -> None:
        self.status = SnapshotStatus(self.status)
        self.accounts = tuple(self.accounts)
        seen: set[str] = set()
        for account in self.accounts:
            if account.code in seen:
                raise ValidationError(
                    f"Duplicate account code {account.code!r} in snapshot {self.label!r}."
                )
            seen.add(account.code)
        if self.is_final:
            check = self.check(self.tolerance)
            if not check.is_balanced:
                raise BalanceNotBalancedError(self.label, check)

    @property
    def is_final(self) -> bool:
        return self.status is SnapshotStatus.FINAL

    def _ensure_draft(self) -> None:
        if self.is_final:
            raise SnapshotFinalizedError(
                f"Balance snapshot {self.label!r} is finalized and cannot be modified."
            )

    def _index_of(self, code: str) -> int:
        for i, account in enumerate(self.accounts):
            if account.code == code:
                return i
        raise KeyError(f"No account {code!r} in snapshot {self.label!r}.")

    def add_account(self, account: LedgerAccount) -> None:
        self._ensure_draft()
        if any(a.code == account.code for a in self.accounts):
            raise ValidationError(
                f"Account {account.code!r} already exists in snapshot {self.label!r}."
            )
        self.accounts = (*self.accounts, account)

    def update_amount(self, code: str, amount: float) -> None:
        self._ensure_draft()
        i = self._index_of(code)
        accounts = list(self.accounts)
        accounts[i] = replace(accounts[i], amount=float(amount))
        self.accounts = tuple(accounts)

    def remove_account(self, code: str) -> None:
        self._ensure_draft()
        i = self._index_of(code)
        self.accounts = self.accounts[:i] + self.accounts[i + 1 :]

    def totals(self, tolerance: float = BALANCE_TOLERANCE) -> BalanceTotals:
        return compute_balance_totals(self.accounts, tolerance)

    def check(self, tolerance: float = BALANCE_TOLERANCE) -> BalanceCheck:
        t = self.totals(tolerance)
        return BalanceCheck(is_balanced=t.is_balanced, difference=t.difference)


def finalize_snapshot(
    snapshot: BalanceSnapshot,
    tolerance: float = BALANCE_TOLERANCE,
) -> BalanceSnapshot:
    """
    Return a finalized copy of a draft snapshot.

    Finalizing an already final snapshot returns it unchanged.

    Raises:
        BalanceNotBalancedError: if the accounting equation does not hold.
    """
    if snapshot.is_final:
        return snapshot
    check = snapshot.check(tolerance)
    if not check.is_balanced:
        logger.warning(
            "Refusing to finalize snapshot %s: difference %.2f",
            snapshot.label,
            check.difference,
        )
        raise BalanceNotBalancedError(snapshot.label, check)
    logger.info("Balance snapshot %s finalized", snapshot.label)
    return BalanceSnapshot(
        label=snapshot.label,
        accounts=snapshot.accounts,
        status=SnapshotStatus.FINAL,
        organization_id=snapshot.organization_id,
        tolerance=tolerance,
    )
