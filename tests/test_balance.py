import pytest

from smb_fincalc.accounts import AccountCategory, LedgerAccount, build_ledger_accounts
from smb_fincalc.balance import (
    BalanceSnapshot,
    SnapshotStatus,
    compute_balance_totals,
    finalize_snapshot,
    validate_balance_equation,
)
from smb_fincalc.errors import (
    BalanceNotBalancedError,
    SnapshotFinalizedError,
    ValidationError,
)


def _balanced_accounts() -> list[LedgerAccount]:
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


def test_balance_equation_example() -> None:
    """1000 = 600 + 400 is balanced with a zero difference."""
    check = validate_balance_equation(1000, 600, 400)
    assert check.is_balanced is True
    assert check.difference == 0


@pytest.mark.parametrize(
    "assets, liabilities, equity, balanced",
    [
        (0, 0, 0, True),
        (1000, 600, 399, False),
        (100.005, 100, 0, True),
        (100.02, 100, 0, False),
    ],
)
def test_balance_equation_tolerance(assets, liabilities, equity, balanced) -> None:
    check = validate_balance_equation(assets, liabilities, equity)
    assert check.is_balanced is balanced
    assert check.difference == pytest.approx(abs(assets - liabilities - equity))


def test_compute_balance_totals() -> None:
    totals = compute_balance_totals(_balanced_accounts())

    assert totals.total_assets == pytest.approx(1000.0)
    assert totals.current_assets == pytest.approx(600.0)
    assert totals.non_current_assets == pytest.approx(400.0)
    assert totals.current_liabilities == pytest.approx(200.0)
    assert totals.non_current_liabilities == pytest.approx(200.0)
    assert totals.total_equity == pytest.approx(600.0)
    assert totals.cash == pytest.approx(300.0)
    assert totals.receivables == pytest.approx(200.0)
    assert totals.inventory == pytest.approx(100.0)
    assert totals.payables == pytest.approx(200.0)
    assert totals.financial_debt == pytest.approx(200.0)
    assert totals.is_balanced is True


def test_snapshot_edit_then_finalize() -> None:
    snapshot = BalanceSnapshot(label="2025-03", organization_id="org-1")
    for account in _balanced_accounts():
        snapshot.add_account(account)

    snapshot.update_amount("1105", 350.0)
    assert snapshot.check().is_balanced is False

    snapshot.update_amount("1105", 300.0)
    final = finalize_snapshot(snapshot)

    assert final.status is SnapshotStatus.FINAL
    assert final.organization_id == "org-1"
    assert snapshot.status is SnapshotStatus.DRAFT


def test_finalize_unbalanced_snapshot_keeps_draft() -> None:
    """An unbalanced draft cannot be finalized and is left untouched."""
    snapshot = BalanceSnapshot(label="2025-04", accounts=_balanced_accounts())
    snapshot.remove_account("3105")

    with pytest.raises(BalanceNotBalancedError) as excinfo:
        finalize_snapshot(snapshot)

    assert excinfo.value.check.difference == pytest.approx(600.0)
    assert isinstance(excinfo.value, ValueError)
    assert snapshot.status is SnapshotStatus.DRAFT
    assert len(snapshot.accounts) == 6


def test_finalized_snapshot_rejects_mutation() -> None:
    final = finalize_snapshot(BalanceSnapshot(label="FY2024", accounts=_balanced_accounts()))

    with pytest.raises(SnapshotFinalizedError):
        final.add_account(LedgerAccount("1110", "Bank", AccountCategory.ASSET, "current", 1.0))
    with pytest.raises(SnapshotFinalizedError):
        final.update_amount("1105", 0.0)
    with pytest.raises(SnapshotFinalizedError):
        final.remove_account("1105")

    assert finalize_snapshot(final) is final


def test_snapshot_built_final_must_balance() -> None:
    """A snapshot constructed as FINAL is held to the balance equation."""
    cash = LedgerAccount("1105", "Cash", AccountCategory.ASSET, "current", 1000.0)

    with pytest.raises(BalanceNotBalancedError) as excinfo:
        BalanceSnapshot(label="x", accounts=[cash], status=SnapshotStatus.FINAL)
    assert excinfo.value.check.difference == pytest.approx(1000.0)

    final = BalanceSnapshot(
        label="FY2024", accounts=_balanced_accounts(), status=SnapshotStatus.FINAL
    )
    assert final.is_final


def test_finalize_with_custom_tolerance() -> None:
    snapshot = BalanceSnapshot(label="2025-05", accounts=_balanced_accounts())
    snapshot.update_amount("1105", 300.5)

    with pytest.raises(BalanceNotBalancedError):
        finalize_snapshot(snapshot)
    assert finalize_snapshot(snapshot, tolerance=1.0).is_final


def test_snapshot_accounts_cannot_be_edited_in_place() -> None:
    final = finalize_snapshot(BalanceSnapshot(label="FY2024", accounts=_balanced_accounts()))

    assert isinstance(final.accounts, tuple)
    with pytest.raises(AttributeError):
        final.accounts.append(
            LedgerAccount("1110", "Bank", AccountCategory.ASSET, "current", 1.0)
        )


def test_snapshot_rejects_duplicate_codes() -> None:
    snapshot = BalanceSnapshot(label="dup", accounts=_balanced_accounts())
    with pytest.raises(ValidationError):
        snapshot.add_account(
            LedgerAccount("1105", "Cash", AccountCategory.ASSET, "current", 1.0)
        )


def test_snapshot_unknown_code_raises_key_error() -> None:
    snapshot = BalanceSnapshot(label="x")
    with pytest.raises(KeyError):
        snapshot.update_amount("1105", 1.0)
