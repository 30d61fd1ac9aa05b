"""
Wallet ledger tests - reservations, deductions and deposits
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import Session

from topup.core.accounts.models import Wallet, WalletStatus, WalletTransaction, WalletTransactionType
from topup.services import wallet_ledger
from topup.services.wallet_ledger import InvalidAmountError, WalletNotActiveError


def assert_consistent(wallet: Wallet):
    """available = balance - reserved, nothing negative"""
    assert wallet.available_balance == wallet.balance - wallet.reserved_balance
    assert wallet.reserved_balance >= 0
    assert wallet.available_balance >= 0


def entries(db: Session, wallet: Wallet):
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.wallet_id == wallet.id)
        .order_by(WalletTransaction.created_at)
        .all()
    )


def test_reserve_moves_funds_out_of_available(db_session: Session, wallet: Wallet):
    assert wallet_ledger.reserve(db_session, wallet.id, Decimal("30.00")) is True
    db_session.refresh(wallet)

    assert wallet.balance == Decimal("100.00")
    assert wallet.reserved_balance == Decimal("30.00")
    assert wallet.available_balance == Decimal("70.00")
    assert_consistent(wallet)
    # Holds are not ledger lines
    assert entries(db_session, wallet) == []


def test_reserve_rejects_without_mutation(db_session: Session, wallet: Wallet):
    assert wallet_ledger.reserve(db_session, wallet.id, Decimal("60.00")) is True
    assert wallet_ledger.reserve(db_session, wallet.id, Decimal("40.01")) is False
    db_session.refresh(wallet)

    assert wallet.reserved_balance == Decimal("60.00")
    assert wallet.available_balance == Decimal("40.00")
    assert_consistent(wallet)


def test_reserve_exact_available_amount(db_session: Session, wallet: Wallet):
    assert wallet_ledger.reserve(db_session, wallet.id, Decimal("100.00")) is True
    db_session.refresh(wallet)
    assert wallet.available_balance == Decimal("0.00")
    assert wallet_ledger.has_available_balance(db_session, wallet.id, Decimal("0.01")) is False


def test_deduct_from_reservation(db_session: Session, wallet: Wallet):
    wallet_ledger.reserve(db_session, wallet.id, Decimal("12.50"))
    assert wallet_ledger.deduct(db_session, wallet.id, Decimal("12.50"), reference_id="ORD-1") is True
    db_session.refresh(wallet)

    assert wallet.balance == Decimal("87.50")
    assert wallet.reserved_balance == Decimal("0.00")
    assert wallet.available_balance == Decimal("87.50")
    assert wallet.total_spent == Decimal("12.50")
    assert_consistent(wallet)

    lines = entries(db_session, wallet)
    assert len(lines) == 1
    assert lines[0].type == WalletTransactionType.PURCHASE
    assert lines[0].amount == Decimal("12.50")
    assert lines[0].balance_before == Decimal("100.00")
    assert lines[0].balance_after == Decimal("87.50")
    assert lines[0].reference_id == "ORD-1"


def test_deduct_from_reservation_requires_hold(db_session: Session, wallet: Wallet):
    assert wallet_ledger.deduct(db_session, wallet.id, Decimal("5.00"), from_reserved=True) is False
    db_session.refresh(wallet)
    assert wallet.balance == Decimal("100.00")
    assert entries(db_session, wallet) == []


def test_direct_deduct_respects_existing_holds(db_session: Session, wallet: Wallet):
    wallet_ledger.reserve(db_session, wallet.id, Decimal("90.00"))
    assert wallet_ledger.deduct(db_session, wallet.id, Decimal("20.00"), from_reserved=False) is False
    assert wallet_ledger.deduct(db_session, wallet.id, Decimal("10.00"), from_reserved=False) is True
    db_session.refresh(wallet)

    assert wallet.balance == Decimal("90.00")
    assert wallet.reserved_balance == Decimal("90.00")
    assert wallet.available_balance == Decimal("0.00")
    assert_consistent(wallet)


def test_release_reservation_floors_at_zero(db_session: Session, wallet: Wallet):
    wallet_ledger.reserve(db_session, wallet.id, Decimal("10.00"))
    wallet_ledger.release_reservation(db_session, wallet.id, Decimal("25.00"))
    db_session.refresh(wallet)

    assert wallet.reserved_balance == Decimal("0.00")
    assert wallet.available_balance == Decimal("100.00")
    assert_consistent(wallet)


def test_deposit_appends_ledger_line(db_session: Session, wallet: Wallet):
    entry = wallet_ledger.deposit(
        db_session,
        wallet.id,
        Decimal("50.00"),
        payment_method="bank_transfer",
        reference_id="WIRE-7",
        metadata={"adminId": "admin:test"},
    )
    db_session.refresh(wallet)

    assert wallet.balance == Decimal("150.00")
    assert wallet.available_balance == Decimal("150.00")
    assert wallet.total_deposits == Decimal("150.00")
    assert entry.type == WalletTransactionType.DEPOSIT
    assert entry.balance_before == Decimal("100.00")
    assert entry.balance_after == Decimal("150.00")
    assert entry.entry_metadata == {"adminId": "admin:test"}


def test_deposit_keeps_holds(db_session: Session, wallet: Wallet):
    wallet_ledger.reserve(db_session, wallet.id, Decimal("40.00"))
    wallet_ledger.deposit(db_session, wallet.id, Decimal("10.00"))
    db_session.refresh(wallet)

    assert wallet.balance == Decimal("110.00")
    assert wallet.reserved_balance == Decimal("40.00")
    assert wallet.available_balance == Decimal("70.00")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
def test_non_positive_amounts_rejected(db_session: Session, wallet: Wallet, amount):
    with pytest.raises(InvalidAmountError):
        wallet_ledger.reserve(db_session, wallet.id, amount)
    with pytest.raises(InvalidAmountError):
        wallet_ledger.deposit(db_session, wallet.id, amount)


@pytest.mark.parametrize("status", [WalletStatus.SUSPENDED, WalletStatus.FROZEN])
def test_inactive_wallet_cannot_move_funds(db_session: Session, wallet: Wallet, status):
    wallet.status = status
    db_session.commit()

    with pytest.raises(WalletNotActiveError):
        wallet_ledger.reserve(db_session, wallet.id, Decimal("1.00"))
    with pytest.raises(WalletNotActiveError):
        wallet_ledger.deposit(db_session, wallet.id, Decimal("1.00"))

    db_session.refresh(wallet)
    assert wallet.balance == Decimal("100.00")
    assert wallet.reserved_balance == Decimal("0.00")


def test_get_or_create_wallet(db_session: Session, organization):
    created = wallet_ledger.get_or_create_wallet(db_session, organization.id)
    again = wallet_ledger.get_or_create_wallet(db_session, organization.id)

    assert created.id == again.id
    assert created.balance == Decimal("0")
    assert created.status == WalletStatus.ACTIVE


def test_sequence_keeps_invariants(db_session: Session, wallet: Wallet):
    steps = [
        ("reserve", Decimal("20.00")),
        ("reserve", Decimal("30.00")),
        ("deduct", Decimal("20.00")),
        ("release", Decimal("30.00")),
        ("deposit", Decimal("5.25")),
        ("reserve", Decimal("85.25")),
        ("deduct", Decimal("85.25")),
    ]
    for op, amount in steps:
        if op == "reserve":
            assert wallet_ledger.reserve(db_session, wallet.id, amount)
        elif op == "deduct":
            assert wallet_ledger.deduct(db_session, wallet.id, amount)
        elif op == "release":
            wallet_ledger.release_reservation(db_session, wallet.id, amount)
        else:
            wallet_ledger.deposit(db_session, wallet.id, amount)
        db_session.refresh(wallet)
        assert_consistent(wallet)

    assert wallet.balance == Decimal("0.00")
    assert wallet.total_spent == Decimal("105.25")
