"""
Tests for the BalanceLedger.

Covers:
1. Amount normalization
2. Debit / credit semantics and journal entries
3. Insufficient funds leaves no trace
4. Joining an outer transaction
5. Admin balance edits and conservation
"""
from decimal import Decimal

import pytest

from src.database.connection import get_session
from src.errors import AccountNotFoundError, InsufficientFundsError, InvalidAmountError
from src.ledger import to_amount, to_balance


class TestAmounts:

    @pytest.mark.parametrize("value, expected", [
        ("12.50", Decimal("12.50")),
        ("12,50", Decimal("12.50")),
        (" 7 ", Decimal("7.00")),
        (3, Decimal("3.00")),
        (0.1, Decimal("0.10")),
        (Decimal("0.01"), Decimal("0.01")),
    ])
    def test_valid_amounts(self, value, expected):
        assert to_amount(value) == expected

    @pytest.mark.parametrize("value", [0, "0.00", -5, "1.001", "abc", "", None, True, "NaN", "Infinity"])
    def test_invalid_amounts(self, value):
        with pytest.raises(InvalidAmountError):
            to_amount(value)

    def test_balance_allows_zero(self):
        assert to_balance("0") == Decimal("0.00")

    def test_balance_rejects_negative(self):
        with pytest.raises(InvalidAmountError):
            to_balance("-0.01")


class TestDebitCredit:

    def test_credit_then_debit(self, ledger, account):
        assert ledger.credit(account.id, "50.00", reason="deposit") == Decimal("150.00")
        assert ledger.debit(account.id, "30.25", reason="withdrawal") == Decimal("119.75")
        assert ledger.read_balance(account.id) == Decimal("119.75")

    def test_debit_whole_balance(self, ledger, account):
        assert ledger.debit(account.id, "100.00") == Decimal("0.00")

    def test_insufficient_funds_changes_nothing(self, ledger, account):
        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.debit(account.id, "100.01")

        assert exc_info.value.amount == Decimal("100.01")
        assert exc_info.value.balance == Decimal("100.00")
        assert ledger.read_balance(account.id) == Decimal("100.00")
        assert ledger.entries(account.id) == []

    def test_invalid_amount_changes_nothing(self, ledger, account):
        with pytest.raises(InvalidAmountError):
            ledger.debit(account.id, "-10")
        with pytest.raises(InvalidAmountError):
            ledger.credit(account.id, "0")

        assert ledger.read_balance(account.id) == Decimal("100.00")

    def test_unknown_account(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.debit(999, "1.00")
        with pytest.raises(AccountNotFoundError):
            ledger.credit(999, "1.00")
        with pytest.raises(AccountNotFoundError):
            ledger.read_balance(999)

    def test_journal_entries(self, ledger, account):
        ledger.credit(account.id, "20.00", reason="deposit", reference_id=7)
        ledger.debit(account.id, "5.00", reason="allocation", reference_id=3)

        entries = ledger.entries(account.id)

        assert [(e.kind, e.amount, e.balance_after, e.reason, e.reference_id) for e in entries] == [
            ("credit", Decimal("20.00"), Decimal("120.00"), "deposit", 7),
            ("debit", Decimal("5.00"), Decimal("115.00"), "allocation", 3),
        ]

    def test_cent_precision_is_exact(self, ledger, account):
        for _ in range(10):
            ledger.debit(account.id, "0.10")

        assert ledger.read_balance(account.id) == Decimal("99.00")


class TestOuterTransaction:

    def test_debit_rolls_back_with_outer_session(self, ledger, account, session_factory):
        with pytest.raises(RuntimeError):
            with get_session(session_factory) as session:
                ledger.debit(account.id, "10.00", session=session)
                raise RuntimeError("record insert failed")

        assert ledger.read_balance(account.id) == Decimal("100.00")
        assert ledger.entries(account.id) == []

    def test_debit_commits_with_outer_session(self, ledger, account, session_factory):
        with get_session(session_factory) as session:
            ledger.debit(account.id, "10.00", session=session)
            ledger.debit(account.id, "15.00", session=session)

        assert ledger.read_balance(account.id) == Decimal("75.00")


class TestAdminEdits:

    def test_set_balance_up_and_down(self, ledger, account):
        assert ledger.set_balance(account.id, "250.00") == Decimal("250.00")
        assert ledger.set_balance(account.id, "0") == Decimal("0.00")

        entries = ledger.entries(account.id)
        assert [(e.kind, e.amount, e.reason) for e in entries] == [
            ("credit", Decimal("150.00"), "adjustment"),
            ("debit", Decimal("250.00"), "adjustment"),
        ]

    def test_set_balance_unchanged_writes_nothing(self, ledger, account):
        assert ledger.set_balance(account.id, "100") == Decimal("100.00")
        assert ledger.entries(account.id) == []

    def test_set_balance_rejects_negative(self, ledger, account):
        with pytest.raises(InvalidAmountError):
            ledger.set_balance(account.id, "-1")

    def test_set_balance_unknown_account(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.set_balance(999, "10")

    def test_conservation(self, ledger, account):
        ledger.credit(account.id, "40.00")
        ledger.debit(account.id, "12.34")
        ledger.set_balance(account.id, "55.55")
        with pytest.raises(InsufficientFundsError):
            ledger.debit(account.id, "1000")

        assert ledger.verify_conservation(account.id)

    def test_conservation_unknown_account(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.verify_conservation(999)
