"""
Tests for deposits and the network catalogue.
"""
from decimal import Decimal

import pytest

from src.errors import AccountNotFoundError, InvalidAmountError, InvalidNetworkError
from src.funds import NETWORKS, get_network
from src.funds.networks import DEFAULT_NETWORK


class TestNetworks:

    def test_catalogue(self):
        assert set(NETWORKS) == {"bsc", "tron", "solana", "ton", "eth"}
        assert DEFAULT_NETWORK in NETWORKS
        assert all(n.address for n in NETWORKS.values())

    def test_lookup_is_case_insensitive(self):
        assert get_network(" ETH ").key == "eth"

    @pytest.mark.parametrize("key", ["", None, "btc"])
    def test_unknown_network(self, key):
        with pytest.raises(InvalidNetworkError):
            get_network(key)


class TestDepositService:

    def test_record_deposit_credits(self, context, account):
        deposit = context.deposits.record_deposit(account.id, "250.00", network="tron")

        assert deposit.status == "completed"
        assert deposit.network == "tron"
        assert context.ledger.read_balance(account.id) == Decimal("350.00")

        [entry] = context.ledger.entries(account.id)
        assert (entry.kind, entry.reason, entry.reference_id) == ("credit", "deposit", deposit.id)

    def test_network_is_optional(self, context, account):
        assert context.deposits.record_deposit(account.id, "1").network is None

    def test_invalid_network(self, context, account):
        with pytest.raises(InvalidNetworkError):
            context.deposits.record_deposit(account.id, "1", network="btc")

        assert context.ledger.read_balance(account.id) == Decimal("100.00")

    def test_invalid_amount(self, context, account):
        with pytest.raises(InvalidAmountError):
            context.deposits.record_deposit(account.id, "0.001")

    def test_unknown_account_persists_nothing(self, context):
        with pytest.raises(AccountNotFoundError):
            context.deposits.record_deposit(999, "10")

        assert context.deposits.list_deposits() == []

    def test_list_deposits_filters(self, context, account_factory):
        alice = account_factory("alice@example.com", "0")
        bob = account_factory("bob@example.com", "0")
        context.deposits.record_deposit(alice.id, "10")
        context.deposits.record_deposit(bob.id, "20")
        context.deposits.record_deposit(alice.id, "30")

        assert [d.amount for d in context.deposits.list_deposits(account_id=alice.id)] == [
            Decimal("30.00"), Decimal("10.00")
        ]
        assert [d.account_id for d in context.deposits.list_deposits(email_filter="BOB")] == [bob.id]
        assert len(context.deposits.list_deposits()) == 3
