"""
Tests for the API module.

Covers:
1. Root endpoint - health check
2. Schedule and coin status endpoints
3. Accounts, allocations, withdrawals, deposits
4. Error mapping (SpotlightError -> HTTP status)
"""
from datetime import datetime, UTC
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_context
from src.api.main import app, get_uptime_seconds, status_code_for
from src.errors import (
    AccountNotFoundError,
    CoinNotActiveError,
    ConfigurationError,
    InsufficientFundsError,
    ScheduleHorizonError,
    StorageUnavailableError,
    WithdrawalAlreadyResolvedError,
)

ADDRESS = "0xBc92de905b59a3C87478BE0b2E7ff37c8a494d8a"


@pytest.fixture
def client(context):
    app.dependency_overrides[get_context] = lambda: context
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def account_id(client):
    response = client.post("/api/accounts", json={"email": "user@example.com", "initial_balance": "100.00"})
    assert response.status_code == 201
    return response.json()["id"]


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:

    def test_uptime_non_negative(self):
        assert get_uptime_seconds() >= 0

    @pytest.mark.parametrize("error, status_code", [
        (CoinNotActiveError(16), 400),
        (ScheduleHorizonError(datetime(2200, 1, 1, tzinfo=UTC), datetime(2125, 1, 1, tzinfo=UTC)), 400),
        (InsufficientFundsError(1, Decimal("1")), 400),
        (AccountNotFoundError(1), 404),
        (WithdrawalAlreadyResolvedError(1, "completed"), 409),
        (StorageUnavailableError("down"), 503),
        (ConfigurationError("bad"), 500),
    ])
    def test_status_code_for(self, error, status_code):
        assert status_code_for(error) == status_code


# =============================================================================
# ROOT / COINS
# =============================================================================

class TestCoins:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_schedule(self, client):
        response = client.get("/api/schedule", params={"events": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["metadata"]["step_hours"] == 32.0
        assert len(data["initial_state"]["active"]) == 15
        assert len(data["initial_state"]["inactive"]) == 5
        assert [e["activating_coin"] for e in data["events"]] == [16, 17, 18]

    def test_schedule_rejects_negative_events(self, client):
        assert client.get("/api/schedule", params={"events": -1}).status_code == 422

    def test_active_coins(self, client):
        data = client.get("/api/coins/active").json()

        assert len(data["active"]) == 15
        assert data["inactive"] == [16, 17, 18, 19, 20]
        assert data["next_event"]["index"] == 1

    def test_coin_status(self, client):
        assert client.get("/api/coins/3").json()["active"] is True

        inactive = client.get("/api/coins/16").json()
        assert inactive["active"] is False
        assert inactive["window"] is None

        later = client.get("/api/coins/16", params={"at": "2025-01-02T08:00:00Z"}).json()
        assert later["active"] is True
        assert later["window"]["expires_at"].startswith("2025-01-22T08:00:00")

    def test_unknown_coin(self, client):
        assert client.get("/api/coins/99").status_code == 404

    def test_instant_beyond_horizon(self, client, context):
        response = client.get("/api/coins/1", params={"at": "9999-12-30T00:00:00+00:00"})

        assert response.status_code == 400
        assert response.json()["error"] == "ScheduleHorizonError"
        assert context.rotation.materialized_events == 0

    def test_active_coins_beyond_horizon(self, client):
        response = client.get("/api/coins/active", params={"at": "2500-01-01T00:00:00Z"})

        assert response.status_code == 400


# =============================================================================
# ACCOUNTS
# =============================================================================

class TestAccounts:

    def test_create_and_get(self, client, account_id):
        data = client.get(f"/api/accounts/{account_id}").json()

        assert data["email"] == "user@example.com"
        assert Decimal(data["balance"]) == Decimal("100.00")

    def test_duplicate_account(self, client, account_id):
        response = client.post("/api/accounts", json={"email": "USER@example.com"})

        assert response.status_code == 409
        assert response.json()["error"] == "AccountExistsError"

    def test_invalid_email(self, client):
        assert client.post("/api/accounts", json={"email": "nope"}).status_code == 400

    def test_unknown_account(self, client):
        response = client.get("/api/accounts/999")

        assert response.status_code == 404
        assert response.json()["error"] == "AccountNotFoundError"

    def test_list_accounts(self, client, account_id):
        assert [a["id"] for a in client.get("/api/accounts", params={"email": "user"}).json()] == [account_id]
        assert client.get("/api/accounts", params={"email": "nobody"}).json() == []

    def test_set_balance_and_ledger(self, client, account_id):
        response = client.put(f"/api/accounts/{account_id}/balance", json={"balance": "250.00"})

        assert response.status_code == 200
        assert Decimal(response.json()["balance"]) == Decimal("250.00")

        entries = client.get(f"/api/accounts/{account_id}/ledger").json()
        assert [(e["kind"], e["reason"]) for e in entries] == [("credit", "adjustment")]

    def test_storage_unavailable(self, client, context, account_id, monkeypatch):
        def unavailable(account_id):
            raise StorageUnavailableError("database is down")

        monkeypatch.setattr(context.accounts, "get_account", unavailable)

        response = client.get(f"/api/accounts/{account_id}")

        assert response.status_code == 503
        assert response.json()["error"] == "StorageUnavailableError"


# =============================================================================
# ALLOCATIONS
# =============================================================================

class TestAllocations:

    def test_allocate(self, client, account_id):
        response = client.post("/api/allocations", json={
            "account_id": account_id, "coin_id": 3, "amount": "25.00"
        })

        assert response.status_code == 201
        assert response.json()["status"] == "active"
        assert response.json()["expires_at"].startswith("2025-01-05T00:00:00")
        assert Decimal(client.get(f"/api/accounts/{account_id}").json()["balance"]) == Decimal("75.00")

    def test_inactive_coin(self, client, account_id):
        response = client.post("/api/allocations", json={
            "account_id": account_id, "coin_id": 16, "amount": "25.00"
        })

        assert response.status_code == 400
        assert response.json()["error"] == "CoinNotActiveError"

    def test_insufficient_funds(self, client, account_id):
        response = client.post("/api/allocations", json={
            "account_id": account_id, "coin_id": 3, "amount": "150.00"
        })

        assert response.status_code == 400
        assert response.json()["error"] == "InsufficientFundsError"
        assert client.get("/api/allocations").json() == []

    def test_over_precise_amount(self, client, account_id):
        response = client.post("/api/allocations", json={
            "account_id": account_id, "coin_id": 3, "amount": "1.001"
        })

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidAmountError"

    def test_cancel(self, client, account_id):
        allocation_id = client.post("/api/allocations", json={
            "account_id": account_id, "coin_id": 3, "amount": "25.00"
        }).json()["id"]

        assert client.post(f"/api/allocations/{allocation_id}/cancel").json()["status"] == "cancelled"
        assert client.post(f"/api/allocations/{allocation_id}/cancel").status_code == 409
        assert Decimal(client.get(f"/api/accounts/{account_id}").json()["balance"]) == Decimal("100.00")

    def test_close_expired(self, client, account_id):
        client.post("/api/allocations", json={"account_id": account_id, "coin_id": 1, "amount": "5"})

        response = client.post("/api/allocations/close-expired", params={"at": "2025-01-02T08:00:00Z"})

        assert response.json()["closed"] == 1
        assert client.get("/api/allocations", params={"status": "closed"}).json()[0]["coin_id"] == 1

    def test_list_invalid_status(self, client):
        assert client.get("/api/allocations", params={"status": "open"}).status_code == 400


# =============================================================================
# WITHDRAWALS / DEPOSITS
# =============================================================================

class TestWithdrawals:

    def _request(self, client, account_id, amount="40.00", network="bsc"):
        return client.post("/api/withdrawals", json={
            "account_id": account_id, "amount": amount, "address": ADDRESS, "network": network
        })

    def test_request_and_reject(self, client, account_id):
        response = self._request(client, account_id)
        assert response.status_code == 201
        withdrawal_id = response.json()["id"]
        assert Decimal(client.get(f"/api/accounts/{account_id}").json()["balance"]) == Decimal("60.00")

        rejected = client.post(f"/api/withdrawals/{withdrawal_id}/resolve", json={"decision": "rejected"})
        assert rejected.json()["status"] == "rejected"
        assert Decimal(client.get(f"/api/accounts/{account_id}").json()["balance"]) == Decimal("100.00")

        again = client.post(f"/api/withdrawals/{withdrawal_id}/resolve", json={"decision": "rejected"})
        assert again.status_code == 409
        assert Decimal(client.get(f"/api/accounts/{account_id}").json()["balance"]) == Decimal("100.00")

    def test_invalid_network(self, client, account_id):
        response = self._request(client, account_id, network="dogechain")

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidNetworkError"

    def test_invalid_decision(self, client, account_id):
        withdrawal_id = self._request(client, account_id).json()["id"]

        response = client.post(f"/api/withdrawals/{withdrawal_id}/resolve", json={"decision": "approved"})

        assert response.status_code == 422

    def test_list_pending(self, client, account_id):
        self._request(client, account_id)

        assert len(client.get("/api/withdrawals", params={"status": "pending"}).json()) == 1

    def test_unknown_withdrawal(self, client):
        assert client.post("/api/withdrawals/999/cancel").status_code == 404


class TestDeposits:

    def test_networks(self, client):
        keys = {n["key"] for n in client.get("/api/networks").json()}

        assert keys == {"bsc", "tron", "solana", "ton", "eth"}

    def test_deposit(self, client, account_id):
        response = client.post("/api/deposits", json={"account_id": account_id, "amount": "50", "network": "ton"})

        assert response.status_code == 201
        assert Decimal(client.get(f"/api/accounts/{account_id}").json()["balance"]) == Decimal("150.00")
        assert len(client.get("/api/deposits", params={"email": "user@"}).json()) == 1
