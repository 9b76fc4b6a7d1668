"""
CLI tests (click CliRunner against a temporary config and database).
"""
import pytest
from click.testing import CliRunner

import src.config.loader as config_loader
from src.context import SpotlightContext
from src.database.connection import reset_engine

from main import cli

ADDRESS = "TQEVdQEawnvGHh4Kmp167USEn3PcCms7in"


@pytest.fixture
def runner(config_yaml, monkeypatch):
    monkeypatch.setenv("SPOTLIGHT_CONFIG", str(config_yaml()))
    config_loader._cached_config = None
    reset_engine()

    yield CliRunner()

    config_loader._cached_config = None
    reset_engine()


def _invoke(runner, *args):
    return runner.invoke(cli, list(args), catch_exceptions=False)


@pytest.fixture
def initialized(runner):
    result = _invoke(runner, "init-db")
    assert result.exit_code == 0, result.output
    return runner


class TestSchedule:

    def test_schedule(self, runner):
        result = _invoke(runner, "schedule", "--events", "3")

        assert result.exit_code == 0, result.output
        assert "Rotation events" in result.output
        assert "Initial active coins" in result.output
        assert "16, 17, 18, 19, 20" in result.output

    def test_schedule_bad_start(self, runner):
        result = _invoke(runner, "schedule", "--start", "soon")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_coin(self, initialized):
        result = _invoke(initialized, "coin", "16", "--at", "2025-01-02T08:00:00Z")

        assert result.exit_code == 0, result.output
        assert "active" in result.output
        assert "inactive" not in result.output

    def test_unknown_coin(self, initialized):
        assert _invoke(initialized, "coin", "99").exit_code == 1

    def test_coin_beyond_horizon(self, initialized):
        result = _invoke(initialized, "coin", "1", "--at", "9999-12-30T00:00:00Z")

        assert result.exit_code == 1
        assert "horizon" in result.output


class TestLedgerCommands:

    def test_open_deposit_balance(self, initialized):
        result = _invoke(initialized, "open-account", "user@example.com", "--balance", "100")
        assert result.exit_code == 0, result.output
        assert "user@example.com" in result.output

        result = _invoke(initialized, "deposit", "user@example.com", "50", "--network", "tron")
        assert result.exit_code == 0, result.output

        result = _invoke(initialized, "balance", "user@example.com")
        assert result.exit_code == 0, result.output
        assert "150.00 USDT" in result.output

    def test_duplicate_account_fails(self, initialized):
        _invoke(initialized, "open-account", "user@example.com")

        result = _invoke(initialized, "open-account", "user@example.com")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_unknown_account_balance(self, initialized):
        assert _invoke(initialized, "balance", "nobody@example.com").exit_code == 1

    def test_resolve_withdrawal(self, initialized):
        _invoke(initialized, "open-account", "user@example.com", "--balance", "100")
        context = SpotlightContext.from_config()
        account = context.accounts.require_by_email("user@example.com")
        withdrawal = context.withdrawals.request_withdrawal(account.id, "40", ADDRESS, "tron")

        listed = _invoke(initialized, "withdrawals", "--status", "pending")
        assert listed.exit_code == 0, listed.output
        assert "Withdrawals" in listed.output

        result = _invoke(initialized, "resolve", str(withdrawal.id), "rejected")
        assert result.exit_code == 0, result.output
        assert "rejected" in result.output

        again = _invoke(initialized, "resolve", str(withdrawal.id), "rejected")
        assert again.exit_code == 1

        assert "100.00" in _invoke(initialized, "balance", str(account.id)).output

    def test_close_expired(self, initialized):
        result = _invoke(initialized, "close-expired")

        assert result.exit_code == 0, result.output
        assert "Closed 0 allocations" in result.output
