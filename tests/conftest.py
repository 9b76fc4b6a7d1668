"""
Global test fixtures for Spotlight

Provides reusable fixtures for all test modules.
"""

import sys
from datetime import datetime, timedelta, UTC
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.context import SpotlightContext
from src.database.connection import build_engine, create_session_factory, init_db
from src.rotation import FixedClock, ScheduleConfig

# 20 coins, 15 active, 20 days: one rotation every 32 hours
SCHEDULE_START = datetime(2025, 1, 1, tzinfo=UTC)
STEP = timedelta(hours=32)


@pytest.fixture
def engine(tmp_path):
    """
    File-backed SQLite database per test

    A file (not :memory:) so that threads get their own connections and
    contend on the real database lock.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'spotlight.db'}")
    init_db(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def schedule_config():
    return ScheduleConfig(start_time=SCHEDULE_START)


@pytest.fixture
def clock():
    """Frozen one hour after the schedule start (coins 1..15 active)"""
    return FixedClock(SCHEDULE_START + timedelta(hours=1))


@pytest.fixture
def context(schedule_config, session_factory, clock):
    return SpotlightContext.build(schedule_config, session_factory, clock=clock)


@pytest.fixture
def ledger(context):
    return context.ledger


@pytest.fixture
def account_factory(context):
    """
    Create accounts

    Usage:
        account = account_factory("user@example.com", "100.00")
    """
    def _create(email="user@example.com", balance="100.00", account_type="user"):
        return context.accounts.open_account(
            email, initial_balance=balance, account_type=account_type
        )

    return _create


@pytest.fixture
def account(account_factory):
    """Account with a balance of 100.00"""
    return account_factory()


@pytest.fixture
def config_yaml(tmp_path):
    """
    Write a complete config file and return its path

    Usage:
        path = config_yaml()
        path = config_yaml(schedule={'active_coins': 5})
    """
    def _write(**overrides):
        import yaml

        data = {
            'system': {'name': 'Spotlight-Test', 'version': '1.0.0-test'},
            'database': {'url': f"sqlite:///{tmp_path / 'cli.db'}"},
            'schedule': {
                'start_time': SCHEDULE_START.isoformat(),
                'total_coins': 20,
                'active_coins': 15,
                'activation_duration_days': 20,
                'event_count': 20,
                'max_horizon_days': 36500,
            },
            'ledger': {'currency': 'USDT', 'storage_retries': 0},
            'logging': {'file': str(tmp_path / 'logs' / 'spotlight.log'), 'level': 'INFO'},
            'api': {'host': '127.0.0.1', 'port': 8080, 'log_file': str(tmp_path / 'logs' / 'api.log')},
        }
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(data.get(section), dict):
                data[section].update(values)
            else:
                data[section] = values

        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump(data))
        return path

    return _write
