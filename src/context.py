"""
Service wiring for Spotlight

Builds the rotation state, ledger and services from configuration once per
process. The API and the CLI both go through SpotlightContext.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import sessionmaker

from src.accounts import AccountRegistry
from src.allocation import AllocationService
from src.errors import StorageUnavailableError
from src.funds import DepositService
from src.ledger import BalanceLedger
from src.rotation import Clock, RotationState, ScheduleConfig, SystemClock
from src.utils import get_logger
from src.withdrawal import WithdrawalService

logger = get_logger(__name__)

T = TypeVar("T")

RETRY_DELAY_SECONDS = 0.2


@dataclass
class SpotlightContext:
    """All services sharing one schedule, one clock and one session factory"""
    schedule_config: ScheduleConfig
    clock: Clock
    rotation: RotationState
    ledger: BalanceLedger
    accounts: AccountRegistry
    allocations: AllocationService
    withdrawals: WithdrawalService
    deposits: DepositService
    currency: str = "USDT"
    storage_retries: int = 0

    @classmethod
    def build(
        cls,
        schedule_config: ScheduleConfig,
        session_factory: sessionmaker,
        clock: Optional[Clock] = None,
        currency: str = "USDT",
        storage_retries: int = 0
    ) -> 'SpotlightContext':
        clock = clock or SystemClock()
        rotation = RotationState(schedule_config)
        ledger = BalanceLedger(session_factory)

        return cls(
            schedule_config=schedule_config,
            clock=clock,
            rotation=rotation,
            ledger=ledger,
            accounts=AccountRegistry(session_factory),
            allocations=AllocationService(rotation, ledger, clock, session_factory),
            withdrawals=WithdrawalService(ledger, session_factory),
            deposits=DepositService(ledger, session_factory),
            currency=currency,
            storage_retries=storage_retries,
        )

    @classmethod
    def from_config(cls, config=None, clock: Optional[Clock] = None) -> 'SpotlightContext':
        """Build from config/config.yaml and the singleton database engine"""
        from src.config import load_config
        from src.database.connection import get_session_factory

        config = config or load_config()
        schedule_config = ScheduleConfig.from_config(config)

        context = cls.build(
            schedule_config,
            get_session_factory(),
            clock=clock,
            currency=config.get('ledger.currency', 'USDT'),
            storage_retries=config.get('ledger.storage_retries', 0),
        )

        logger.info(
            f"Spotlight context ready: {schedule_config.active_coins}/"
            f"{schedule_config.total_coins} coins, start {schedule_config.start_time.isoformat()}"
        )
        return context

    def retry_read(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """
        Run a read-only call, retrying StorageUnavailableError a bounded number of times.

        Never use for mutations: a debit that failed after reaching the
        database must not be replayed.
        """
        attempt = 0
        while True:
            try:
                return fn(*args, **kwargs)
            except StorageUnavailableError as e:
                if attempt >= self.storage_retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Storage unavailable ({e}), retry {attempt}/{self.storage_retries}"
                )
                time.sleep(RETRY_DELAY_SECONDS * attempt)
