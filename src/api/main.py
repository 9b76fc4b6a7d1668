"""
Spotlight API

FastAPI application for the dashboard: coin rotation queries, balances,
allocations, deposits and withdrawals.

Handlers are plain (sync) functions, so FastAPI runs them in its thread pool
and requests for different accounts are served in parallel.
"""
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.errors import (
    AccountExistsError,
    AccountNotFoundError,
    AllocationNotActiveError,
    AllocationNotFoundError,
    CoinNotActiveError,
    ConfigurationError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidNetworkError,
    ScheduleHorizonError,
    SpotlightError,
    StorageUnavailableError,
    WithdrawalAlreadyResolvedError,
    WithdrawalNotFoundError,
)
from src.utils import setup_logging, get_logger

logger = get_logger(__name__)

# Track startup time for uptime calculation
START_TIME = time.time()

# Most specific classes first
ERROR_STATUS_CODES = [
    (InvalidAmountError, 400),
    (InvalidNetworkError, 400),
    (CoinNotActiveError, 400),
    (ScheduleHorizonError, 400),
    (InsufficientFundsError, 400),
    (AccountNotFoundError, 404),
    (AllocationNotFoundError, 404),
    (WithdrawalNotFoundError, 404),
    (AccountExistsError, 409),
    (AllocationNotActiveError, 409),
    (WithdrawalAlreadyResolvedError, 409),
    (StorageUnavailableError, 503),
    (ConfigurationError, 500),
]


def get_uptime_seconds() -> int:
    """Get API uptime in seconds"""
    return int(time.time() - START_TIME)


def status_code_for(error: SpotlightError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    from src.config import load_config

    config = load_config()
    setup_logging(
        log_file=config.get('api.log_file', 'logs/api.log'),
        log_level=config.get('logging.level', 'INFO'),
        max_bytes=config.get('logging.max_bytes', 10485760),
        backup_count=config.get('logging.backup_count', 5),
        module_levels=config.get('logging.modules'),
    )

    logger.info("Spotlight API starting...")
    yield
    logger.info("Spotlight API shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Spotlight",
        description="Coin rotation and balance ledger API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",  # Vite dev server
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SpotlightError)
    async def spotlight_error_handler(request: Request, exc: SpotlightError):
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    from src.api.routes import (
        accounts_router,
        allocations_router,
        coins_router,
        deposits_router,
        withdrawals_router,
    )

    app.include_router(coins_router, prefix="/api", tags=["Coins"])
    app.include_router(accounts_router, prefix="/api", tags=["Accounts"])
    app.include_router(allocations_router, prefix="/api", tags=["Allocations"])
    app.include_router(withdrawals_router, prefix="/api", tags=["Withdrawals"])
    app.include_router(deposits_router, prefix="/api", tags=["Deposits"])

    @app.get("/")
    def root():
        """API root - health check"""
        return {
            "name": "Spotlight API",
            "version": "1.0.0",
            "status": "running",
            "uptime_seconds": get_uptime_seconds(),
        }

    return app


app = create_app()


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def run(host: str | None = None, port: int | None = None):
    """Run the API server"""
    import uvicorn

    host = host or os.environ.get("API_HOST", "0.0.0.0")
    port = port or int(os.environ.get("API_PORT", "8080"))

    logger.info(f"Starting API server on {host}:{port}")

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    run()
