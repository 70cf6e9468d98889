"""Public interface for the ``loyalty_migration`` package.

Re-exports the orchestration entry point, the pipeline components and the
public models. There is no runtime logic here.
"""

from .api import MigrationReport, build_pipeline, migrate_users
from .config import ProcessorConfig
from .coordinator import BatchCoordinator
from .errors import InvalidInputError, LoyaltyApiError, LoyaltyMigrationError
from .fetcher import DetailFetcher
from .models import (
    PointAllocation,
    ProcessingResult,
    RawUserRecord,
    TransactionAudit,
    UserResult,
    UserWallet,
)
from .pipeline import PipelineDriver
from .retry import RetryExecutor, TerminalFailure

__all__ = [
    # API
    "migrate_users",
    "build_pipeline",
    "MigrationReport",
    "ProcessorConfig",
    # Components
    "PipelineDriver",
    "BatchCoordinator",
    "DetailFetcher",
    "RetryExecutor",
    "TerminalFailure",
    # Models
    "RawUserRecord",
    "UserResult",
    "UserWallet",
    "PointAllocation",
    "TransactionAudit",
    "ProcessingResult",
    # Errors
    "LoyaltyMigrationError",
    "InvalidInputError",
    "LoyaltyApiError",
]
