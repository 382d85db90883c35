"""
Delphi Price Feed - Trimmed Mean Aggregation Module

This module provides the rolling price feed engine:
- AggregationEngine: Submission pipeline and administrative operations
- WindowStore: Fixed-capacity observation window with multiple orderings
- TrimmedAverager: Skip-5/take-9 trimmed mean over a full window
- RateLimiter: Per-reporter submission cooldown
- ReporterRegistry: Approved reporters plus active validator lookup
- ValidatorSet: Validator set sources (static, cached, HTTP, contract)
"""

from .AggregationEngine import AggregationEngine, EngineConfig
from .errors import OracleError, OutOfRange, RateLimited, Unauthorized, ValidatorSetError
from .OrderedTable import OrderedTable
from .OrderedTableMemory import OrderedTableMemory
from .RateLimiter import RateLimiter, ReporterStats
from .ReporterRegistry import ReporterRegistry
from .TrimmedAverager import TrimmedAverager
from .ValidatorSet import CachedValidatorSet, StaticValidatorSet, ValidatorSet
from .ValidatorSetContract import ValidatorSetContract
from .ValidatorSetHttp import ValidatorSetHttp
from .WindowStore import Observation, WindowStore

__all__ = [
    "AggregationEngine",
    "CachedValidatorSet",
    "EngineConfig",
    "Observation",
    "OracleError",
    "OrderedTable",
    "OrderedTableMemory",
    "OutOfRange",
    "RateLimited",
    "RateLimiter",
    "ReporterRegistry",
    "ReporterStats",
    "StaticValidatorSet",
    "TrimmedAverager",
    "Unauthorized",
    "ValidatorSet",
    "ValidatorSetContract",
    "ValidatorSetError",
    "ValidatorSetHttp",
    "WindowStore",
]
