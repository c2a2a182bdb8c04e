"""
esresilience - retry and partial-failure handling for Elasticsearch clusters.

Absorbs admission-control rejections, lost connections and uniform shard
overload with escalating backoff, and surfaces every other failure once.
"""

__version__ = "0.1.0"

from esresilience.client import DocStore
from esresilience.config.loader import Config, load_config
from esresilience.config.settings import DocStoreSettings
from esresilience.connections.elasticsearch import create_client
from esresilience.core.bulk import BulkWriteEngine, filter_bulk_response
from esresilience.core.retry import (
    DEFAULT_RETRY_POLICY,
    BackoffTimer,
    FailureCategory,
    RetryManager,
    RetryPolicy,
    RetryState,
    ThrottledLogger,
    classify,
    parse_error,
)
from esresilience.core.search import SearchEngine, ShardFailureReport

# Exceptions
from esresilience.exceptions import (
    BulkWriteError,
    ConfigurationError,
    DocStoreError,
    ESResilienceError,
    IndexNotFoundError,
    OperationError,
    RetryBudgetExceededError,
    RetryError,
    ShardFailureError,
    TemplateError,
)
from esresilience.query import build_query

# Logging utilities
from esresilience.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Facade
    "DocStore",
    "DocStoreSettings",
    "create_client",
    "build_query",
    # Engines
    "BulkWriteEngine",
    "filter_bulk_response",
    "SearchEngine",
    "ShardFailureReport",
    "RetryManager",
    # Retry
    "RetryPolicy",
    "RetryState",
    "BackoffTimer",
    "DEFAULT_RETRY_POLICY",
    "ThrottledLogger",
    "FailureCategory",
    "classify",
    "parse_error",
    # Config
    "Config",
    "load_config",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "ESResilienceError",
    "ConfigurationError",
    "DocStoreError",
    "OperationError",
    "BulkWriteError",
    "ShardFailureError",
    "IndexNotFoundError",
    "TemplateError",
    "RetryError",
    "RetryBudgetExceededError",
]
