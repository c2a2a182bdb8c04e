"""
Retry framework for absorbing transient cluster overload.

Escalating randomized backoff, failure classification, throttled warnings
and the single-operation retry wrapper.
"""

from esresilience.core.retry.classifier import (
    DOCUMENT_EXISTS_STATUS,
    NO_LIVING_CONNECTIONS,
    REJECTED_EXECUTION,
    BulkItemOutcome,
    ClassifiedFailure,
    FailureCategory,
    classify,
    classify_bulk_item,
    parse_error,
)
from esresilience.core.retry.manager import RetryManager
from esresilience.core.retry.policy import DEFAULT_RETRY_POLICY, BackoffTimer, RetryPolicy, RetryState
from esresilience.core.retry.throttle import ThrottledLogger

__all__ = [
    # Policy
    "RetryPolicy",
    "RetryState",
    "BackoffTimer",
    "DEFAULT_RETRY_POLICY",
    # Classification
    "FailureCategory",
    "ClassifiedFailure",
    "BulkItemOutcome",
    "classify",
    "classify_bulk_item",
    "parse_error",
    "REJECTED_EXECUTION",
    "NO_LIVING_CONNECTIONS",
    "DOCUMENT_EXISTS_STATUS",
    # Manager
    "RetryManager",
    # Throttling
    "ThrottledLogger",
]
