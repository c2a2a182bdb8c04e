"""
esresilience exception hierarchy.

All domain-specific exceptions inherit from ESResilienceError, so callers can
catch any failure surfaced by the resilience layer with a single base class
while still handling bulk, search and single-document failures separately.

Hierarchy::

    ESResilienceError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── DocStoreError             - fatal cluster failures surfaced to callers
    │   ├── OperationError        - single-document / index-management call
    │   ├── BulkWriteError        - non-retriable item inside a bulk write
    │   ├── ShardFailureError     - heterogeneous or non-overload shard failures
    │   ├── IndexNotFoundError    - configured index missing from the cluster
    │   └── TemplateError         - index template could not be stored
    └── RetryError                - retry chain could not complete
        └── RetryBudgetExceededError
"""

from __future__ import annotations


class ESResilienceError(Exception):
    """Base exception for all esresilience errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(ESResilienceError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Document store ----------------------------------------------------------


class DocStoreError(ESResilienceError):
    """Raised when the cluster reports a failure that retrying cannot fix."""


class OperationError(DocStoreError):
    """Raised when a single round trip fails with a fatal classification."""

    def __init__(self, operation: str, reason: str) -> None:
        full = f"invoking {operation} resulted in a runtime error: {reason}"
        super().__init__(full, details={"operation": operation, "reason": reason})
        self.operation = operation
        self.reason = reason


class BulkWriteError(DocStoreError):
    """Raised when a bulk write contains an item that cannot be retried.

    The message is the ``type--reason`` of the first fatal item.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason, details={"reason": reason})
        self.reason = reason


class ShardFailureError(DocStoreError):
    """Raised when failed shards report a mix of causes or a non-overload cause."""

    def __init__(self, reason: str, types: list[str] | None = None) -> None:
        super().__init__(reason, details={"types": list(types or [])})
        self.reason = reason
        self.types = list(types or [])


class IndexNotFoundError(DocStoreError):
    """Raised when the configured index does not exist on the cluster."""

    def __init__(self, index: str | None) -> None:
        super().__init__(f"index specified in reader does not exist: {index}", details={"index": index})
        self.index = index


class TemplateError(DocStoreError):
    """Raised when an index template cannot be stored."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Template '{name}' failed: {reason}", details={"template": name, "reason": reason})
        self.name = name
        self.reason = reason


# --- Retry -------------------------------------------------------------------


class RetryError(ESResilienceError):
    """Raised when a retry chain cannot complete."""


class RetryBudgetExceededError(RetryError):
    """Raised when an optional retry count or elapsed-time budget is exhausted."""

    def __init__(self, attempts: int, elapsed: float, reason: str | None = None) -> None:
        message = f"Retry budget exhausted after {attempts} retries ({elapsed:.1f}s)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"attempts": attempts, "elapsed": elapsed})
        self.attempts = attempts
        self.elapsed = elapsed
        self.reason = reason
