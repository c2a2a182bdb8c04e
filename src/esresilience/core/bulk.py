"""
Bulk-write retry engine.

A bulk body is a flat list alternating action metadata and payload, two
entries per document. When the cluster rejects some items for overload,
only those documents are resubmitted; documents that were written, or that
already existed, are never sent twice.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from esresilience.core.response import as_mapping, payload
from esresilience.core.retry.classifier import BulkItemOutcome, FailureCategory, classify_bulk_item
from esresilience.core.retry.manager import RetryManager
from esresilience.core.retry.policy import RetryState
from esresilience.core.retry.throttle import ThrottledLogger
from esresilience.exceptions import BulkWriteError
from esresilience.utils.logging import get_logger

logger = get_logger("esresilience.bulk")

BULK_OVERLOAD_MESSAGE = "The elasticsearch cluster queues are overloaded, resubmitting failed queries from bulk"

# Process-wide so concurrent bulk chains share one warning window
BULK_OVERLOAD_WARNING = ThrottledLogger(logger, BULK_OVERLOAD_MESSAGE, interval=5.0)


@dataclass(frozen=True)
class BulkFilterResult:
    """Outcome of scanning a bulk response that reported errors."""

    # Action/payload pairs to resubmit, flattened, in request order
    retry: list[Any] = field(default_factory=list)

    # ``type--reason`` of the first fatal item
    fatal_reason: str | None = None

    @property
    def fatal(self) -> bool:
        return self.fatal_reason is not None


def filter_bulk_response(body: Sequence[Any], response: Mapping[str, Any]) -> BulkFilterResult:
    """
    Split a bulk response into documents to resubmit and a fatal error.

    Items are scanned in order. Conflicts (status 409, already exists,
    missing) count as done; overload rejections mark their pair for
    resubmission; the first other error stops the scan.

    Args:
        body: The request body that produced ``response``
        response: Bulk response with an ``items`` list matching ``body``

    Returns:
        BulkFilterResult with either ``retry`` pairs or a ``fatal_reason``
    """
    retry: list[Any] = []

    for position, item in enumerate(response.get("items", [])):
        outcome = BulkItemOutcome.from_item(position, item)
        failure = classify_bulk_item(outcome)

        if failure is None or failure.category == FailureCategory.IGNORABLE_CONFLICT:
            continue

        if failure.category == FailureCategory.RETRIABLE_OVERLOAD:
            retry.extend(body[2 * position : 2 * position + 2])
            continue

        return BulkFilterResult(fatal_reason=failure.reason)

    return BulkFilterResult(retry=retry)


class BulkWriteEngine:
    """
    Sends a bulk body and resubmits overload-rejected documents until done.

    Examples:
        >>> engine = BulkWriteEngine(client)
        >>> body = [{"index": {"_index": "logs"}}, {"msg": "a"},
        ...         {"index": {"_index": "logs"}}, {"msg": "b"}]
        >>> response = await engine.send(body)
    """

    def __init__(
        self,
        client: Any,
        manager: RetryManager | None = None,
        warning: ThrottledLogger | None = None,
    ):
        """
        Initialize BulkWriteEngine.

        Args:
            client: Transport exposing ``async bulk(body=...)``
            manager: Retry manager supplying policy and timer
            warning: Throttled overload warning (default: process-wide one)
        """
        self.client = client
        self.manager = manager or RetryManager()
        self.warning = warning or BULK_OVERLOAD_WARNING

    @staticmethod
    def _sender_error(reason: str) -> BulkWriteError:
        return BulkWriteError(f"bulk sender error: {reason}")

    async def send(self, body: Sequence[Any], *, state: RetryState | None = None) -> Any:
        """
        Write ``body``, resubmitting only overload-rejected documents.

        Args:
            body: Alternating action/payload entries, two per document
            state: Retry state of the chain (default: a fresh one)

        Returns:
            The last bulk response

        Raises:
            BulkWriteError: An item failed with a non-retriable error, or the
                transport failed fatally
            RetryBudgetExceededError: The policy's optional budget is spent
        """
        state = state or self.manager.new_state()
        pending = list(body)

        while True:
            try:
                response = await self.client.bulk(body=pending)
            except Exception as e:
                await self.manager.recover("bulk", e, state, fatal=self._sender_error)
                continue

            results = as_mapping(response)
            if not results.get("errors"):
                return payload(response)

            filtered = filter_bulk_response(pending, results)
            if filtered.fatal:
                logger.error(f"bulk write failed: {filtered.fatal_reason}")
                raise BulkWriteError(filtered.fatal_reason)

            if not filtered.retry:
                return payload(response)

            self.warning()
            logger.debug(f"Resubmitting {len(filtered.retry) // 2} of {len(pending) // 2} bulk documents")
            await self.manager.backoff(state, reason="bulk: es_rejected_execution_exception")
            pending = filtered.retry
