"""
Search retry engine.

A search can come back "successfully" while some shards failed. When every
failed shard was rejected for overload, the identical query is reissued
after backoff; any other mix of shard failures is surfaced, since partial
results may be wrong in ways a retry cannot be assumed to fix.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from esresilience.core.response import as_mapping, payload
from esresilience.core.retry.classifier import REJECTED_EXECUTION
from esresilience.core.retry.manager import RetryManager
from esresilience.core.retry.policy import RetryState
from esresilience.exceptions import ShardFailureError
from esresilience.utils.logging import get_logger

logger = get_logger("esresilience.search")


@dataclass(frozen=True)
class ShardFailureReport:
    """Distinct failure types across the failed shards of one search response."""

    failed: int
    types: tuple[str, ...] = ()

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> "ShardFailureReport":
        shards = response.get("_shards") or {}
        failed = shards.get("failed") or 0

        types: list[str] = []
        for failure in shards.get("failures") or []:
            reason = failure.get("reason")
            failure_type = reason.get("type") if isinstance(reason, Mapping) else reason
            if failure_type is not None and failure_type not in types:
                types.append(str(failure_type))

        return cls(failed=failed, types=tuple(types))

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def uniform_overload(self) -> bool:
        return self.types == (REJECTED_EXECUTION,)

    @property
    def reason(self) -> str:
        if not self.types:
            return f"{self.failed} shards failed without a reported reason"
        return " | ".join(self.types)


class SearchEngine:
    """
    Issues a search and retries uniform shard overload and transient transport errors.

    Both kinds of retry share one RetryState per call, so the delay keeps
    escalating however the cluster signals overload.
    """

    def __init__(self, client: Any, manager: RetryManager | None = None):
        self.client = client
        self.manager = manager or RetryManager()

    async def search(self, query: Mapping[str, Any], *, state: RetryState | None = None) -> Any:
        """
        Run ``query`` until every shard answers or a failure is fatal.

        Args:
            query: Keyword arguments for the transport's ``search``; never modified
            state: Retry state of the chain (default: a fresh one)

        Returns:
            The full search response

        Raises:
            ShardFailureError: Failed shards report mixed or non-overload causes
            OperationError: The transport failed fatally
            RetryBudgetExceededError: The policy's optional budget is spent
        """
        state = state or self.manager.new_state()

        while True:
            try:
                response = await self.client.search(**query)
            except Exception as e:
                await self.manager.recover("search", e, state)
                continue

            report = ShardFailureReport.from_response(as_mapping(response))
            if report.ok:
                if state.retries:
                    logger.info(f"search succeeded after {state.retries} retries")
                return payload(response)

            if not report.uniform_overload:
                logger.error(f"Not all shards returned successful, shard errors: {report.reason}")
                raise ShardFailureError(report.reason, list(report.types))

            logger.warning(f"{report.failed} shards rejected the search for overload, retrying")
            await self.manager.backoff(state, reason=f"search: {report.reason}")
