"""
Classify-then-retry wrapper for single round trips.

Wraps one request/response call (get, index, create, update, delete and the
index-management calls) so that admission-control rejections and lost
connections are retried with escalating backoff while every other failure
is surfaced to the caller once.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from esresilience.core.retry.classifier import classify
from esresilience.core.retry.policy import DEFAULT_RETRY_POLICY, BackoffTimer, RetryPolicy, RetryState
from esresilience.exceptions import DocStoreError, OperationError, RetryBudgetExceededError
from esresilience.utils.logging import get_logger

logger = get_logger("esresilience.retry.manager")

T = TypeVar("T")

FatalFactory = Callable[[str], DocStoreError]


class RetryManager:
    """
    Runs a call until it succeeds or fails with a fatal classification.

    The call is a zero-argument coroutine factory that re-issues the same,
    unmodified request each time it is invoked.

    Examples:
        >>> manager = RetryManager()
        >>> doc = await manager.execute("get", lambda: client.get(index="logs", id="1"))

        >>> # Share one escalating state across several steps of a chain
        >>> state = manager.policy.new_state()
        >>> await manager.execute("search", perform, state=state)
    """

    def __init__(self, policy: RetryPolicy | None = None, timer: BackoffTimer | None = None):
        """
        Initialize RetryManager.

        Args:
            policy: Backoff policy for new chains (defaults to DEFAULT_RETRY_POLICY)
            timer: Backoff timer (defaults to one sleeping with asyncio.sleep)
        """
        self.policy = policy or DEFAULT_RETRY_POLICY
        self.timer = timer or BackoffTimer()

    def new_state(self) -> RetryState:
        return self.policy.new_state()

    async def recover(
        self,
        operation: str,
        error: Exception,
        state: RetryState,
        fatal: FatalFactory | None = None,
    ) -> None:
        """
        Decide what to do about a failed attempt.

        Returns after the backoff delay when the failure is retriable, so the
        caller can issue the next attempt.

        Args:
            operation: Name of the logical operation, used in logs and errors
            error: The exception raised by the attempt
            state: The chain's retry state
            fatal: Builds the exception raised for fatal failures
                (default: OperationError)

        Raises:
            DocStoreError: The failure is fatal (chained from ``error``)
            RetryBudgetExceededError: The policy's optional budget is spent
        """
        failure = classify(error)

        if not failure.retriable:
            exc = fatal(failure.reason) if fatal else OperationError(operation, failure.reason)
            logger.error(exc.message)
            raise exc from error

        logger.warning(f"{operation} failed with {failure.category.value} ({failure.reason}), retrying")
        await self.backoff(state, reason=f"{operation}: {failure.reason}")

    async def backoff(self, state: RetryState, reason: str | None = None) -> float:
        """
        Wait out the chain's next backoff delay.

        Raises:
            RetryBudgetExceededError: The policy's optional budget is spent
        """
        try:
            return await self.timer.wait(state, reason=reason)
        except RetryBudgetExceededError as e:
            logger.error(e.message)
            raise

    async def execute(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        *,
        state: RetryState | None = None,
        fatal: FatalFactory | None = None,
    ) -> T:
        """
        Execute ``call`` with classify-then-retry logic.

        Args:
            operation: Name of the logical operation, used in logs and errors
            call: Zero-argument coroutine factory issuing the request
            state: Retry state of the chain (default: a fresh one)
            fatal: Builds the exception raised for fatal failures

        Returns:
            The raw result of the first successful attempt

        Raises:
            DocStoreError: First fatal failure
            RetryBudgetExceededError: The policy's optional budget is spent
        """
        state = state or self.new_state()

        while True:
            try:
                result: Any = await call()
            except Exception as e:
                await self.recover(operation, e, state, fatal=fatal)
                continue

            if state.retries:
                logger.info(f"{operation} succeeded after {state.retries} retries")
            return result
