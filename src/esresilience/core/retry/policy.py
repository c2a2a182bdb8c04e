"""
Backoff policy, per-chain retry state and the backoff timer.

A retry chain is every attempt made on behalf of one caller-facing call.
Each chain owns one RetryState whose delay window widens on every retry:
the floor grows by 5s up to 30s and the ceiling by 10s up to 60s. Delays
are drawn uniformly from ``[floor, ceiling)``.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from esresilience.exceptions import RetryBudgetExceededError
from esresilience.utils.logging import get_logger

logger = get_logger("esresilience.retry.policy")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration of the escalating backoff window.

    The default policy never gives up: overload is assumed transient and the
    caller prefers eventual success. Set ``max_retries`` and/or ``max_elapsed``
    to turn the next retriable failure past the budget into a
    RetryBudgetExceededError.

    Examples:
        >>> policy = RetryPolicy()                      # unbounded, 5-10s first delay
        >>> policy = RetryPolicy(max_retries=10)        # give up after 10 retries
        >>> policy = RetryPolicy(max_elapsed=300.0)     # give up after 5 minutes
    """

    # Delay window of the first retry (seconds)
    initial_floor: float = 5.0
    initial_ceiling: float = 10.0

    # Window growth per retry (seconds)
    floor_step: float = 5.0
    ceiling_step: float = 10.0

    # Caps on the window bounds (seconds)
    max_floor: float = 30.0
    max_ceiling: float = 60.0

    # Optional budget; None means unbounded
    max_retries: int | None = None
    max_elapsed: float | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.initial_floor < 0 or self.initial_ceiling < 0:
            raise ValueError("initial delays must be >= 0")
        if self.initial_floor > self.initial_ceiling:
            raise ValueError("initial_floor must be <= initial_ceiling")
        if self.floor_step < 0 or self.ceiling_step < 0:
            raise ValueError("delay steps must be >= 0")
        if self.max_floor > self.max_ceiling:
            raise ValueError("max_floor must be <= max_ceiling")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.max_elapsed is not None and self.max_elapsed <= 0:
            raise ValueError("max_elapsed must be > 0")

    @property
    def bounded(self) -> bool:
        return self.max_retries is not None or self.max_elapsed is not None

    def new_state(self) -> "RetryState":
        """Create a fresh state for a new retry chain."""
        return RetryState(policy=self)


@dataclass
class RetryState:
    """
    Escalating backoff state of one retry chain.

    Never shared between chains: every top-level call creates its own and
    passes it to every retry it makes.
    """

    policy: RetryPolicy = field(default_factory=RetryPolicy)

    # Lower/upper bound of the next delay window
    floor: float = field(init=False)
    ceiling: float = field(init=False)

    # Number of delays drawn so far
    retries: int = field(default=0, init=False)

    # Delays drawn so far, for logging and tests
    delays: list[float] = field(default_factory=list, init=False)

    started_at: float = field(default_factory=time.monotonic, init=False)

    def __post_init__(self):
        self.floor = self.policy.initial_floor
        self.ceiling = self.policy.initial_ceiling

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def exhausted(self) -> bool:
        """Whether the policy's optional budget forbids another retry."""
        if self.policy.max_retries is not None and self.retries >= self.policy.max_retries:
            return True
        if self.policy.max_elapsed is not None and self.elapsed >= self.policy.max_elapsed:
            return True
        return False

    def next_delay(self) -> float:
        """
        Draw the next delay and widen the window for the retry after it.

        Returns:
            Delay in seconds within ``[floor, ceiling)`` of the current window
        """
        delay = self.floor + random.random() * (self.ceiling - self.floor)

        self.ceiling = min(self.ceiling + self.policy.ceiling_step, self.policy.max_ceiling)
        self.floor = min(self.floor + self.policy.floor_step, self.policy.max_floor)
        # Caps can cross when a custom policy steps the floor past the ceiling
        self.floor = min(self.floor, self.ceiling)

        self.retries += 1
        self.delays.append(delay)
        return delay


class BackoffTimer:
    """
    Suspends a retry chain for its next backoff delay.

    Only the awaiting coroutine is suspended; the event loop keeps serving
    other chains. The sleep function is injectable so tests can record
    delays instead of waiting.
    """

    def __init__(self, sleep: SleepFunc | None = None):
        self._sleep = sleep or asyncio.sleep

    async def wait(self, state: RetryState, reason: str | None = None) -> float:
        """
        Wait out the next delay of ``state``.

        Args:
            state: The chain's retry state, advanced in place
            reason: What is being retried, used in the budget error

        Returns:
            The delay waited, in seconds

        Raises:
            RetryBudgetExceededError: If the policy's optional budget is spent
        """
        if state.exhausted():
            raise RetryBudgetExceededError(state.retries, state.elapsed, reason)

        delay = state.next_delay()
        logger.debug(f"Retry {state.retries} scheduled in {delay:.2f}s")
        await self._sleep(delay)
        return delay


DEFAULT_RETRY_POLICY = RetryPolicy()
