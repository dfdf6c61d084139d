import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from core.errors import ExhaustedRetries
from core.logger import get_logger
from core.randomness import Randomizer, default_randomizer

logger = get_logger("Retry")


class DelayKind(Enum):
    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    RANDOMIZED = "randomized"


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an action and how long to wait in between.

    Delays are in seconds. ``delay`` is the fixed delay, the exponential base
    or the lower bound of a randomized delay; ``limit`` is the exponential cap
    or the upper bound of a randomized delay.
    """

    max_attempts: int
    kind: DelayKind = DelayKind.FIXED
    delay: float = 0.0
    limit: float = 0.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0 or self.limit < 0:
            raise ValueError("retry delays must be non-negative")

    @classmethod
    def fixed(cls, max_attempts: int, delay: float) -> "RetryPolicy":
        return cls(max_attempts, DelayKind.FIXED, delay)

    @classmethod
    def exponential(cls, max_attempts: int, base: float, cap: float) -> "RetryPolicy":
        return cls(max_attempts, DelayKind.EXPONENTIAL, base, cap)

    @classmethod
    def randomized(cls, max_attempts: int, low: float, high: float) -> "RetryPolicy":
        return cls(max_attempts, DelayKind.RANDOMIZED, low, high)

    def delay_for(self, attempt_index: int, randomizer: Optional[Randomizer] = None) -> float:
        """Delay after the failed attempt number ``attempt_index`` (0-based)."""
        if self.kind is DelayKind.EXPONENTIAL:
            return min(self.limit, self.delay * 2 ** attempt_index)
        if self.kind is DelayKind.RANDOMIZED:
            return (randomizer or default_randomizer).uniform(self.delay, self.limit)
        return self.delay


async def retry_action(
    action: Callable[[], Any],
    policy: RetryPolicy,
    name: str,
    randomizer: Optional[Randomizer] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """Run ``action`` until it succeeds or ``policy.max_attempts`` is reached.

    A raised exception and a returned ``False`` both count as a failed
    attempt. Sync callables run in a worker thread. When every attempt fails
    ``ExhaustedRetries`` is raised from the last failure.
    """
    last_error: Optional[BaseException] = None
    for attempt in range(policy.max_attempts):
        try:
            if inspect.iscoroutinefunction(action):
                result = await action()
            else:
                result = await asyncio.to_thread(action)
                if inspect.isawaitable(result):
                    result = await result
            if result is not False:
                return result
            last_error = None
            reason = "returned False"
        except Exception as e:
            last_error = e
            reason = str(e) or type(e).__name__

        if attempt < policy.max_attempts - 1:
            delay = policy.delay_for(attempt, randomizer)
            logger.warning(
                f"{name}: attempt {attempt + 1}/{policy.max_attempts} failed ({reason}), "
                f"retrying in {delay:.1f}s"
            )
            await sleep(delay)
        else:
            logger.error(f"{name}: exhausted {policy.max_attempts} attempt(s), last error: {reason}")

    raise ExhaustedRetries(name, policy.max_attempts, last_error) from last_error
