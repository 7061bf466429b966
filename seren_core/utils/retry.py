import logging
import time
from collections.abc import Callable
from typing import Any, Iterable

logger = logging.getLogger(__name__)


class RetryError(RuntimeError):
    pass


def with_retry(
    func: Callable[[], Any],
    *,
    attempts: int = 3,
    delay_seconds: float = 0.05,
    backoff_multiplier: float = 2.0,
    max_delay_seconds: float = 1.0,
    retry_on: Iterable[type[BaseException]] = (Exception,),
    operation: str = "operation",
) -> Any:
    """Call ``func`` until it succeeds, sleeping with exponential backoff in between.

    Only exceptions listed in ``retry_on`` are retried; anything else propagates
    on the first attempt. Exhausting the attempts raises ``RetryError`` chained
    to the last failure.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last_exc: BaseException | None = None
    next_delay = max(delay_seconds, 0.0)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except tuple(retry_on) as exc:  # type: ignore[arg-type]
            last_exc = exc
            if attempt == attempts:
                break
            logger.debug(
                "retry_scheduled",
                extra={"event": "retry_scheduled", "operation": operation, "attempt": attempt, "error": str(exc)},
            )
            time.sleep(min(next_delay, max_delay_seconds))
            next_delay = min(next_delay * backoff_multiplier, max_delay_seconds)

    raise RetryError(f"{operation} failed after {attempts} attempts") from last_exc
