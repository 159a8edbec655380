"""Retry controller for pipeline stage calls (tenacity, exponential backoff)."""

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    logger.warning(
        "pipeline.retrying",
        attempt=state.attempt_number,
        wait=round(state.next_action.sleep, 2) if state.next_action else None,
        error=str(error) if error else None,
    )


def stage_retrying(
    max_attempts: int = 1,
    min_wait: float = 2.0,
    max_wait: float = 30.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> AsyncRetrying:
    """Async retry controller for one worker call.

    Args:
        max_attempts: Total attempts; 1 means a single try
        min_wait: Lower bound of the backoff (seconds)
        max_wait: Upper bound of the backoff (seconds)
        exceptions: Exception types worth another attempt; anything else propagates at once
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=_log_retry,
        reraise=True,
    )
