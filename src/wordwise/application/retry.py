"""Exponential backoff for persistence calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from wordwise.domain.constants import RETRY_ATTEMPTS, RETRY_BASE_DELAY, RETRY_MAX_DELAY
from wordwise.domain.exceptions import PersistenceError, TransientStoreError, WordwiseError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt`` (0-based): base doubled each time, capped."""
    return min(base_delay * (2**attempt), max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    description: str = "persistence call",
    attempts: int = RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or the attempt ceiling is reached.

    Only TransientStoreError is retried. Other engine errors (validation,
    auth) propagate unchanged; anything else is wrapped in
    PersistenceError immediately.

    Raises:
        PersistenceError: Retries exhausted or a non-retryable store failure.
    """
    last_error: TransientStoreError | None = None

    for attempt in range(max(attempts, 1)):
        try:
            return await operation()
        except TransientStoreError as e:
            last_error = e
            if attempt < attempts - 1:
                delay = backoff_delay(attempt, base_delay, max_delay)
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{attempts}): {e}; "
                    f"retrying in {delay:.2f}s"
                )
                await sleep(delay)
        except WordwiseError:
            raise
        except Exception as e:
            logger.error(f"{description} failed with a non-retryable error: {e}")
            raise PersistenceError(f"{description} failed: {e}", cause=e) from e

    logger.error(f"{description} failed after {attempts} attempts: {last_error}")
    raise PersistenceError(
        f"{description} failed after {attempts} attempts: {last_error}", cause=last_error
    ) from last_error
