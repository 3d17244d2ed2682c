"""Retry helper for operations that lose a race at the store."""

import time
from typing import Callable, Tuple, Type, TypeVar

import structlog

import config
from errors import ConflictError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def run_with_retry(
    func: Callable[[], T],
    *,
    attempts: int = config.CONFLICT_RETRY_ATTEMPTS,
    backoff_base: float = 0.05,
    retry_on: Tuple[Type[Exception], ...] = (ConflictError,),
) -> T:
    """
    Re-issue an operation after a conflict, with exponential backoff.

    Only safe for operations whose effects merge or are idempotent
    (get_or_create_draft_cart, add_item, remove_item).
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            if attempt >= attempts - 1:
                raise
            logger.info("retry.conflict", attempt=attempt + 1, error=str(exc))
            time.sleep(backoff_base * (2 ** attempt))
    raise ValueError("attempts must be at least 1")
