"""Bounded retry around catalog persistence."""

import logging
import time
from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..core.errors import ExhaustedRetryError, StoreError
from .models import TorrentRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0


class RetryController:
    """Runs an operation up to ``attempts`` times with a fixed delay between tries"""

    def __init__(self, attempts: int = MAX_ATTEMPTS, delay: float = RETRY_DELAY_SECONDS,
                 sleep: Optional[Callable[[float], None]] = None):
        self.attempts = attempts
        self.delay = delay
        self.sleep = sleep or time.sleep

    def _log_retry(self, retry_state: RetryCallState):
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Operation failed, retrying ({retry_state.attempt_number}/{self.attempts}): {error}"
        )

    def call(self, operation: Callable[[], T]) -> T:
        """
        Run ``operation``, retrying on StoreError.

        Raises:
            ExhaustedRetryError: every attempt failed; ``last_error`` is the final failure
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_exception_type(StoreError),
            before_sleep=self._log_retry,
            sleep=self.sleep,
        )
        try:
            return retrying(operation)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"Operation failed after {self.attempts} attempts: {last_error}")
            raise ExhaustedRetryError(last_error, self.attempts) from last_error

    def persist(self, store, record: TorrentRecord) -> bool:
        return self.call(lambda: store.upsert(record))
