from collections.abc import Callable
import errno
import logging
import time
from typing import TypeVar


logger = logging.getLogger(__name__)
T = TypeVar("T")

TRANSIENT_ERRNOS = frozenset({errno.EAGAIN, errno.EBUSY, errno.EINTR, errno.EIO})


class RetryExhaustedError(RuntimeError):
    pass


def is_transient_os_error(exc: Exception) -> bool:
    return isinstance(exc, OSError) and exc.errno in TRANSIENT_ERRNOS


def run_with_retries(
    fn: Callable[[], T],
    *,
    max_retries: int,
    backoff_seconds: float,
    should_retry: Callable[[Exception], bool] = is_transient_os_error,
    description: str = "operation",
) -> T:
    last_error: Exception | None = None

    for attempt in range(1, max_retries + 2):
        try:
            return fn()
        except Exception as exc:
            last_error = exc
            if attempt > max_retries or not should_retry(exc):
                break
            logger.info("retrying %s", description, extra={"attempt": attempt, "error": str(exc)})
            time.sleep(backoff_seconds * attempt)

    raise RetryExhaustedError(str(last_error)) from last_error
