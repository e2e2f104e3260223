"""Retry decision logic for the submission loop.

Two pure functions used by the executors:

* :func:`should_retry` -- decide whether a failed operation is re-sent.
* :func:`compute_retry_delay` -- how long to pause before re-sending it.

Only rate limiting is retryable.  Every other failure aborts the run, since
later operations may depend on the grid state left by earlier ones.
"""

from __future__ import annotations

from megaverse.errors import MegaverseRateLimitError


def should_retry(
    exception: Exception,
    attempt: int,
    max_attempts: int | None,
) -> bool:
    """Decide whether an operation that raised *exception* is retried.

    Parameters
    ----------
    exception:
        The error raised by the attempt.
    attempt:
        The attempt that just failed (0-indexed).
    max_attempts:
        Maximum total attempts, or ``None`` for no limit.

    Returns
    -------
    bool
        ``True`` only for a rate-limit error with attempts remaining.
    """
    if not isinstance(exception, MegaverseRateLimitError):
        return False
    if max_attempts is None:
        return True
    return attempt + 1 < max_attempts


def compute_retry_delay(
    delay: float,
    retry_after: float | None = None,
) -> float:
    """Return the pause before re-sending a rate-limited operation.

    The configured fixed *delay* is the floor.  A longer ``Retry-After``
    sent by the server wins over it.
    """
    if retry_after is not None and retry_after > delay:
        return retry_after
    return delay
