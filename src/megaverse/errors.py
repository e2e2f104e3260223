"""Full error hierarchy for the megaverse package.

Every public error class inherits from MegaverseError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the package can raise."""

    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    FETCH_ERROR = "FETCH_ERROR"
    MAP_PARSE_ERROR = "MAP_PARSE_ERROR"
    DIFF_ERROR = "DIFF_ERROR"
    SHAPE_MISMATCH = "SHAPE_MISMATCH"
    UNALIGNED_SNAPSHOT = "UNALIGNED_SNAPSHOT"
    SUBMIT_ERROR = "SUBMIT_ERROR"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class MegaverseError(Exception):
    """Base exception for all megaverse errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# API / transport errors
# ---------------------------------------------------------------------------

class MegaverseAPIError(MegaverseError):
    """The API answered with a non-2xx status or an application error body.

    Context keys: ``status_code``, ``method``, ``path``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.API_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class MegaverseNetworkError(MegaverseError):
    """A request failed below HTTP (timeout, DNS, dropped connection, protocol).

    Context keys: ``method``, ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class MegaverseRateLimitError(MegaverseError):
    """The API returned 429 -- the same request may be retried later.

    Context keys: ``method``, ``path``, ``retry_after_seconds``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.RATE_LIMITED,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Fetch errors
# ---------------------------------------------------------------------------

class MegaverseFetchError(MegaverseError):
    """Retrieving the current or goal map failed.

    Context keys: ``map``, ``candidate_id``.
    """

    def __init__(
        self,
        code: str = ErrorCode.FETCH_ERROR,
        message: str = "Map fetch failed",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class MegaverseMapParseError(MegaverseFetchError):
    """A raw map cell names a kind that does not exist.

    Context keys: ``row``, ``column``, ``value``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.MAP_PARSE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Diff errors
# ---------------------------------------------------------------------------

class MegaverseDiffError(MegaverseError):
    """Base class for violated delta preconditions."""

    def __init__(
        self,
        code: str = ErrorCode.DIFF_ERROR,
        message: str = "Diff error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class MegaverseShapeMismatchError(MegaverseDiffError):
    """The current and goal snapshots hold a different number of cells.

    Context keys: ``current_length``, ``target_length``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SHAPE_MISMATCH,
            message=message,
            context=context,
            cause=cause,
        )


class MegaverseUnalignedSnapshotError(MegaverseDiffError):
    """Cells at the same index refer to different coordinates.

    Context keys: ``index``, ``current``, ``target``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UNALIGNED_SNAPSHOT,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Submit errors
# ---------------------------------------------------------------------------

class MegaverseSubmitError(MegaverseError):
    """An operation failed for a reason other than rate limiting.

    Remaining operations are not attempted.  Operations submitted before
    the failure stay applied.

    Context keys: ``index``, ``verb``, ``kind``, ``row``, ``column``.
    """

    def __init__(
        self,
        code: str = ErrorCode.SUBMIT_ERROR,
        message: str = "Submit error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class MegaverseRetryExhaustedError(MegaverseSubmitError):
    """An operation stayed rate limited for ``rate_limit_max_attempts``.

    Only raised when a cap is configured; by default retries are unbounded.

    Context keys: ``index``, ``attempts``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.RETRY_EXHAUSTED,
            message=message,
            context=context,
            cause=cause,
        )
