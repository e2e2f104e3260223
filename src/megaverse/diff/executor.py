"""Delta executor: submit planned operations to the Megaverse API.

Operations run strictly one after another.  A later operation may depend on
the grid state left by an earlier one (a delete freeing a cell that a create
then fills), so the next request is only sent once the previous one has
been answered.

Failure protocol per operation:

* :class:`MegaverseRateLimitError` -- pause ``rate_limit_retry_delay``
  seconds and send the *same* operation again.  Unbounded unless
  ``rate_limit_max_attempts`` is set.
* any other :class:`MegaverseError` -- stop and raise
  :class:`MegaverseSubmitError`.  Nothing is rolled back.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import Any

from megaverse.config import MegaverseConfig
from megaverse.errors import (
    MegaverseError,
    MegaverseRateLimitError,
    MegaverseRetryExhaustedError,
    MegaverseSubmitError,
)
from megaverse.megaverse_api.retries import compute_retry_delay, should_retry
from megaverse.models import Operation, SubmitResult, Verb
from megaverse.observability import NoopMetricsHook, get_logger

log = get_logger("megaverse.executor")


class _ExecState:
    """Counters accumulated while a run progresses."""

    __slots__ = ("created", "deleted", "retries", "submitted")

    def __init__(self) -> None:
        self.submitted = 0
        self.created = 0
        self.deleted = 0
        self.retries = 0

    def record(self, op: Operation) -> None:
        self.submitted += 1
        if op.verb == Verb.CREATE:
            self.created += 1
        else:
            self.deleted += 1

    def result(self) -> SubmitResult:
        return SubmitResult(
            operations_submitted=self.submitted,
            created=self.created,
            deleted=self.deleted,
            rate_limit_retries=self.retries,
        )


def _op_context(index: int, op: Operation) -> dict[str, Any]:
    return {
        "index": index,
        "verb": op.verb.name,
        "kind": op.cell.kind.name,
        "row": op.cell.row,
        "column": op.cell.column,
    }


class _ExecutorBase:
    """Retry and failure bookkeeping shared by both executors."""

    def __init__(self, entity_api: Any, config: MegaverseConfig) -> None:
        self._api = entity_api
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    def _on_failure(
        self, index: int, op: Operation, exc: MegaverseError, attempt: int,
    ) -> float:
        """Return the pause before retrying *op*, or raise to abort the run."""
        max_attempts = self._config.rate_limit_max_attempts
        if should_retry(exc, attempt, max_attempts):
            delay = compute_retry_delay(
                self._config.rate_limit_retry_delay,
                exc.context.get("retry_after_seconds"),
            )
            self._metrics.increment(
                "megaverse.retries_total",
                tags={"verb": op.verb.name, "kind": op.cell.kind.name},
            )
            log.warning(
                "Operation rate limited, retrying",
                extra={
                    "extra_fields": {
                        "op": "submit",
                        "attempt": attempt + 1,
                        "delay": delay,
                        **_op_context(index, op),
                    }
                },
            )
            return delay

        context = _op_context(index, op)
        if isinstance(exc, MegaverseRateLimitError):
            raise MegaverseRetryExhaustedError(
                message=(
                    f"{op.verb.name} {op.cell.kind.name} at ({op.cell.row}, {op.cell.column}) "
                    f"still rate limited after {attempt + 1} attempts"
                ),
                context={**context, "attempts": attempt + 1},
                cause=exc,
            ) from exc
        if isinstance(exc, MegaverseSubmitError):
            exc.context = {**context, **exc.context}
            raise exc

        log.error(
            "Operation failed, aborting submission",
            extra={"extra_fields": {"op": "submit", "error": exc.message, **context}},
        )
        raise MegaverseSubmitError(
            message=(
                f"{op.verb.name} {op.cell.kind.name} at ({op.cell.row}, {op.cell.column}) "
                f"failed: {exc.message}"
            ),
            context={**context, "error_code": exc.code},
            cause=exc,
        ) from exc

    def _on_success(self, state: _ExecState, op: Operation) -> None:
        state.record(op)
        self._metrics.increment(
            "megaverse.ops_submitted_total",
            tags={"verb": op.verb.name, "kind": op.cell.kind.name},
        )


class DeltaExecutor(_ExecutorBase):
    """Synchronous delta executor.

    Parameters
    ----------
    entity_api:
        An :class:`EntityAPI` (anything with ``submit(op)``).
    config:
        Package configuration; supplies the retry delay and attempt cap.
    """

    def execute(self, ops: Sequence[Operation]) -> SubmitResult:
        """Submit *ops* in order, retrying rate-limited ones.

        Returns
        -------
        SubmitResult
            Summary of the run; only returned when every operation succeeded.

        Raises
        ------
        MegaverseSubmitError
            The first non-retryable failure.  Later operations were not sent.
        """
        state = _ExecState()

        for index, op in enumerate(ops):
            attempt = 0
            while True:
                try:
                    self._api.submit(op)
                except MegaverseError as exc:
                    delay = self._on_failure(index, op, exc, attempt)
                    state.retries += 1
                    attempt += 1
                    time.sleep(delay)
                    continue
                self._on_success(state, op)
                break

        log.info(
            "Submission complete",
            extra={"extra_fields": {"op": "submit", "operations": state.submitted}},
        )
        return state.result()


class AsyncDeltaExecutor(_ExecutorBase):
    """Asynchronous delta executor.

    Mirrors :class:`DeltaExecutor`; operations are still awaited one at a
    time, never gathered.
    """

    async def execute(self, ops: Sequence[Operation]) -> SubmitResult:
        """Submit *ops* in order (async); see :meth:`DeltaExecutor.execute`."""
        state = _ExecState()

        for index, op in enumerate(ops):
            attempt = 0
            while True:
                try:
                    await self._api.submit(op)
                except MegaverseError as exc:
                    delay = self._on_failure(index, op, exc, attempt)
                    state.retries += 1
                    attempt += 1
                    await asyncio.sleep(delay)
                    continue
                self._on_success(state, op)
                break

        log.info(
            "Submission complete",
            extra={"extra_fields": {"op": "submit", "operations": state.submitted}},
        )
        return state.result()
