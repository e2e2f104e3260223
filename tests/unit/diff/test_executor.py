"""Tests for DeltaExecutor and AsyncDeltaExecutor.

Covers ordering, the rate-limit retry protocol, abort-on-failure and the
summary counters.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from megaverse.config import MegaverseConfig
from megaverse.diff.executor import AsyncDeltaExecutor, DeltaExecutor
from megaverse.errors import (
    ErrorCode,
    MegaverseAPIError,
    MegaverseNetworkError,
    MegaverseRateLimitError,
    MegaverseRetryExhaustedError,
    MegaverseSubmitError,
)
from megaverse.models import Cell, CellKind, Operation, SoloonColor, SubmitResult, Verb

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _rate_limited(retry_after: float | None = None) -> MegaverseRateLimitError:
    return MegaverseRateLimitError(
        message="Rate limited on POST /polyanets",
        context={"status_code": 429, "retry_after_seconds": retry_after},
    )


def _api_error(status: int = 400) -> MegaverseAPIError:
    return MegaverseAPIError(
        message=f"Status code: {status} on POST /polyanets: nope",
        context={"status_code": status},
    )


def _create(row: int = 0, column: int = 0) -> Operation:
    return Operation(Verb.CREATE, Cell(CellKind.POLYANET, row, column))


def _delete(row: int = 0, column: int = 0) -> Operation:
    return Operation(Verb.DELETE, Cell(CellKind.POLYANET, row, column))


def _config(**overrides) -> MegaverseConfig:
    values = dict(candidate_id="cand-1", rate_limit_retry_delay=0.0)
    values.update(overrides)
    return MegaverseConfig(**values)


def _make_sync_api(side_effect=None) -> MagicMock:
    api = MagicMock()
    api.submit.return_value = {}
    if side_effect is not None:
        api.submit.side_effect = side_effect
    return api


def _make_async_api(side_effect=None) -> MagicMock:
    api = MagicMock()
    api.submit = AsyncMock(return_value={})
    if side_effect is not None:
        api.submit.side_effect = side_effect
    return api


# =========================================================================
# Sync executor: ordering and success
# =========================================================================


class TestSyncExecutorSuccess:
    def test_submits_in_order(self):
        api = _make_sync_api()
        ops = [_delete(0, 1), _create(0, 1), _create(2, 2)]
        DeltaExecutor(api, _config()).execute(ops)
        assert [c.args[0] for c in api.submit.call_args_list] == ops

    def test_empty_sequence_makes_no_calls(self):
        api = _make_sync_api()
        result = DeltaExecutor(api, _config()).execute([])
        api.submit.assert_not_called()
        assert result == SubmitResult()

    def test_result_counts(self):
        api = _make_sync_api()
        result = DeltaExecutor(api, _config()).execute([_delete(), _create(), _create(1, 1)])
        assert result == SubmitResult(
            operations_submitted=3, created=2, deleted=1, rate_limit_retries=0,
        )

    def test_ops_submitted_metric(self):
        metrics = MagicMock()
        api = _make_sync_api()
        DeltaExecutor(api, _config(metrics=metrics)).execute([_create()])
        metrics.increment.assert_called_once_with(
            "megaverse.ops_submitted_total",
            tags={"verb": "CREATE", "kind": "POLYANET"},
        )


# =========================================================================
# Sync executor: rate-limit retry
# =========================================================================


class TestSyncExecutorRateLimit:
    def test_rate_limited_twice_then_succeeds(self):
        api = _make_sync_api([_rate_limited(), _rate_limited(), {}, {}])
        first, second = _create(0, 0), _create(0, 1)
        result = DeltaExecutor(api, _config()).execute([first, second])

        calls = [c.args[0] for c in api.submit.call_args_list]
        assert calls == [first, first, first, second]
        assert result.rate_limit_retries == 2
        assert result.operations_submitted == 2

    def test_sleeps_configured_delay_between_attempts(self):
        api = _make_sync_api([_rate_limited(), {}])
        with patch("megaverse.diff.executor.time.sleep") as sleep:
            DeltaExecutor(api, _config(rate_limit_retry_delay=5.0)).execute([_create()])
        sleep.assert_called_once_with(5.0)

    def test_longer_retry_after_wins(self):
        api = _make_sync_api([_rate_limited(retry_after=12.0), {}])
        with patch("megaverse.diff.executor.time.sleep") as sleep:
            DeltaExecutor(api, _config(rate_limit_retry_delay=5.0)).execute([_create()])
        sleep.assert_called_once_with(12.0)

    def test_shorter_retry_after_keeps_fixed_delay(self):
        api = _make_sync_api([_rate_limited(retry_after=1.0), {}])
        with patch("megaverse.diff.executor.time.sleep") as sleep:
            DeltaExecutor(api, _config(rate_limit_retry_delay=5.0)).execute([_create()])
        sleep.assert_called_once_with(5.0)

    def test_no_sleep_without_rate_limit(self):
        api = _make_sync_api()
        with patch("megaverse.diff.executor.time.sleep") as sleep:
            DeltaExecutor(api, _config()).execute([_create(), _delete()])
        sleep.assert_not_called()

    def test_unlimited_retries_by_default(self):
        api = _make_sync_api([_rate_limited()] * 50 + [{}])
        result = DeltaExecutor(api, _config()).execute([_create()])
        assert api.submit.call_count == 51
        assert result.rate_limit_retries == 50

    def test_max_attempts_cap_raises_retry_exhausted(self):
        api = _make_sync_api([_rate_limited()] * 10)
        with pytest.raises(MegaverseRetryExhaustedError) as exc_info:
            DeltaExecutor(api, _config(rate_limit_max_attempts=3)).execute([_create(), _create(1, 1)])
        assert api.submit.call_count == 3
        assert exc_info.value.context["attempts"] == 3
        assert exc_info.value.context["index"] == 0
        assert isinstance(exc_info.value, MegaverseSubmitError)

    def test_retries_metric(self):
        metrics = MagicMock()
        api = _make_sync_api([_rate_limited(), {}])
        DeltaExecutor(api, _config(metrics=metrics)).execute([_delete()])
        metrics.increment.assert_any_call(
            "megaverse.retries_total",
            tags={"verb": "DELETE", "kind": "POLYANET"},
        )


# =========================================================================
# Sync executor: abort on failure
# =========================================================================


class TestSyncExecutorAbort:
    def test_first_failure_stops_the_run(self):
        api = _make_sync_api([_api_error(), {}])
        with pytest.raises(MegaverseSubmitError):
            DeltaExecutor(api, _config()).execute([_create(0, 0), _create(0, 1)])
        assert api.submit.call_count == 1

    def test_failure_mid_run_keeps_earlier_ops(self):
        api = _make_sync_api([{}, _api_error(500), {}])
        with pytest.raises(MegaverseSubmitError) as exc_info:
            DeltaExecutor(api, _config()).execute([_create(0, 0), _create(0, 1), _create(0, 2)])
        assert api.submit.call_count == 2
        assert exc_info.value.context["index"] == 1
        assert exc_info.value.context["column"] == 1

    def test_submit_error_wraps_underlying(self):
        underlying = _api_error(400)
        api = _make_sync_api([underlying])
        with pytest.raises(MegaverseSubmitError) as exc_info:
            DeltaExecutor(api, _config()).execute([_create()])
        err = exc_info.value
        assert err.cause is underlying
        assert err.__cause__ is underlying
        assert underlying.message in err.message
        assert err.code == ErrorCode.SUBMIT_ERROR
        assert err.context["error_code"] == ErrorCode.API_ERROR

    def test_network_error_is_not_retried(self):
        api = _make_sync_api([MegaverseNetworkError("timed out"), {}])
        with pytest.raises(MegaverseSubmitError):
            DeltaExecutor(api, _config()).execute([_create(), _create(1, 1)])
        assert api.submit.call_count == 1

    def test_rate_limit_then_hard_failure_aborts(self):
        api = _make_sync_api([_rate_limited(), _api_error(), {}])
        with pytest.raises(MegaverseSubmitError):
            DeltaExecutor(api, _config()).execute([_create(), _create(1, 1)])
        assert api.submit.call_count == 2

    def test_encoding_submit_error_gets_index_context(self):
        bad = MegaverseSubmitError(message="SPACE cells cannot be submitted", context={"kind": "SPACE"})
        api = _make_sync_api([{}, bad])
        with pytest.raises(MegaverseSubmitError) as exc_info:
            DeltaExecutor(api, _config()).execute([_create(), _create(1, 1)])
        assert exc_info.value is bad
        assert exc_info.value.context["index"] == 1
        assert exc_info.value.context["kind"] == "SPACE"

    def test_non_megaverse_exception_propagates(self):
        api = _make_sync_api([RuntimeError("boom")])
        with pytest.raises(RuntimeError, match="boom"):
            DeltaExecutor(api, _config()).execute([_create()])


# =========================================================================
# Async executor
# =========================================================================


class TestAsyncExecutor:
    async def test_submits_in_order(self):
        api = _make_async_api()
        ops = [_delete(0, 1), _create(0, 1)]
        result = await AsyncDeltaExecutor(api, _config()).execute(ops)
        assert [c.args[0] for c in api.submit.await_args_list] == ops
        assert result.operations_submitted == 2

    async def test_rate_limited_twice_then_succeeds(self):
        api = _make_async_api([_rate_limited(), _rate_limited(), {}, {}])
        first, second = _create(0, 0), _create(0, 1)
        result = await AsyncDeltaExecutor(api, _config()).execute([first, second])
        assert [c.args[0] for c in api.submit.await_args_list] == [first, first, first, second]
        assert result.rate_limit_retries == 2

    async def test_sleeps_between_attempts(self):
        api = _make_async_api([_rate_limited(), {}])
        with patch("megaverse.diff.executor.asyncio.sleep", new=AsyncMock()) as sleep:
            await AsyncDeltaExecutor(api, _config(rate_limit_retry_delay=5.0)).execute([_create()])
        sleep.assert_awaited_once_with(5.0)

    async def test_first_failure_stops_the_run(self):
        api = _make_async_api([_api_error(), {}])
        with pytest.raises(MegaverseSubmitError):
            await AsyncDeltaExecutor(api, _config()).execute([_create(0, 0), _create(0, 1)])
        assert api.submit.await_count == 1

    async def test_max_attempts_cap(self):
        api = _make_async_api([_rate_limited()] * 5)
        with pytest.raises(MegaverseRetryExhaustedError):
            await AsyncDeltaExecutor(api, _config(rate_limit_max_attempts=2)).execute([_create()])
        assert api.submit.await_count == 2

    async def test_soloon_operation_passed_through(self):
        api = _make_async_api()
        op = Operation(Verb.CREATE, Cell(CellKind.SOLOON, 3, 4, SoloonColor.WHITE))
        await AsyncDeltaExecutor(api, _config()).execute([op])
        api.submit.assert_awaited_once_with(op)
