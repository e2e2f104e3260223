"""Tests for the ``megaverse`` command line entrypoint.

Most tests replace the client with a mock so every exit path can be driven
offline; ``TestEndToEnd`` runs the real client over a patched httpx layer.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
from click.testing import CliRunner

from megaverse.cli import EXIT_CONFIG, EXIT_DIFF, EXIT_FETCH, EXIT_OK, EXIT_SUBMIT, megaverse
from megaverse.errors import (
    MegaverseFetchError,
    MegaverseRetryExhaustedError,
    MegaverseShapeMismatchError,
    MegaverseSubmitError,
)
from megaverse.models import (
    Cell,
    CellKind,
    Operation,
    ReconcileResult,
    SoloonColor,
    SubmitResult,
    Verb,
)

CLEAN_ENV = {"CANDIDATE_ID": None, "MEGAVERSE_BASE_URL": None, "MEGAVERSE_RETRY_DELAY": None}


def _env(**values) -> dict:
    env = dict(CLEAN_ENV)
    env.update(values)
    return env


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def client_cls():
    with patch("megaverse.cli.MegaverseClient") as cls:
        instance = cls.return_value
        instance.__enter__.return_value = instance
        instance.__exit__.return_value = False
        yield cls


def _instance(client_cls) -> MagicMock:
    return client_cls.return_value


class TestConfiguration:
    def test_missing_candidate_id(self, runner, client_cls):
        result = runner.invoke(megaverse, [], env=_env())
        assert result.exit_code == EXIT_CONFIG
        assert "CANDIDATE_ID env variable not set!" in result.output
        client_cls.assert_not_called()

    def test_candidate_id_from_env(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult()
        result = runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="env-cand"))
        assert result.exit_code == EXIT_OK
        config = client_cls.call_args.kwargs["config"]
        assert config.candidate_id == "env-cand"

    def test_options_reach_config(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult()
        result = runner.invoke(
            megaverse,
            [
                "--candidate-id", "flag-cand",
                "--base-url", "http://localhost:9999/api",
                "--retry-delay", "0.5",
                "--max-attempts", "3",
                "--rps", "2",
            ],
            env=_env(),
        )
        assert result.exit_code == EXIT_OK
        config = client_cls.call_args.kwargs["config"]
        assert config.candidate_id == "flag-cand"
        assert config.base_url == "http://localhost:9999/api"
        assert config.rate_limit_retry_delay == 0.5
        assert config.rate_limit_max_attempts == 3
        assert config.rate_limit_rps == 2.0

    def test_retry_delay_from_env(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult()
        runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c", MEGAVERSE_RETRY_DELAY="7"))
        assert client_cls.call_args.kwargs["config"].rate_limit_retry_delay == 7.0

    def test_default_retry_delay(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult()
        runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c"))
        assert client_cls.call_args.kwargs["config"].rate_limit_retry_delay == 5.0

    def test_invalid_base_url(self, runner, client_cls):
        result = runner.invoke(
            megaverse, ["--base-url", "http://example.com/api"], env=_env(CANDIDATE_ID="c"),
        )
        assert result.exit_code == EXIT_CONFIG
        assert "Invalid configuration" in result.output
        client_cls.assert_not_called()

    def test_base_url_from_env(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult()
        runner.invoke(
            megaverse, [], env=_env(CANDIDATE_ID="c", MEGAVERSE_BASE_URL="http://localhost:8080/api"),
        )
        assert client_cls.call_args.kwargs["config"].base_url == "http://localhost:8080/api"

    def test_flag_wins_over_env(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult()
        runner.invoke(
            megaverse,
            ["--candidate-id", "flag-cand", "--retry-delay", "1.5"],
            env=_env(CANDIDATE_ID="env-cand", MEGAVERSE_RETRY_DELAY="9"),
        )
        config = client_cls.call_args.kwargs["config"]
        assert config.candidate_id == "flag-cand"
        assert config.rate_limit_retry_delay == 1.5

    def test_malformed_retry_delay_env(self, runner, client_cls):
        result = runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c", MEGAVERSE_RETRY_DELAY="soon"))
        assert result.exit_code == EXIT_CONFIG
        assert "Invalid configuration" in result.output
        client_cls.assert_not_called()

    def test_negative_retry_delay_rejected_by_parser(self, runner, client_cls):
        result = runner.invoke(megaverse, ["--retry-delay", "-1"], env=_env(CANDIDATE_ID="c"))
        assert result.exit_code != EXIT_OK
        client_cls.assert_not_called()


class TestOutcomes:
    def test_converged(self, runner, client_cls):
        _instance(client_cls).reconcile.return_value = ReconcileResult(submit=SubmitResult())
        result = runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c"))
        assert result.exit_code == EXIT_OK
        assert "Current map already matches the goal." in result.output

    def test_submitted_summary(self, runner, client_cls):
        ops = [Operation(Verb.CREATE, Cell(CellKind.POLYANET, 0, 0))] * 3
        _instance(client_cls).reconcile.return_value = ReconcileResult(
            operations=ops,
            submit=SubmitResult(operations_submitted=3, created=2, deleted=1, rate_limit_retries=4),
        )
        result = runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c"))
        assert result.exit_code == EXIT_OK
        assert "Submitted 3 operations (2 created, 1 deleted, 4 rate-limit retries)." in result.output
        _instance(client_cls).reconcile.assert_called_once_with(dry_run=False)

    def test_dry_run_lists_operations(self, runner, client_cls):
        ops = [
            Operation(Verb.DELETE, Cell(CellKind.POLYANET, 0, 1)),
            Operation(Verb.CREATE, Cell(CellKind.SOLOON, 2, 3, SoloonColor.RED)),
        ]
        _instance(client_cls).reconcile.return_value = ReconcileResult(operations=ops)
        result = runner.invoke(megaverse, ["--dry-run"], env=_env(CANDIDATE_ID="c"))
        assert result.exit_code == EXIT_OK
        lines = result.output.strip().splitlines()
        assert lines == ["DELETE POLYANET (0, 1)", "CREATE SOLOON red (2, 3)"]
        _instance(client_cls).reconcile.assert_called_once_with(dry_run=True)

    def test_pending_operations_without_submit_are_listed(self, runner, client_cls):
        ops = [Operation(Verb.CREATE, Cell(CellKind.POLYANET, 4, 4))]
        _instance(client_cls).reconcile.return_value = ReconcileResult(operations=ops, submit=None)
        result = runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c"), catch_exceptions=False)
        assert result.exit_code == EXIT_OK
        assert result.output.strip() == "CREATE POLYANET (4, 4)"


class TestExitCodes:
    @pytest.mark.parametrize(
        ("exc", "code", "text"),
        [
            (MegaverseFetchError(message="Fetching goal map failed: 500"), EXIT_FETCH, "fetching maps"),
            (MegaverseShapeMismatchError("Snapshots differ in length"), EXIT_DIFF, "computing deltas"),
            (MegaverseSubmitError(message="CREATE POLYANET failed"), EXIT_SUBMIT, "submitting solution"),
            (MegaverseRetryExhaustedError("still rate limited"), EXIT_SUBMIT, "submitting solution"),
        ],
    )
    def test_stage_failures(self, runner, client_cls, exc, code, text):
        _instance(client_cls).reconcile.side_effect = exc
        result = runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c"))
        assert result.exit_code == code
        assert f"Errors found while {text}" in result.output

    def test_client_closed_on_failure(self, runner, client_cls):
        _instance(client_cls).reconcile.side_effect = MegaverseFetchError()
        runner.invoke(megaverse, [], env=_env(CANDIDATE_ID="c"))
        _instance(client_cls).__exit__.assert_called_once()


def test_version(runner):
    result = runner.invoke(megaverse, ["--version"])
    assert result.exit_code == EXIT_OK
    assert "0.1.0" in result.output


# =========================================================================
# End to end over a patched HTTP layer
# =========================================================================


def _map_response(method: str, path: str, body: dict) -> httpx.Response:
    return httpx.Response(200, json=body, request=httpx.Request(method, f"https://megaverse.test{path}"))


def _serve(current, goal, submit=None):
    """Answer ``httpx.Client.request`` calls from canned map bodies."""

    def handler(method, path, **kwargs):
        if path == "/map/cand-1":
            return _map_response(method, path, {"map": {"content": current}})
        if path == "/map/cand-1/goal":
            return _map_response(method, path, {"goal": goal})
        if submit is not None:
            raise submit
        return _map_response(method, path, {})

    return handler


class TestEndToEnd:
    ARGS = ["--candidate-id", "cand-1", "--retry-delay", "0"]

    def test_dropped_connection_while_fetching(self, runner):
        with patch.object(
            httpx.Client, "request", side_effect=httpx.RemoteProtocolError("Server disconnected"),
        ):
            result = runner.invoke(megaverse, self.ARGS, env=_env())
        assert result.exit_code == EXIT_FETCH
        assert "Errors found while fetching maps" in result.output

    def test_dropped_connection_while_submitting(self, runner):
        handler = _serve(
            [[None, None]],
            [["POLYANET", None]],
            submit=httpx.RemoteProtocolError("Server disconnected"),
        )
        with patch.object(httpx.Client, "request", side_effect=handler):
            result = runner.invoke(megaverse, self.ARGS, env=_env())
        assert result.exit_code == EXIT_SUBMIT
        assert "Errors found while submitting solution" in result.output

    def test_shape_mismatch(self, runner):
        handler = _serve([[None, None]], [["POLYANET"]])
        with patch.object(httpx.Client, "request", side_effect=handler):
            result = runner.invoke(megaverse, self.ARGS, env=_env())
        assert result.exit_code == EXIT_DIFF
        assert "Errors found while computing deltas" in result.output

    def test_submits_delta(self, runner):
        handler = _serve([[None, "POLYANET"]], [["RED_SOLOON", None]])
        with patch.object(httpx.Client, "request", side_effect=handler) as request:
            result = runner.invoke(megaverse, self.ARGS, env=_env())
        assert result.exit_code == EXIT_OK
        assert "Submitted 2 operations (1 created, 1 deleted, 0 rate-limit retries)." in result.output
        submitted = [c.args[:2] for c in request.call_args_list if not c.args[1].startswith("/map")]
        assert submitted == [("POST", "/soloons"), ("DELETE", "/polyanets")]
