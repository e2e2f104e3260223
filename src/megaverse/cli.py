"""CLI entrypoint for megaverse.

Reconciles the candidate's current map with its goal map in one run and
reports the outcome through the exit code:

==  =================================================
0   success (or nothing to do)
1   missing candidate id or invalid configuration
2   fetching the current or goal map failed
3   the maps could not be diffed
4   submitting an operation failed
==  =================================================
"""

from __future__ import annotations

import logging

import rich_click as click

from megaverse import __version__
from megaverse.client import MegaverseClient
from megaverse.config import DEFAULT_BASE_URL, DEFAULT_RATE_LIMIT_RETRY_DELAY, MegaverseConfig
from megaverse.errors import MegaverseDiffError, MegaverseFetchError, MegaverseSubmitError
from megaverse.models import Operation
from megaverse.observability import set_level

click.rich_click.USE_MARKDOWN = True

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FETCH = 2
EXIT_DIFF = 3
EXIT_SUBMIT = 4


def _format_operation(op: Operation) -> str:
    cell = op.cell
    attribute = f" {cell.attribute.value}" if cell.attribute is not None else ""
    return f"{op.verb.name:<6} {cell.kind.name}{attribute} ({cell.row}, {cell.column})"


@click.command()
@click.version_option(version=__version__, prog_name="megaverse")
@click.option(
    "--candidate-id",
    default=None,
    help="Candidate identifier. Read from `CANDIDATE_ID` when omitted.",
)
@click.option(
    "--base-url",
    default=None,
    help=f"API root URL. Read from `MEGAVERSE_BASE_URL` when omitted, else `{DEFAULT_BASE_URL}`.",
)
@click.option(
    "--retry-delay",
    type=click.FloatRange(min=0),
    default=None,
    help=(
        "Seconds to wait before retrying a rate-limited operation. Read from "
        f"`MEGAVERSE_RETRY_DELAY` when omitted, else {DEFAULT_RATE_LIMIT_RETRY_DELAY:g}."
    ),
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Give up on an operation after this many rate-limited attempts. Unlimited by default.",
)
@click.option(
    "--rps",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Client-side pacing in requests per second.",
)
@click.option("--dry-run", is_flag=True, help="Print the delta without submitting it.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def megaverse(
    ctx: click.Context,
    candidate_id: str | None,
    base_url: str | None,
    retry_delay: float | None,
    max_attempts: int | None,
    rps: float | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Reconcile the current Megaverse map with the goal map."""
    set_level(logging.DEBUG if verbose else logging.INFO)

    options = {
        "candidate_id": candidate_id,
        "base_url": base_url,
        "rate_limit_retry_delay": retry_delay,
        "rate_limit_max_attempts": max_attempts,
        "rate_limit_rps": rps,
    }
    try:
        config = MegaverseConfig.from_env(
            **{key: value for key, value in options.items() if value is not None}
        )
    except ValueError as exc:
        click.echo(f"Invalid configuration: {exc}", err=True)
        ctx.exit(EXIT_CONFIG)

    if not config.candidate_id:
        click.echo("CANDIDATE_ID env variable not set!", err=True)
        ctx.exit(EXIT_CONFIG)

    with MegaverseClient(config=config) as client:
        try:
            result = client.reconcile(dry_run=dry_run)
        except MegaverseFetchError as exc:
            click.echo(f"Errors found while fetching maps: {exc}", err=True)
            ctx.exit(EXIT_FETCH)
        except MegaverseDiffError as exc:
            click.echo(f"Errors found while computing deltas: {exc}", err=True)
            ctx.exit(EXIT_DIFF)
        except MegaverseSubmitError as exc:
            click.echo(f"Errors found while submitting solution: {exc}", err=True)
            ctx.exit(EXIT_SUBMIT)

    if result.converged:
        click.echo("Current map already matches the goal.")
    elif result.submit is None:
        for op in result.operations:
            click.echo(_format_operation(op))
    else:
        click.echo(
            f"Submitted {result.submit.operations_submitted} operations "
            f"({result.submit.created} created, {result.submit.deleted} deleted, "
            f"{result.submit.rate_limit_retries} rate-limit retries)."
        )


def main() -> None:
    megaverse()
