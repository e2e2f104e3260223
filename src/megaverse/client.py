"""Synchronous Megaverse client.

:class:`MegaverseClient` wires configuration, transport, API wrappers,
parser, planner and executor together for one candidate.

Usage::

    from megaverse import MegaverseClient

    with MegaverseClient(candidate_id="...") as client:
        result = client.reconcile()
        print(len(result.operations), "operations applied")
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from megaverse.config import MegaverseConfig
from megaverse.diff.executor import DeltaExecutor
from megaverse.diff.planner import DeltaPlanner
from megaverse.grid.parser import parse_grid
from megaverse.megaverse_api.entities import EntityAPI
from megaverse.megaverse_api.maps import MapAPI
from megaverse.megaverse_api.transport import MegaverseTransport
from megaverse.models import Operation, ReconcileResult, Snapshot, SubmitResult
from megaverse.observability import get_logger, register_secret

log = get_logger("megaverse.client")


def _resolve_config(
    candidate_id: str | None,
    config: MegaverseConfig | None,
    kwargs: dict[str, Any],
) -> MegaverseConfig:
    if config is None:
        config = MegaverseConfig(candidate_id=candidate_id or "", **kwargs)
    elif candidate_id is not None or kwargs:
        raise TypeError("pass either config or candidate_id/keyword options, not both")
    if not config.candidate_id:
        raise ValueError("candidate_id is required")
    return config


class MegaverseClient:
    """Synchronous Megaverse client.

    Parameters
    ----------
    candidate_id:
        Candidate identifier.  **Required** unless *config* carries one.
    config:
        A ready-made :class:`MegaverseConfig`.  Mutually exclusive with
        *candidate_id* and keyword options.
    **kwargs:
        Forwarded to :class:`MegaverseConfig`.
    """

    def __init__(
        self,
        candidate_id: str | None = None,
        *,
        config: MegaverseConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self._config = _resolve_config(candidate_id, config, kwargs)
        register_secret(self._config.candidate_id)
        self._transport = MegaverseTransport(self._config)
        self._maps = MapAPI(self._transport)
        self._entities = EntityAPI(self._transport, self._config.candidate_id)
        self._planner = DeltaPlanner(self._config)
        self._executor = DeltaExecutor(self._entities, self._config)

    @property
    def config(self) -> MegaverseConfig:
        return self._config

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch_current_map(self) -> Snapshot:
        """Fetch and parse the current map.

        Raises
        ------
        MegaverseFetchError
            On any fetch failure, including an unparseable map.
        """
        return parse_grid(self._maps.current(self._config.candidate_id))

    def fetch_goal_map(self) -> Snapshot:
        """Fetch and parse the goal map.

        Raises
        ------
        MegaverseFetchError
            On any fetch failure, including an unparseable map.
        """
        return parse_grid(self._maps.goal(self._config.candidate_id))

    # ------------------------------------------------------------------
    # Planning and applying
    # ------------------------------------------------------------------

    def plan(self) -> list[Operation]:
        """Fetch both maps and return the operations that reconcile them."""
        current = self.fetch_current_map()
        goal = self.fetch_goal_map()
        return self._planner.plan(current, goal)

    def apply(self, operations: Sequence[Operation]) -> SubmitResult:
        """Submit *operations* in order; see :meth:`DeltaExecutor.execute`."""
        return self._executor.execute(operations)

    def reconcile(self, dry_run: bool = False) -> ReconcileResult:
        """Bring the current map in line with the goal map.

        Parameters
        ----------
        dry_run:
            Only compute the delta; submit nothing.

        Returns
        -------
        ReconcileResult
        """
        operations = self.plan()
        log.info(
            "Delta computed",
            extra={"extra_fields": {"op": "reconcile", "operations": len(operations)}},
        )
        if dry_run or not operations:
            return ReconcileResult(operations=operations, submit=None if dry_run else SubmitResult())
        return ReconcileResult(operations=operations, submit=self.apply(operations))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying HTTP transport."""
        self._transport.close()

    def __enter__(self) -> MegaverseClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
