"""Asynchronous Megaverse client.

:class:`AsyncMegaverseClient` mirrors :class:`MegaverseClient` but every I/O
method is a coroutine.  Submission is still sequential: each operation is
awaited before the next one is sent.

Usage::

    import asyncio
    from megaverse import AsyncMegaverseClient

    async def main():
        async with AsyncMegaverseClient(candidate_id="...") as client:
            await client.reconcile()

    asyncio.run(main())
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from megaverse.client import _resolve_config
from megaverse.config import MegaverseConfig
from megaverse.diff.executor import AsyncDeltaExecutor
from megaverse.diff.planner import DeltaPlanner
from megaverse.grid.parser import parse_grid
from megaverse.megaverse_api.entities import AsyncEntityAPI
from megaverse.megaverse_api.maps import AsyncMapAPI
from megaverse.megaverse_api.transport import AsyncMegaverseTransport
from megaverse.models import Operation, ReconcileResult, Snapshot, SubmitResult
from megaverse.observability import register_secret


class AsyncMegaverseClient:
    """Asynchronous Megaverse client.

    Parameters
    ----------
    candidate_id:
        Candidate identifier.  **Required** unless *config* carries one.
    config:
        A ready-made :class:`MegaverseConfig`.
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
        self._transport = AsyncMegaverseTransport(self._config)
        self._maps = AsyncMapAPI(self._transport)
        self._entities = AsyncEntityAPI(self._transport, self._config.candidate_id)
        self._planner = DeltaPlanner(self._config)
        self._executor = AsyncDeltaExecutor(self._entities, self._config)

    @property
    def config(self) -> MegaverseConfig:
        return self._config

    async def fetch_current_map(self) -> Snapshot:
        """Fetch and parse the current map (async)."""
        return parse_grid(await self._maps.current(self._config.candidate_id))

    async def fetch_goal_map(self) -> Snapshot:
        """Fetch and parse the goal map (async)."""
        return parse_grid(await self._maps.goal(self._config.candidate_id))

    async def plan(self) -> list[Operation]:
        """Fetch both maps and return the reconciling operations (async)."""
        current = await self.fetch_current_map()
        goal = await self.fetch_goal_map()
        return self._planner.plan(current, goal)

    async def apply(self, operations: Sequence[Operation]) -> SubmitResult:
        """Submit *operations* in order (async)."""
        return await self._executor.execute(operations)

    async def reconcile(self, dry_run: bool = False) -> ReconcileResult:
        """Bring the current map in line with the goal map (async).

        See :meth:`MegaverseClient.reconcile`.
        """
        operations = await self.plan()
        if dry_run or not operations:
            return ReconcileResult(operations=operations, submit=None if dry_run else SubmitResult())
        return ReconcileResult(operations=operations, submit=await self.apply(operations))

    async def close(self) -> None:
        """Close the underlying async HTTP transport."""
        await self._transport.close()

    async def __aenter__(self) -> AsyncMegaverseClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
