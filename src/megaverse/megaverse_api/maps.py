"""Map API wrappers for the Megaverse API.

Provides :class:`MapAPI` (sync) and :class:`AsyncMapAPI` (async) around the
two read endpoints:

* ``GET /map/{candidate_id}``      -- the current map, under ``map.content``.
* ``GET /map/{candidate_id}/goal`` -- the goal map, under ``goal``.

Both return the raw 2-D list; :func:`megaverse.grid.parse_grid` turns it into
a snapshot.  Every failure, including ``429``, surfaces as
:class:`MegaverseFetchError`.
"""

from __future__ import annotations

from typing import Any

from megaverse.errors import MegaverseError, MegaverseFetchError

from .transport import AsyncMegaverseTransport, MegaverseTransport


def _current_path(candidate_id: str) -> str:
    return f"/map/{candidate_id}"


def _goal_path(candidate_id: str) -> str:
    return f"/map/{candidate_id}/goal"


def _fetch_failed(which: str, exc: MegaverseError) -> MegaverseFetchError:
    return MegaverseFetchError(
        message=f"Fetching {which} map failed: {exc.message}",
        context={"map": which, **exc.context},
        cause=exc,
    )


def _extract_grid(which: str, body: dict[str, Any], *keys: str) -> list[list[Any]]:
    """Walk *keys* into *body* and return the 2-D grid found there."""
    node: Any = body
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            raise MegaverseFetchError(
                message=f"{which} map response has no {'.'.join(keys)!r}",
                context={"map": which, "missing": key},
            )
        node = node[key]
    if not isinstance(node, list) or not all(isinstance(row, list) for row in node):
        raise MegaverseFetchError(
            message=f"{which} map is not a list of rows",
            context={"map": which},
        )
    return node


class MapAPI:
    """Synchronous wrapper for the map endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`MegaverseTransport` instance.
    """

    def __init__(self, transport: MegaverseTransport) -> None:
        self._transport = transport

    def current(self, candidate_id: str) -> list[list[Any]]:
        """Return the raw current map of *candidate_id*.

        Raises
        ------
        MegaverseFetchError
            On any transport, status or application failure, or when the
            body does not hold a ``map.content`` grid.
        """
        try:
            body = self._transport.request("GET", _current_path(candidate_id))
        except MegaverseError as exc:
            raise _fetch_failed("current", exc) from exc
        return _extract_grid("current", body, "map", "content")

    def goal(self, candidate_id: str) -> list[list[Any]]:
        """Return the raw goal map of *candidate_id*.

        Raises
        ------
        MegaverseFetchError
            On any transport, status or application failure, or when the
            body does not hold a ``goal`` grid.
        """
        try:
            body = self._transport.request("GET", _goal_path(candidate_id))
        except MegaverseError as exc:
            raise _fetch_failed("goal", exc) from exc
        return _extract_grid("goal", body, "goal")


class AsyncMapAPI:
    """Asynchronous wrapper for the map endpoints.

    Mirrors :class:`MapAPI` but all methods are coroutines.
    """

    def __init__(self, transport: AsyncMegaverseTransport) -> None:
        self._transport = transport

    async def current(self, candidate_id: str) -> list[list[Any]]:
        """Return the raw current map of *candidate_id* (async)."""
        try:
            body = await self._transport.request("GET", _current_path(candidate_id))
        except MegaverseError as exc:
            raise _fetch_failed("current", exc) from exc
        return _extract_grid("current", body, "map", "content")

    async def goal(self, candidate_id: str) -> list[list[Any]]:
        """Return the raw goal map of *candidate_id* (async)."""
        try:
            body = await self._transport.request("GET", _goal_path(candidate_id))
        except MegaverseError as exc:
            raise _fetch_failed("goal", exc) from exc
        return _extract_grid("goal", body, "goal")
