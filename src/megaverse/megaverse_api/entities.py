"""Entity API wrappers for the Megaverse API.

Each addressable :class:`CellKind` lives in its own resource collection:

=============  ===============  ==============
kind           path             attribute key
=============  ===============  ==============
``POLYANET``   ``/polyanets``   --
``SOLOON``     ``/soloons``     ``color``
``COMETH``     ``/comeths``     ``direction``
=============  ===============  ==============

An operation is sent to its kind's collection with the verb's HTTP method and
a body of ``{"candidateId", "row", "column"}`` plus the attribute, serialised
as its lower-cased name.  ``SPACE`` has no collection and is never sent.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from megaverse.errors import MegaverseSubmitError
from megaverse.models import Cell, CellKind, ComethDirection, Operation, SoloonColor, Verb

from .transport import AsyncMegaverseTransport, MegaverseTransport


class _Endpoint(NamedTuple):
    path: str
    attribute_key: str | None
    attribute_type: type | None


ENDPOINTS: dict[CellKind, _Endpoint] = {
    CellKind.POLYANET: _Endpoint("/polyanets", None, None),
    CellKind.SOLOON: _Endpoint("/soloons", "color", SoloonColor),
    CellKind.COMETH: _Endpoint("/comeths", "direction", ComethDirection),
}
"""Every kind that can be submitted.  Kinds missing here are rejected."""


class EntityRequest(NamedTuple):
    """A fully encoded remote call for one operation."""

    method: str
    path: str
    body: dict[str, Any]


def encode_operation(candidate_id: str, op: Operation) -> EntityRequest:
    """Encode *op* as the request that applies it.

    Raises
    ------
    MegaverseSubmitError
        The cell kind has no collection, or a soloon/cometh cell lacks its
        colour/direction.
    """
    cell = op.cell
    context = {
        "verb": op.verb.name,
        "kind": cell.kind.name,
        "row": cell.row,
        "column": cell.column,
    }

    endpoint = ENDPOINTS.get(cell.kind)
    if endpoint is None:
        raise MegaverseSubmitError(
            message=f"{cell.kind.name} cells cannot be submitted",
            context=context,
        )

    body: dict[str, Any] = {
        "candidateId": candidate_id,
        "row": cell.row,
        "column": cell.column,
    }
    if endpoint.attribute_key is not None:
        if not isinstance(cell.attribute, endpoint.attribute_type):  # type: ignore[arg-type]
            raise MegaverseSubmitError(
                message=(
                    f"{cell.kind.name} at ({cell.row}, {cell.column}) needs a "
                    f"{endpoint.attribute_key}, got {cell.attribute!r}"
                ),
                context=context,
            )
        body[endpoint.attribute_key] = cell.attribute.value.lower()

    return EntityRequest(op.verb.value, endpoint.path, body)


class EntityAPI:
    """Synchronous wrapper for the entity collections.

    Parameters
    ----------
    transport:
        A configured :class:`MegaverseTransport` instance.
    candidate_id:
        Candidate identifier sent in every request body.
    """

    def __init__(self, transport: MegaverseTransport, candidate_id: str) -> None:
        self._transport = transport
        self._candidate_id = candidate_id

    def submit(self, op: Operation) -> dict[str, Any]:
        """Send a single operation.

        Raises whatever the transport raises, so callers can tell a
        :class:`MegaverseRateLimitError` apart from other failures.
        """
        request = encode_operation(self._candidate_id, op)
        return self._transport.request(request.method, request.path, json=request.body)

    def create(self, cell: Cell) -> dict[str, Any]:
        """Create the entity described by *cell*."""
        return self.submit(Operation(Verb.CREATE, cell))

    def delete(self, cell: Cell) -> dict[str, Any]:
        """Delete the entity described by *cell*."""
        return self.submit(Operation(Verb.DELETE, cell))


class AsyncEntityAPI:
    """Asynchronous wrapper for the entity collections.

    Mirrors :class:`EntityAPI` but all methods are coroutines.
    """

    def __init__(self, transport: AsyncMegaverseTransport, candidate_id: str) -> None:
        self._transport = transport
        self._candidate_id = candidate_id

    async def submit(self, op: Operation) -> dict[str, Any]:
        """Send a single operation (async)."""
        request = encode_operation(self._candidate_id, op)
        return await self._transport.request(request.method, request.path, json=request.body)

    async def create(self, cell: Cell) -> dict[str, Any]:
        """Create the entity described by *cell* (async)."""
        return await self.submit(Operation(Verb.CREATE, cell))

    async def delete(self, cell: Cell) -> dict[str, Any]:
        """Delete the entity described by *cell* (async)."""
        return await self.submit(Operation(Verb.DELETE, cell))
