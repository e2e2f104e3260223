"""Normalise raw map payloads into :data:`Snapshot` tuples.

The remote service describes a map as a 2-D list whose cells come in three
shapes:

* ``None`` -- empty space.
* a string token -- either ``"<MODIFIER>_<KIND>"`` (``"RED_SOLOON"``,
  ``"UP_COMETH"``) or a bare kind name (``"POLYANET"``, ``"SPACE"``).
* a record -- ``{"type": 1, "color": "red"}`` or
  ``{"type": 2, "direction": "up"}``.

Anything unrecognised degrades to :attr:`CellKind.SPACE`, except a bare
string or a numeric ``type`` naming a kind that does not exist, which
raises :class:`MegaverseMapParseError`.  Integral floats (``1.0``) count as
type codes; fractional ones are rejected.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, TypeVar

from megaverse.errors import MegaverseMapParseError
from megaverse.models import Attribute, Cell, CellKind, ComethDirection, Snapshot, SoloonColor

_E = TypeVar("_E", bound=Enum)

# Kinds that may appear as the suffix of a two-part token, with the enum
# their modifier is parsed into.
_MODIFIED_KINDS: dict[str, tuple[CellKind, type[Enum]]] = {
    "SOLOON": (CellKind.SOLOON, SoloonColor),
    "COMETH": (CellKind.COMETH, ComethDirection),
}


def _lookup_member(enum_cls: type[_E], name: Any) -> _E | None:
    """Case-insensitive lookup by member name; ``None`` when unknown."""
    if not isinstance(name, str) or not name:
        return None
    return enum_cls.__members__.get(name.upper())


def _parse_token(token: str, row: int, column: int) -> Cell:
    parts = token.split("_")

    if len(parts) == 2:
        modifier, kind_name = parts
        entry = _MODIFIED_KINDS.get(kind_name.upper())
        if entry is None:
            return Cell(CellKind.SPACE, row, column)
        kind, attr_enum = entry
        attribute: Attribute | None = _lookup_member(attr_enum, modifier)  # type: ignore[assignment]
        return Cell(kind, row, column, attribute)

    if len(parts) == 1:
        kind = _lookup_member(CellKind, token)
        if kind is None:
            raise MegaverseMapParseError(
                message=f"Unknown cell kind {token!r} at ({row}, {column})",
                context={"row": row, "column": column, "value": token},
            )
        return Cell(kind, row, column)

    return Cell(CellKind.SPACE, row, column)


def _parse_record(record: dict, row: int, column: int) -> Cell:
    raw_type = record["type"]
    # JSON decoders may hand back 1.0 for 1.
    if isinstance(raw_type, float) and raw_type.is_integer():
        raw_type = int(raw_type)
    try:
        kind = CellKind(raw_type)
    except ValueError as exc:
        raise MegaverseMapParseError(
            message=f"Unknown cell type {raw_type!r} at ({row}, {column})",
            context={"row": row, "column": column, "value": raw_type},
            cause=exc,
        ) from exc

    attribute: Attribute | None = None
    if record.get("direction"):
        attribute = _lookup_member(ComethDirection, record["direction"])
    elif record.get("color"):
        attribute = _lookup_member(SoloonColor, record["color"])
    return Cell(kind, row, column, attribute)


def parse_cell(value: Any, row: int, column: int) -> Cell:
    """Normalise one raw map cell located at (*row*, *column*)."""
    if value is None:
        return Cell(CellKind.SPACE, row, column)
    if isinstance(value, str):
        return _parse_token(value, row, column)
    if (
        isinstance(value, dict)
        and isinstance(value.get("type"), (int, float))
        and not isinstance(value.get("type"), bool)
    ):
        return _parse_record(value, row, column)
    return Cell(CellKind.SPACE, row, column)


def parse_grid(raw: Sequence[Sequence[Any]]) -> Snapshot:
    """Convert a raw 2-D map into a row-major :data:`Snapshot`.

    Parameters
    ----------
    raw:
        List of rows, each a list of raw cells.

    Returns
    -------
    Snapshot
        One :class:`Cell` per raw cell, ordered by row then column.

    Raises
    ------
    MegaverseMapParseError
        A bare token or record names a kind that does not exist.
    """
    return tuple(
        parse_cell(value, row, column)
        for row, cells in enumerate(raw)
        for column, value in enumerate(cells)
    )
