"""Public data models for the megaverse package.

This module contains every enum, cell/operation type and result type
referenced by the public API surface.  All types are plain dataclasses
with no behaviour beyond what is needed for structural equality and
hashing (where frozen).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Union

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class CellKind(IntEnum):
    """What occupies a grid cell.

    The numeric values are the ones used by the remote service in its
    structured map records.
    """

    SPACE = -1
    """Nothing.  Never submitted."""

    POLYANET = 0
    """An astral object with no attribute."""

    SOLOON = 1
    """A coloured moon; carries a :class:`SoloonColor`."""

    COMETH = 2
    """A comet; carries a :class:`ComethDirection`."""


class SoloonColor(str, Enum):
    """Soloon colours.  Values are the wire names."""

    BLUE = "blue"
    RED = "red"
    PURPLE = "purple"
    WHITE = "white"


class ComethDirection(str, Enum):
    """Cometh directions.  Values are the wire names."""

    UP = "up"
    DOWN = "down"
    RIGHT = "right"
    LEFT = "left"


class Verb(str, Enum):
    """Action performed by an operation.  Values are the HTTP methods."""

    CREATE = "POST"
    DELETE = "DELETE"


Attribute = Union[SoloonColor, ComethDirection]


# ---------------------------------------------------------------------------
# Cells and operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Cell:
    """One addressable grid position and its occupant.

    Attributes
    ----------
    kind:
        The occupant kind.
    row, column:
        0-based coordinates.
    attribute:
        Colour for soloons, direction for comeths, ``None`` otherwise.
    """

    kind: CellKind
    row: int
    column: int
    attribute: Attribute | None = None

    @property
    def position(self) -> tuple[int, int]:
        return (self.row, self.column)


Snapshot = tuple[Cell, ...]
"""A full grid state in row-major order, no gaps and no duplicates."""


@dataclass(frozen=True)
class Operation:
    """A single remote mutation produced by the delta planner."""

    verb: Verb
    cell: Cell


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class SubmitResult:
    """Summary of a completed submission run.

    Attributes
    ----------
    operations_submitted:
        Number of operations the remote accepted.
    created:
        Accepted ``CREATE`` operations.
    deleted:
        Accepted ``DELETE`` operations.
    rate_limit_retries:
        Total extra attempts caused by ``429`` answers.
    """

    operations_submitted: int = 0
    created: int = 0
    deleted: int = 0
    rate_limit_retries: int = 0


@dataclass
class ReconcileResult:
    """Outcome of :meth:`MegaverseClient.reconcile`.

    Attributes
    ----------
    operations:
        The delta computed between the current and goal maps.
    submit:
        Submission summary, or ``None`` for a dry run.
    """

    operations: list[Operation] = field(default_factory=list)
    submit: SubmitResult | None = None

    @property
    def converged(self) -> bool:
        """``True`` when the maps already matched."""
        return not self.operations
