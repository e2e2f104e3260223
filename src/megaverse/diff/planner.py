"""Delta planner: compute the operations that turn one map into another.

Both snapshots must be row-major and cover the same coordinates; the
planner compares them position by position rather than looking cells up,
and refuses inputs that break that alignment.
"""

from __future__ import annotations

import json
import sys
from collections import Counter
from collections.abc import Sequence
from typing import Any

from megaverse.config import MegaverseConfig
from megaverse.errors import MegaverseShapeMismatchError, MegaverseUnalignedSnapshotError
from megaverse.models import Cell, CellKind, Operation, Verb
from megaverse.observability import NoopMetricsHook


def compute_delta(current: Sequence[Cell], target: Sequence[Cell]) -> list[Operation]:
    """Compute the ordered operations transforming *current* into *target*.

    For every position whose kind differs, the stale entity is deleted
    (unless it is ``SPACE``) and then the desired one created (unless it is
    ``SPACE``).  Positions are visited in snapshot order, so the output is
    row-major with Delete before Create at a shared position.

    Cells of the same kind are left alone even when their colour or
    direction differ.

    Parameters
    ----------
    current:
        The map as it exists now.
    target:
        The map we want.

    Returns
    -------
    list[Operation]
        Empty when the maps already converge.

    Raises
    ------
    MegaverseShapeMismatchError
        The snapshots have different lengths.
    MegaverseUnalignedSnapshotError
        Cells at the same index have different coordinates.
    """
    if len(current) != len(target):
        raise MegaverseShapeMismatchError(
            message=(
                f"Current and target do not match in length "
                f"({len(current)} != {len(target)})"
            ),
            context={"current_length": len(current), "target_length": len(target)},
        )

    delta: list[Operation] = []
    for index, (have, want) in enumerate(zip(current, target)):
        if have.position != want.position:
            raise MegaverseUnalignedSnapshotError(
                message=(
                    f"Snapshots are not aligned at index {index}: "
                    f"{have.position} != {want.position}"
                ),
                context={"index": index, "current": have.position, "target": want.position},
            )

        if have.kind == want.kind:
            continue
        if have.kind != CellKind.SPACE:
            delta.append(Operation(Verb.DELETE, have))
        if want.kind != CellKind.SPACE:
            delta.append(Operation(Verb.CREATE, want))

    return delta


def _describe(op: Operation) -> dict[str, Any]:
    cell = op.cell
    entry: dict[str, Any] = {
        "verb": op.verb.name,
        "kind": cell.kind.name,
        "row": cell.row,
        "column": cell.column,
    }
    if cell.attribute is not None:
        entry["attribute"] = cell.attribute.value
    return entry


class DeltaPlanner:
    """Plans the operations for a reconcile run.

    Wraps :func:`compute_delta` with metrics and the optional
    ``debug_dump_diff`` plan dump.

    Parameters
    ----------
    config:
        Package configuration.
    """

    def __init__(self, config: MegaverseConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    def plan(self, current: Sequence[Cell], target: Sequence[Cell]) -> list[Operation]:
        """Compute the delta; see :func:`compute_delta`."""
        ops = compute_delta(current, target)

        counts: Counter[str] = Counter(op.verb.name for op in ops)
        for verb, count in counts.items():
            self._metrics.increment("megaverse.delta_ops_total", count, tags={"verb": verb})

        if self._config.debug_dump_diff:
            print(
                json.dumps([_describe(op) for op in ops], indent=2),
                file=sys.stderr,
            )
        return ops
