"""megaverse -- Reconcile a Megaverse map with its goal through the REST API.

Public re-exports
-----------------

* **Clients:** :class:`MegaverseClient`, :class:`AsyncMegaverseClient`
* **Configuration:** :class:`MegaverseConfig`
* **Core:** :func:`parse_grid`, :func:`compute_delta`
* **Errors:** Every :class:`MegaverseError` subclass and :class:`ErrorCode`
* **Models:** Cells, operations, enums and result dataclasses

Usage::

    from megaverse import MegaverseClient

    with MegaverseClient(candidate_id="<candidate id>") as client:
        result = client.reconcile()
"""

from __future__ import annotations

__version__ = "0.1.0"

# ── Clients ────────────────────────────────────────────────────────────
from megaverse.async_client import AsyncMegaverseClient
from megaverse.client import MegaverseClient

# ── Configuration ───────────────────────────────────────────────────────
from megaverse.config import MegaverseConfig

# ── Core ────────────────────────────────────────────────────────────────
from megaverse.diff import compute_delta
from megaverse.grid import parse_grid

# ── Errors ──────────────────────────────────────────────────────────────
from megaverse.errors import (
    ErrorCode,
    MegaverseAPIError,
    MegaverseDiffError,
    MegaverseError,
    MegaverseFetchError,
    MegaverseMapParseError,
    MegaverseNetworkError,
    MegaverseRateLimitError,
    MegaverseRetryExhaustedError,
    MegaverseShapeMismatchError,
    MegaverseSubmitError,
    MegaverseUnalignedSnapshotError,
)

# ── Models ──────────────────────────────────────────────────────────────
from megaverse.models import (
    Cell,
    CellKind,
    ComethDirection,
    Operation,
    ReconcileResult,
    Snapshot,
    SoloonColor,
    SubmitResult,
    Verb,
)

__all__ = [
    "AsyncMegaverseClient",
    "Cell",
    "CellKind",
    "ComethDirection",
    "ErrorCode",
    "MegaverseAPIError",
    "MegaverseClient",
    "MegaverseConfig",
    "MegaverseDiffError",
    "MegaverseError",
    "MegaverseFetchError",
    "MegaverseMapParseError",
    "MegaverseNetworkError",
    "MegaverseRateLimitError",
    "MegaverseRetryExhaustedError",
    "MegaverseShapeMismatchError",
    "MegaverseSubmitError",
    "MegaverseUnalignedSnapshotError",
    "Operation",
    "ReconcileResult",
    "Snapshot",
    "SoloonColor",
    "SubmitResult",
    "Verb",
    "__version__",
    "compute_delta",
    "parse_grid",
]
