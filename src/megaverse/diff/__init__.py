"""Delta engine for map reconciliation.

Exports
-------
compute_delta
    Ordered create/delete operations between two snapshots.
DeltaPlanner
    :func:`compute_delta` with metrics and plan dumps.
DeltaExecutor
    Submits operations synchronously, retrying rate-limited ones.
AsyncDeltaExecutor
    Submits operations asynchronously, one at a time.
"""

from .executor import AsyncDeltaExecutor, DeltaExecutor
from .planner import DeltaPlanner, compute_delta

__all__ = [
    "AsyncDeltaExecutor",
    "DeltaExecutor",
    "DeltaPlanner",
    "compute_delta",
]
