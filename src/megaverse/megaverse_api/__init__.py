"""megaverse.megaverse_api -- Megaverse API transport and endpoint wrappers.

This sub-package provides:

* :mod:`.rate_limit` -- Token bucket pacing (sync and async).
* :mod:`.retries` -- Rate-limit retry decisions.
* :mod:`.transport` -- Single-attempt HTTP transport with typed errors.
* :mod:`.maps` -- Current/goal map endpoints.
* :mod:`.entities` -- Polyanet, soloon and cometh collections.
"""

from __future__ import annotations

from .entities import ENDPOINTS, AsyncEntityAPI, EntityAPI, EntityRequest, encode_operation
from .maps import AsyncMapAPI, MapAPI
from .rate_limit import AsyncTokenBucket, TokenBucket
from .retries import compute_retry_delay, should_retry
from .transport import AsyncMegaverseTransport, MegaverseTransport

__all__ = [
    "ENDPOINTS",
    "AsyncEntityAPI",
    "AsyncMapAPI",
    "AsyncMegaverseTransport",
    "AsyncTokenBucket",
    "EntityAPI",
    "EntityRequest",
    "MapAPI",
    "MegaverseTransport",
    "TokenBucket",
    "compute_retry_delay",
    "encode_operation",
    "should_retry",
]
