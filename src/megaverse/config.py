"""Runtime configuration for megaverse.

:class:`MegaverseConfig` is a plain dataclass that captures every tuneable
knob.  Instances are passed explicitly to the transports, the executors and
both clients; nothing reads process-wide state except
:meth:`MegaverseConfig.from_env`.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any

DEFAULT_BASE_URL = "https://challenge.crossmint.com/api"

DEFAULT_RATE_LIMIT_RETRY_DELAY = 5.0
"""Seconds to wait before re-sending a rate-limited operation.  The remote
does not document how long its window lasts; five seconds clears it in
practice."""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class MegaverseConfig:
    """Complete configuration for a megaverse client.

    Parameters
    ----------
    candidate_id:
        Candidate identifier sent with every request.  **Required** for any
        remote call.  Masked in ``repr``.
    base_url:
        API root URL.  Override for proxy or testing environments.
    rate_limit_retry_delay:
        Fixed pause (seconds) before retrying an operation answered with
        ``429``.
    rate_limit_max_attempts:
        Maximum attempts for a single rate-limited operation.  ``None``
        retries forever.
    rate_limit_rps:
        Optional client-side pacing in requests per second (token bucket).
        ``None`` disables pacing.
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    debug_dump_payload:
        Write the (redacted) request/response payload to *stderr*.
    debug_dump_diff:
        Write the computed operation plan to *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    candidate_id: str = ""

    base_url: str = DEFAULT_BASE_URL

    # ── Retry & rate ────────────────────────────────────────────────────
    rate_limit_retry_delay: float = DEFAULT_RATE_LIMIT_RETRY_DELAY

    rate_limit_max_attempts: int | None = None

    rate_limit_rps: float | None = None

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    debug_dump_diff: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS, or target localhost for testing."
            )

        if self.rate_limit_retry_delay < 0:
            raise ValueError(
                f"rate_limit_retry_delay must be >= 0, got {self.rate_limit_retry_delay}"
            )
        if self.rate_limit_max_attempts is not None and self.rate_limit_max_attempts < 1:
            raise ValueError(
                f"rate_limit_max_attempts must be >= 1 or None, got {self.rate_limit_max_attempts}"
            )
        if self.rate_limit_rps is not None and self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    @classmethod
    def from_env(cls, **overrides: Any) -> MegaverseConfig:
        """Build a config from ``CANDIDATE_ID`` and ``MEGAVERSE_*`` variables.

        Explicit keyword *overrides* win over the environment.
        """
        values: dict[str, Any] = {
            "candidate_id": os.getenv("CANDIDATE_ID", ""),
            "base_url": os.getenv("MEGAVERSE_BASE_URL", DEFAULT_BASE_URL),
            "rate_limit_retry_delay": float(
                os.getenv("MEGAVERSE_RETRY_DELAY", str(DEFAULT_RATE_LIMIT_RETRY_DELAY))
            ),
        }
        values.update(overrides)
        return cls(**values)

    def __repr__(self) -> str:
        """Mask the candidate id to keep it out of logs."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "candidate_id":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"candidate_id='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"MegaverseConfig({', '.join(parts)})"
