"""Payload redaction for debug dumps.

Every request body sent to the Megaverse API carries the candidate id, which
doubles as the caller's credential.  :func:`redact` returns a copy of a
payload that is safe to print:

* values under sensitive keys (``candidateId``, ``token``, ...) are masked,
  keeping only the last four characters;
* the candidate id is scrubbed from every other string value, including
  URLs such as ``/map/<candidate_id>/goal``.
"""

from __future__ import annotations

import copy
from typing import Any

# Substrings: if any of these appear in a key name (case-insensitive), the
# value is redacted.
_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "candidateid",
    "candidate_id",
    "token",
    "secret",
    "authorization",
})


def _placeholder(secret: str | None) -> str:
    if secret and len(secret) >= 4:
        return f"<redacted:...{secret[-4:]}>"
    return "<redacted>"


def _mask(value: str, secret: str | None) -> str:
    if secret and secret in value:
        value = value.replace(secret, _placeholder(secret))
    return value


def _redact_value(value: Any, secret: str | None) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, secret)
    if isinstance(value, list):
        return [_redact_value(item, secret) for item in value]
    if isinstance(value, str):
        return _mask(value, secret)
    return value


def _redact_dict(d: dict, secret: str | None) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            result[key] = _placeholder(value if isinstance(value, str) else None)
        else:
            result[key] = _redact_value(value, secret)
    return result


def redact(payload: dict, secret: str | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        The dictionary to sanitise (a request body or a debug dump).
    secret:
        The candidate id.  If supplied, every occurrence of it anywhere in
        the payload is replaced.

    Returns
    -------
    dict
        A new dictionary; *payload* is never mutated.

    Examples
    --------
    >>> redact({"candidateId": "abc-123456", "row": 1})
    {'candidateId': '<redacted:...3456>', 'row': 1}
    """
    safe = copy.deepcopy(payload)
    return _redact_dict(safe, secret)
