"""Internal utility modules for megaverse."""

from .redact import redact

__all__ = ["redact"]
