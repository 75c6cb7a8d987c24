"""Redaction utilities for logging.

Devtools logs can be megabytes of events with full URLs; log lines keep only
their size and strip query/fragment/userinfo from URLs.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit, urlunsplit


def redact_url_brief(url: str) -> str:
    """Low-noise URL redaction (drops query+fragment; removes userinfo)."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
        netloc = parts.netloc.split("@", 1)[1] if "@" in parts.netloc else parts.netloc
        return urlunsplit((parts.scheme, netloc, parts.path, "", ""))
    except ValueError:
        return url


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    out: dict[str, Any] = {}
    for key, value in (args or {}).items():
        if isinstance(value, list):
            out[key] = f"<{key} items={len(value)}>"
        elif isinstance(value, str) and ("url" in key or value[:4].lower() == "http"):
            out[key] = redact_url_brief(value)
        else:
            out[key] = value
    return out


__all__ = ["redact_tool_arguments", "redact_url_brief"]
