"""Server package for the critical request chains MCP server.

Keep this package import light: importing `mcp_servers.critical_chains.server.*`
should not eagerly pull the handler table (which imports the audit engine).
"""

from __future__ import annotations

from typing import Any

__all__ = ["ToolRegistry", "create_default_registry"]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name in {"ToolRegistry", "create_default_registry"}:
        from .dispatch import ToolRegistry, create_default_registry

        return {"ToolRegistry": ToolRegistry, "create_default_registry": create_default_registry}[name]
    raise AttributeError(name)
