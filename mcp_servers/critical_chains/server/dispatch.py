"""Name -> handler table used by the stdio server."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .types import ToolResult

if TYPE_CHECKING:
    from ..computed_cache import ComputedCache
    from ..config import ChainsConfig

logger = logging.getLogger("mcp.critical_chains.registry")

HandlerFunc = Callable[["ChainsConfig", "ComputedCache", dict[str, Any]], ToolResult]


class ToolRegistry:
    """Registry for tool handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, HandlerFunc] = {}

    def register(self, name: str, handler: HandlerFunc) -> None:
        self._handlers[name] = handler

    def register_many(self, handlers: dict[str, HandlerFunc]) -> None:
        self._handlers.update(handlers)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def dispatch(
        self,
        name: str,
        config: ChainsConfig,
        cache: ComputedCache,
        arguments: dict[str, Any],
    ) -> ToolResult:
        """Run the handler registered under ``name`` (KeyError if none)."""
        handler = self._handlers.get(name)
        if handler is None:
            raise KeyError(f"Unknown tool: {name}")
        return handler(config, cache, arguments)

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers.keys())

    def __len__(self) -> int:
        return len(self._handlers)


def create_default_registry() -> ToolRegistry:
    from .handlers import ALL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(ALL_HANDLERS)
    logger.info("Registered %d tool handlers", len(registry))
    return registry


__all__ = ["HandlerFunc", "ToolRegistry", "create_default_registry", "logger"]
