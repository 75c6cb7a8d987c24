"""
Tool handlers organized by domain.

All handlers follow the signature: (config, cache, arguments) -> ToolResult
"""

from .chains import CHAINS_HANDLERS

ALL_HANDLERS: dict = {
    **CHAINS_HANDLERS,
}

__all__ = ["ALL_HANDLERS", "CHAINS_HANDLERS"]
