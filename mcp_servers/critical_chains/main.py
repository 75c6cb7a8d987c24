"""
Stdio MCP server for the critical request chains audit.

One JSON-RPC frame per line on stdin/stdout; logs go to stderr.
Tool handlers live in server/handlers and are looked up via server/dispatch.py.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .chains.base import AuditError
from .computed_cache import ComputedCache
from .config import ChainsConfig
from .server.contract import (
    DEFAULT_PROTOCOL_VERSION,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    initialize_result,
    select_protocol,
    tools_list,
)
from .server.dispatch import create_default_registry
from .server.redaction import redact_tool_arguments
from .server.types import ToolResult

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("mcp.critical_chains")

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601


def _send(frame: dict[str, Any]) -> None:
    sys.stdout.buffer.write(json.dumps(frame, ensure_ascii=False).encode() + b"\n")
    sys.stdout.buffer.flush()


def _reply(request_id: Any, result: dict[str, Any]) -> None:
    _send({"jsonrpc": "2.0", "id": request_id, "result": result})


def _fail(request_id: Any, code: int, message: str) -> None:
    _send({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})


def _next_frame() -> dict[str, Any] | None:
    """Next JSON object from stdin; None at EOF. Bad frames are answered and skipped."""
    for raw in iter(sys.stdin.buffer.readline, b""):
        raw = raw.strip()
        if not raw:
            continue
        try:
            frame = json.loads(raw.decode())
        except ValueError:
            logger.error("invalid_json_frame len=%d", len(raw))
            _fail(None, PARSE_ERROR, "Parse error")
            continue
        if isinstance(frame, dict):
            return frame
    return None


class McpServer:
    """Holds config, the shared computed cache and the tool registry."""

    def __init__(self, config: ChainsConfig | None = None) -> None:
        self.config = config or ChainsConfig.from_env()
        self.cache = ComputedCache(max_entries=self.config.cache_entries)
        self.registry = create_default_registry()
        self._methods = {
            "initialize": self._on_initialize,
            "tools/list": self._on_tools_list,
            "list_tools": self._on_tools_list,
            "tools/call": self._on_tools_call,
            "call_tool": self._on_tools_call,
            "ping": lambda request_id, params: _reply(request_id, {"pong": True}),
        }

    def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        try:
            logger.info("tool=%s args=%s", name, redact_tool_arguments(name, arguments))
            if not name:
                return ToolResult.error("Missing tool name")
            if not self.registry.has(name):
                return ToolResult.error(f"Unknown tool: {name}", tool=name)
            return self.registry.dispatch(name, self.config, self.cache, arguments)
        except AuditError as e:
            logger.info("audit_error audit=%s action=%s reason=%s", e.audit, e.action, e.reason)
            return ToolResult.error(e.reason, tool=name, suggestion=e.suggestion, details=e.details)
        except Exception as exc:
            logger.exception("tool_call_failed tool=%s", name)
            return ToolResult.error(str(exc), tool=name)

    def _on_initialize(self, request_id: Any, params: dict[str, Any]) -> None:
        _reply(request_id, initialize_result(select_protocol(params.get("protocolVersion"))))

    def _on_tools_list(self, request_id: Any, params: dict[str, Any]) -> None:
        _reply(request_id, {"tools": tools_list()})

    def _on_tools_call(self, request_id: Any, params: dict[str, Any]) -> None:
        arguments = params.get("arguments") or params.get("args") or {}
        if not isinstance(arguments, dict):
            result = ToolResult.error("Tool arguments must be an object", tool=params.get("name") or None)
        else:
            result = self.call_tool(params.get("name") or "", arguments)
        _reply(request_id, {"content": result.to_content_list(), "isError": result.is_error})

    def dispatch(self, message: dict[str, Any]) -> None:
        if not message:
            return
        method = message.get("method")
        if isinstance(method, str) and method.startswith("notifications/"):
            return
        params = message.get("params")
        if not isinstance(params, dict):
            params = {}
        handler = self._methods.get(method) if isinstance(method, str) else None
        if handler is None:
            _fail(message.get("id"), METHOD_NOT_FOUND, f"Method {method} not found")
            return
        handler(message.get("id"), params)


def main() -> None:
    server = McpServer()
    while (frame := _next_frame()) is not None:
        server.dispatch(frame)


if __name__ == "__main__":
    main()
