"""Tool schema definitions."""

from __future__ import annotations

from typing import Any

CRITICAL_CHAINS_TOOL: dict[str, Any] = {
    "name": "critical_chains",
    "description": """Audit render-critical request chains of a recorded page load.
USAGE:
- Inline log: critical_chains(url="https://example.com/", devtools_log=[{method, params}, ...])
- From file:  critical_chains(url="https://example.com/", devtools_log_path="/tmp/page.devtoolslog.json")
- Custom threshold: critical_chains(..., threshold_ms=2000)

Passes (score=1) when the longest chain of VeryHigh/High priority requests rooted at the
main document finishes within threshold_ms (default 1000).

RESPONSE EXAMPLE:
{
  "id": "critical-request-chains",
  "score": 0,
  "displayValue": "2 chains found",
  "details": {
    "type": "criticalrequestchain",
    "longestChain": {"duration": 17000.0, "length": 2, "transferSize": 0},
    "chains": {"https://example.com/": {"request": {...}, "children": {...}}}
  }
}""",
    "inputSchema": {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "Main document URL of the audited page"},
            "final_url": {"type": "string", "description": "Final displayed URL (after client redirects)"},
            "devtools_log": {
                "type": "array",
                "items": {"type": "object"},
                "description": "Devtools log: CDP events as {method, params}",
            },
            "devtools_log_path": {
                "type": "string",
                "description": "Path to a devtools log JSON file (.json or .json.gz)",
            },
            "threshold_ms": {
                "type": "number",
                "minimum": 0,
                "description": "Longest acceptable chain duration in ms (default from MCP_CHAINS_THRESHOLD_MS or 1000)",
            },
            "skip_verification": {
                "type": "boolean",
                "default": False,
                "description": "Tolerate header-end/network-end inconsistencies from timestamp round trips",
            },
        },
        "required": ["url"],
    },
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [CRITICAL_CHAINS_TOOL]

__all__ = ["CRITICAL_CHAINS_TOOL", "TOOL_DEFINITIONS"]
