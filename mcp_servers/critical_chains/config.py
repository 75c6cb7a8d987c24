from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from .chains.scorer import DEFAULT_THRESHOLD_MS

DEFAULT_PASS_NAME = "defaultPass"
DEFAULT_CACHE_ENTRIES = 64


def parse_bool(raw: Any, *, default: bool = False) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_threshold(raw: Any, default: float) -> float:
    try:
        if raw is None or isinstance(raw, bool):
            raise ValueError
        value = float(str(raw).strip())
    except ValueError:
        return default
    if value != value or value < 0:
        return default
    return value


@dataclass
class ChainsConfig:
    threshold_ms: float = DEFAULT_THRESHOLD_MS
    skip_verification: bool = False
    pass_name: str = DEFAULT_PASS_NAME
    cache_entries: int = DEFAULT_CACHE_ENTRIES

    @classmethod
    def from_env(cls) -> ChainsConfig:
        threshold = _parse_threshold(os.environ.get("MCP_CHAINS_THRESHOLD_MS"), DEFAULT_THRESHOLD_MS)
        skip = parse_bool(os.environ.get("MCP_CHAINS_SKIP_VERIFICATION"))
        pass_name = (os.environ.get("MCP_CHAINS_PASS") or "").strip() or DEFAULT_PASS_NAME
        try:
            entries = int(os.environ.get("MCP_CHAINS_CACHE_ENTRIES", str(DEFAULT_CACHE_ENTRIES)))
        except ValueError:
            entries = DEFAULT_CACHE_ENTRIES
        return cls(
            threshold_ms=threshold,
            skip_verification=skip,
            pass_name=pass_name,
            cache_entries=max(0, entries),
        )

    def with_options(self, options: Mapping[str, Any] | None) -> ChainsConfig:
        """Overlay per-call audit options (camelCase keys)."""
        if not options:
            return self
        changes: dict[str, Any] = {}
        if "thresholdMs" in options:
            changes["threshold_ms"] = _parse_threshold(options.get("thresholdMs"), self.threshold_ms)
        if "skipVerification" in options:
            changes["skip_verification"] = parse_bool(options.get("skipVerification"), default=self.skip_verification)
        if isinstance(options.get("passName"), str) and options["passName"].strip():
            changes["pass_name"] = options["passName"].strip()
        return replace(self, **changes) if changes else self
