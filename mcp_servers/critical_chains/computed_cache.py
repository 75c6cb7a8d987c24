"""Memoization helpers for computed artifacts.

The audit treats its cache as an opaque, caller-owned mapping: look up, and on a
miss compute and store. Nothing here assumes exclusive access.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable, Hashable, MutableMapping
from typing import Any, TypeVar

T = TypeVar("T")


def fingerprint(value: Any) -> str:
    """Stable sha256 of a JSON-ish value (key order independent)."""
    try:
        text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    return hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()


def get_or_compute(cache: MutableMapping[Any, Any], key: Hashable, compute: Callable[[], T]) -> T:
    try:
        return cache[key]
    except KeyError:
        pass
    value = compute()
    cache[key] = value
    return value


class ComputedCache(dict):
    """Process-wide cache bounded by entry count (oldest evicted first)."""

    def __init__(self, max_entries: int = 64) -> None:
        super().__init__()
        self.max_entries = max(0, int(max_entries))

    def __setitem__(self, key: Hashable, value: Any) -> None:
        if self.max_entries == 0:
            return
        super().__setitem__(key, value)
        if len(self) > self.max_entries:
            # Insertion order is preserved, so the head holds the oldest entries.
            drop = len(self) - self.max_entries
            for k in list(self.keys())[:drop]:
                self.pop(k, None)


__all__ = ["ComputedCache", "fingerprint", "get_or_compute"]
