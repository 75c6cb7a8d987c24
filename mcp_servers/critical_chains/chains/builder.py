"""Critical request chain forest construction.

Records only point *up* (``initiator.url``), so children are indexed by
initiator URL first and the tree is then grown breadth-first from the main
resource. Cycles (including self-initiation) are cut at attach time by checking
the prospective parent's ancestor set.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from ..network_records import NetworkRequestRecord
from .normalize import NormalizedRecords

logger = logging.getLogger("mcp.critical_chains.builder")

# High priority, yet never render-blocking.
_NON_CRITICAL_RESOURCE_TYPES = frozenset({"Image", "XHR", "Fetch", "EventSource"})


@dataclass(slots=True)
class ChainNode:
    record: NetworkRequestRecord
    children: dict[str, ChainNode] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.record.url

    def walk(self) -> Iterator[ChainNode]:
        """Pre-order traversal (self first)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(list(node.children.values())))

    def structure(self) -> dict[str, Any]:
        """Parent/child shape keyed by URL (no timing)."""
        out: dict[str, Any] = {}
        stack: list[tuple[ChainNode, dict[str, Any]]] = [(self, out)]
        while stack:
            node, target = stack.pop()
            subtree: dict[str, Any] = {}
            target[node.url] = subtree
            for child in node.children.values():
                stack.append((child, subtree))
        return out

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.walk())


def is_critical(record: NetworkRequestRecord, main_resource: NetworkRequestRecord) -> bool:
    """Whether a request belongs on the critical rendering path."""
    if record is main_resource or record.url == main_resource.url:
        return True
    if record.priority is None or not record.priority.is_render_critical:
        return False
    if record.is_link_preload:
        return False
    if record.resource_type in _NON_CRITICAL_RESOURCE_TYPES:
        return False
    if record.mime_type and record.mime_type.startswith("image/"):
        return False
    # Iframe documents load at high priority but do not block the parent's render.
    is_iframe = (
        record.resource_type == "Document"
        and record.frame_id is not None
        and main_resource.frame_id is not None
        and record.frame_id != main_resource.frame_id
    )
    return not is_iframe


def build_chains(normalized: NormalizedRecords) -> ChainNode:
    """Build the chain tree rooted at the main resource."""
    root_record = normalized.root

    by_initiator: dict[str, list[NetworkRequestRecord]] = {}
    dropped = 0
    for record in normalized.by_url.values():
        if record.url == root_record.url:
            continue
        parent_url = record.initiator_url
        if not parent_url or not is_critical(record, root_record):
            dropped += 1
            continue
        by_initiator.setdefault(parent_url, []).append(record)

    root = ChainNode(root_record)
    attached = {root.url}
    queue: deque[tuple[ChainNode, frozenset[str]]] = deque([(root, frozenset({root.url}))])
    cycles = 0
    while queue:
        node, ancestors = queue.popleft()
        for record in by_initiator.get(node.url, ()):
            if record.url in ancestors:
                cycles += 1
                continue
            if record.url in attached:
                continue
            child = ChainNode(record)
            node.children[record.url] = child
            attached.add(record.url)
            queue.append((child, ancestors | {record.url}))

    logger.debug("chains built: nodes=%d dropped=%d cycles_cut=%d", len(attached), dropped, cycles)
    return root


__all__ = ["ChainNode", "build_chains", "is_critical"]
