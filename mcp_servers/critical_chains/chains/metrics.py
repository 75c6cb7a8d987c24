"""Per-chain duration / transfer size and longest-chain selection."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ..network_records import NetworkRequestRecord
from .builder import ChainNode

Chain = tuple[ChainNode, ...]


def request_end_time(record: NetworkRequestRecord, *, skip_verification: bool = False) -> float | None:
    """End of a request in ms.

    With ``skip_verification`` the header end replaces a network end that is
    missing or earlier than it (ms <-> s round trips drift by a hair).
    """
    end = record.network_end_time
    headers_end = record.response_headers_end_time
    if skip_verification and headers_end is not None and (end is None or end < headers_end):
        return headers_end
    return end if end is not None else headers_end


@dataclass(frozen=True, slots=True)
class ChainSummary:
    nodes: Chain
    duration: float
    transfer_size: int

    @property
    def length(self) -> int:
        return len(self.nodes)

    @property
    def urls(self) -> list[str]:
        return [n.url for n in self.nodes]


def iter_chains(root: ChainNode) -> Iterator[Chain]:
    """Yield every root-to-leaf path, depth-first in child insertion order."""
    stack: list[Chain] = [(root,)]
    while stack:
        path = stack.pop()
        children = list(path[-1].children.values())
        if not children:
            yield path
            continue
        for child in reversed(children):
            stack.append((*path, child))


def summarize_chain(chain: Chain, *, skip_verification: bool = False) -> ChainSummary:
    root = chain[0].record
    leaf = chain[-1].record
    start = root.renderer_start_time
    end = request_end_time(leaf, skip_verification=skip_verification)
    duration = max(0.0, end - start) if start is not None and end is not None else 0.0
    return ChainSummary(
        nodes=chain,
        duration=duration,
        transfer_size=sum(n.record.transfer_size for n in chain),
    )


def summarize_chains(root: ChainNode, *, skip_verification: bool = False) -> list[ChainSummary]:
    return [summarize_chain(c, skip_verification=skip_verification) for c in iter_chains(root)]


def longest_chain(summaries: Iterable[ChainSummary]) -> ChainSummary | None:
    """Greatest duration, then greater transfer size, then first seen."""
    best: ChainSummary | None = None
    for summary in summaries:
        if best is None or (summary.duration, summary.transfer_size) > (best.duration, best.transfer_size):
            best = summary
    return best


__all__ = [
    "Chain",
    "ChainSummary",
    "iter_chains",
    "longest_chain",
    "request_end_time",
    "summarize_chain",
    "summarize_chains",
]
