"""Binary pass/fail scoring of chain durations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .metrics import ChainSummary, longest_chain

DEFAULT_THRESHOLD_MS = 1000.0


@dataclass(frozen=True, slots=True)
class ChainScore:
    score: int
    display_value: str
    long_chain_count: int


def format_chain_count(count: int) -> str:
    return "1 chain found" if count == 1 else f"{count} chains found"


def score_chains(summaries: Sequence[ChainSummary], *, threshold_ms: float = DEFAULT_THRESHOLD_MS) -> ChainScore:
    """Pass (1) when the longest chain is at/under the threshold, else fail (0)."""
    longest = longest_chain(summaries)
    long_count = sum(1 for s in summaries if s.duration > threshold_ms)
    if longest is None or longest.duration <= threshold_ms:
        return ChainScore(score=1, display_value="", long_chain_count=long_count)
    return ChainScore(score=0, display_value=format_chain_count(long_count), long_chain_count=long_count)


__all__ = ["DEFAULT_THRESHOLD_MS", "ChainScore", "format_chain_count", "score_chains"]
