"""
Critical request chain engine.

Provides:
- normalize_records: validate/index request records and resolve the main resource
- build_chains: render-critical dependency tree rooted at the main resource
- summarize_chains / longest_chain: per-chain duration and transfer size
- score_chains: binary pass/fail against a duration threshold
"""

from .base import AUDIT_ID, AuditError, MainResourceNotFoundError
from .builder import ChainNode, build_chains, is_critical
from .metrics import ChainSummary, iter_chains, longest_chain, request_end_time, summarize_chains
from .normalize import NormalizedRecords, normalize_records
from .scorer import DEFAULT_THRESHOLD_MS, ChainScore, score_chains

__all__ = [
    "AUDIT_ID",
    "DEFAULT_THRESHOLD_MS",
    "AuditError",
    "ChainNode",
    "ChainScore",
    "ChainSummary",
    "MainResourceNotFoundError",
    "NormalizedRecords",
    "build_chains",
    "is_critical",
    "iter_chains",
    "longest_chain",
    "normalize_records",
    "request_end_time",
    "score_chains",
    "summarize_chains",
]
