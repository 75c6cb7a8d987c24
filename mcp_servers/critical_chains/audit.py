"""Critical request chains audit (orchestration + result shaping).

Flow:
  devtools log -> network records -> normalized records -> chain tree
  -> per-chain metrics -> score

Both derived artifacts (network records, chain tree) are memoized in the
caller-owned ``context.computedCache``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from .chains import (
    AUDIT_ID,
    ChainNode,
    NormalizedRecords,
    build_chains,
    longest_chain,
    normalize_records,
    request_end_time,
    score_chains,
    summarize_chains,
)
from .computed_cache import fingerprint, get_or_compute
from .config import DEFAULT_PASS_NAME, ChainsConfig
from .network_records import NetworkRequestRecord, network_records_from_devtools_log

logger = logging.getLogger("mcp.critical_chains.audit")

DETAILS_TYPE = "criticalrequestchain"


@dataclass(slots=True)
class AuditArtifacts:
    """Inputs gathered upstream for one page load."""

    devtools_logs: dict[str, list[Any]] = field(default_factory=dict)
    traces: dict[str, Any] = field(default_factory=dict)
    main_document_url: str | None = None
    final_displayed_url: str | None = None
    requested_url: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuditArtifacts:
        logs = data.get("devtoolsLogs")
        traces = data.get("traces")
        urls = data.get("URL")
        if not isinstance(urls, Mapping):
            urls = {}

        def _url(key: str) -> str | None:
            v = urls.get(key)
            return v if isinstance(v, str) and v else None

        return cls(
            devtools_logs=(
                {str(k): v for k, v in logs.items() if isinstance(v, list)} if isinstance(logs, Mapping) else {}
            ),
            traces=dict(traces) if isinstance(traces, Mapping) else {},
            main_document_url=_url("mainDocumentUrl"),
            final_displayed_url=_url("finalDisplayedUrl"),
            requested_url=_url("requestedUrl"),
        )

    @classmethod
    def coerce(cls, value: AuditArtifacts | Mapping[str, Any]) -> AuditArtifacts:
        return value if isinstance(value, AuditArtifacts) else cls.from_dict(value)

    @property
    def page_urls(self) -> list[str | None]:
        """Root-identification candidates, most specific first."""
        return [self.main_document_url, self.final_displayed_url, self.requested_url]


@dataclass(slots=True)
class AuditContext:
    computed_cache: MutableMapping[Any, Any] = field(default_factory=dict)
    config: ChainsConfig = field(default_factory=ChainsConfig)

    @classmethod
    def coerce(cls, value: AuditContext | Mapping[str, Any] | None) -> AuditContext:
        if isinstance(value, AuditContext):
            return value
        if value is None:
            return cls()
        cache = value.get("computedCache", value.get("computed_cache"))
        if cache is None:
            cache = {}
        config = value.get("config")
        if not isinstance(config, ChainsConfig):
            config = ChainsConfig()
        options = value.get("options")
        return cls(computed_cache=cache, config=config.with_options(options if isinstance(options, Mapping) else None))


@dataclass(slots=True)
class AuditResult:
    score: int | None
    display_value: str
    details: dict[str, Any]
    explanation: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": AUDIT_ID,
            "score": self.score,
            "displayValue": self.display_value,
            **({"explanation": self.explanation} if self.explanation else {}),
            **({"warnings": list(self.warnings)} if self.warnings else {}),
            "details": self.details,
        }


@dataclass(slots=True)
class ChainsComputation:
    normalized: NormalizedRecords
    root: ChainNode


def serialize_chains(root: ChainNode, *, skip_verification: bool = False) -> dict[str, Any]:
    """Nested ``{url: {"request": {...}, "children": {...}}}`` report shape."""
    out: dict[str, Any] = {}
    stack: list[tuple[ChainNode, dict[str, Any]]] = [(root, out)]
    while stack:
        node, target = stack.pop()
        record = node.record
        children: dict[str, Any] = {}
        target[node.url] = {
            "request": {
                "url": record.url,
                "startTime": record.renderer_start_time,
                "endTime": request_end_time(record, skip_verification=skip_verification),
                "responseReceivedTime": record.response_headers_end_time,
                "transferSize": record.transfer_size,
                "failed": record.failed,
                "fromCache": record.from_cache,
            },
            "children": children,
        }
        for child in reversed(list(node.children.values())):
            stack.append((child, children))
    return out


class CriticalRequestChains:
    """Flags long chains of render-critical requests hanging off the main document."""

    id = AUDIT_ID
    DEFAULT_PASS = DEFAULT_PASS_NAME
    title = "Avoid chaining critical requests"
    failure_title = "Critical request chains are long"
    description = (
        "Critical request chains show which resources are loaded with a high priority. "
        "Reduce the length of chains, the download size of resources, or defer the "
        "download of unnecessary resources to improve page load."
    )

    @staticmethod
    def compute_network_records(
        devtools_log: list[Any], cache: MutableMapping[Any, Any], *, log_key: str | None = None
    ) -> list[NetworkRequestRecord]:
        key = ("NetworkRecords", log_key or fingerprint(devtools_log))
        return get_or_compute(cache, key, lambda: network_records_from_devtools_log(devtools_log))

    @classmethod
    def compute_chains(cls, artifacts: AuditArtifacts, context: AuditContext) -> ChainsComputation:
        pass_name = context.config.pass_name
        devtools_log = artifacts.devtools_logs.get(pass_name) or []
        trace = artifacts.traces.get(pass_name)
        log_key = fingerprint(devtools_log)
        key = (
            "CriticalRequestChains",
            log_key,
            fingerprint(trace) if trace is not None else None,
            tuple(u or "" for u in artifacts.page_urls),
        )

        def _compute() -> ChainsComputation:
            records = cls.compute_network_records(devtools_log, context.computed_cache, log_key=log_key)
            normalized = normalize_records(records, artifacts.page_urls)
            return ChainsComputation(normalized=normalized, root=build_chains(normalized))

        return get_or_compute(context.computed_cache, key, _compute)

    @classmethod
    async def audit(
        cls,
        artifacts: AuditArtifacts | Mapping[str, Any],
        context: AuditContext | Mapping[str, Any] | None = None,
    ) -> AuditResult:
        """Run the audit. Raises MainResourceNotFoundError when there is no root."""
        artifacts = AuditArtifacts.coerce(artifacts)
        context = AuditContext.coerce(context)
        config = context.config

        computed = cls.compute_chains(artifacts, context)
        normalized = computed.normalized
        warnings = list(normalized.notes)

        if not normalized.root_is_measurable:
            logger.info("main resource has no usable timing url=%s", normalized.root.url)
            return AuditResult(
                score=None,
                display_value="",
                explanation="The main resource has no usable timing data",
                warnings=warnings,
                details={
                    "type": DETAILS_TYPE,
                    "longestChain": {"duration": 0.0, "length": 0, "transferSize": 0},
                    "chains": {},
                },
            )

        summaries = summarize_chains(computed.root, skip_verification=config.skip_verification)
        longest = longest_chain(summaries)
        scored = score_chains(summaries, threshold_ms=config.threshold_ms)

        logger.info(
            "critical chains url=%s chains=%d longest_ms=%.1f score=%s",
            normalized.root.url,
            len(summaries),
            longest.duration if longest else 0.0,
            scored.score,
        )

        return AuditResult(
            score=scored.score,
            display_value=scored.display_value,
            warnings=warnings,
            details={
                "type": DETAILS_TYPE,
                "longestChain": {
                    "duration": longest.duration if longest else 0.0,
                    "length": longest.length if longest else 0,
                    "transferSize": longest.transfer_size if longest else 0,
                },
                "chains": serialize_chains(computed.root, skip_verification=config.skip_verification),
            },
        )


async def audit(
    artifacts: AuditArtifacts | Mapping[str, Any],
    context: AuditContext | Mapping[str, Any] | None = None,
) -> AuditResult:
    return await CriticalRequestChains.audit(artifacts, context)


__all__ = [
    "AuditArtifacts",
    "AuditContext",
    "AuditResult",
    "ChainsComputation",
    "CriticalRequestChains",
    "audit",
    "serialize_chains",
]
