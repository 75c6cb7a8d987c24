"""Critical request chain handlers for the tool registry."""

from __future__ import annotations

import asyncio
import gzip
import json
from pathlib import Path
from typing import Any

from ...audit import AuditArtifacts, AuditContext, CriticalRequestChains
from ...chains.base import AUDIT_ID, AuditError
from ...computed_cache import ComputedCache
from ...config import ChainsConfig
from ..types import ToolResult


def _load_devtools_log(args: dict[str, Any]) -> list[Any]:
    inline = args.get("devtools_log")
    if isinstance(inline, list):
        return inline

    raw_path = args.get("devtools_log_path")
    if not (isinstance(raw_path, str) and raw_path.strip()):
        raise AuditError(
            audit=AUDIT_ID,
            action="load_devtools_log",
            reason="No devtools log provided",
            suggestion="Pass devtools_log (list of CDP events) or devtools_log_path",
        )

    path = Path(raw_path).expanduser()
    try:
        if path.suffix.lower() == ".gz":
            with gzip.open(path, "rt", encoding="utf-8") as fp:
                events = json.load(fp)
        else:
            events = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise AuditError(
            audit=AUDIT_ID,
            action="load_devtools_log",
            reason=f"Cannot read devtools log: {exc}",
            suggestion="Check that the path exists and holds a JSON list of CDP events",
            details={"path": str(path)},
        ) from exc

    if not isinstance(events, list):
        raise AuditError(
            audit=AUDIT_ID,
            action="load_devtools_log",
            reason="Devtools log must be a JSON list of events",
            suggestion="Export the log as [{method, params}, ...]",
            details={"path": str(path)},
        )
    return events


def handle_critical_chains(config: ChainsConfig, cache: ComputedCache, args: dict[str, Any]) -> ToolResult:
    """Run the critical request chains audit on a recorded page load."""
    url = args.get("url")
    if not (isinstance(url, str) and url.strip()):
        return ToolResult.error("Missing url", tool="critical_chains", suggestion="Pass the main document URL")
    url = url.strip()

    final_url = args.get("final_url") if isinstance(args.get("final_url"), str) else url
    options: dict[str, Any] = {}
    if args.get("threshold_ms") is not None:
        options["thresholdMs"] = args.get("threshold_ms")
    if args.get("skip_verification") is not None:
        options["skipVerification"] = args.get("skip_verification")

    pass_name = config.pass_name
    artifacts = AuditArtifacts(
        devtools_logs={pass_name: _load_devtools_log(args)},
        main_document_url=url,
        final_displayed_url=final_url,
        requested_url=url,
    )
    context = AuditContext(computed_cache=cache, config=config.with_options(options))
    result = asyncio.run(CriticalRequestChains.audit(artifacts, context))
    return ToolResult.json(result.to_dict())


CHAINS_HANDLERS: dict[str, Any] = {
    "critical_chains": handle_critical_chains,
}

__all__ = ["CHAINS_HANDLERS", "handle_critical_chains"]
