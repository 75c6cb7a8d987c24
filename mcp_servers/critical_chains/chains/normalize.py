"""Record validation, duplicate collapsing and main-resource resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from urllib.parse import urldefrag

from ..network_records import NetworkRequestRecord
from .base import MainResourceNotFoundError

logger = logging.getLogger("mcp.critical_chains.normalize")


@dataclass(slots=True)
class NormalizedRecords:
    """Well-formed records indexed by URL plus the resolved main resource."""

    by_url: dict[str, NetworkRequestRecord]
    root: NetworkRequestRecord
    skipped: int = 0
    notes: list[str] = field(default_factory=list)

    @property
    def root_is_measurable(self) -> bool:
        return is_well_formed(self.root)


def is_well_formed(record: NetworkRequestRecord) -> bool:
    """A record needs a URL, a start time and at least one end time."""
    if not record.url:
        return False
    if record.renderer_start_time is None:
        return False
    return record.network_end_time is not None or record.response_headers_end_time is not None


def _timing_consistent(record: NetworkRequestRecord) -> bool:
    end = record.network_end_time
    headers_end = record.response_headers_end_time
    if end is None or headers_end is None:
        return False
    return headers_end <= end


def _preference_key(record: NetworkRequestRecord) -> tuple[float, int]:
    start = record.renderer_start_time
    return (start if start is not None else float("inf"), 0 if _timing_consistent(record) else 1)


def prefer(current: NetworkRequestRecord, candidate: NetworkRequestRecord) -> NetworkRequestRecord:
    """Pick the duplicate more plausibly on the critical path.

    Earliest start wins, then consistent timing (headers end before network end).
    On a full tie the later record (``candidate``) wins.
    """
    return candidate if _preference_key(candidate) <= _preference_key(current) else current


def _prefer_root(current: NetworkRequestRecord, candidate: NetworkRequestRecord) -> NetworkRequestRecord:
    # A finished attempt at the document beats an earlier one that never completed.
    current_ok, candidate_ok = is_well_formed(current), is_well_formed(candidate)
    if current_ok != candidate_ok:
        return candidate if candidate_ok else current
    return prefer(current, candidate)


def _same_document(a: str, b: str) -> bool:
    return urldefrag(a)[0] == urldefrag(b)[0]


def find_main_resource(
    records: Sequence[NetworkRequestRecord], page_urls: Iterable[str | None]
) -> NetworkRequestRecord | None:
    """Match the page URL (fragments ignored), else the record started at t=0.

    Among several candidates a record with usable timing is always preferred.
    """
    for page_url in page_urls:
        if not (isinstance(page_url, str) and page_url):
            continue
        match: NetworkRequestRecord | None = None
        for record in records:
            if record.url and _same_document(record.url, page_url):
                match = record if match is None else _prefer_root(match, record)
        if match is not None:
            return match

    match = None
    for record in records:
        if record.renderer_start_time == 0:
            match = record if match is None else _prefer_root(match, record)
    return match


def normalize_records(
    records: Iterable[NetworkRequestRecord], page_urls: Iterable[str | None]
) -> NormalizedRecords:
    """Index records by URL and resolve the root.

    Malformed records are skipped rather than failing the audit. Raises
    MainResourceNotFoundError when no root can be identified.
    """
    records = list(records)
    root = find_main_resource(records, page_urls)
    if root is None:
        raise MainResourceNotFoundError(details={"records": len(records)})

    by_url: dict[str, NetworkRequestRecord] = {}
    skipped = 0
    for record in records:
        if not is_well_formed(record):
            skipped += 1
            logger.debug("skipping malformed record url=%s", record.url or "<empty>")
            continue
        existing = by_url.get(record.url)
        by_url[record.url] = record if existing is None else prefer(existing, record)

    notes: list[str] = []
    if skipped:
        notes.append(f"{skipped} request(s) without usable timing were ignored")
    if is_well_formed(root):
        # The root must be the exact record the chains hang off.
        by_url[root.url] = root

    return NormalizedRecords(by_url=by_url, root=root, skipped=skipped, notes=notes)


__all__ = ["NormalizedRecords", "find_main_resource", "is_well_formed", "normalize_records", "prefer"]
