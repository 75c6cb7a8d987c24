from __future__ import annotations

from typing import Any

import pytest

from mcp_servers.critical_chains.chains import (
    MainResourceNotFoundError,
    build_chains,
    is_critical,
    normalize_records,
)
from mcp_servers.critical_chains.network_records import NetworkRequestRecord

ROOT = "https://example.com/"


def _rec(url: str, start: float, end: float, *, parent: str | None = None, **extra: Any) -> NetworkRequestRecord:
    data: dict[str, Any] = {
        "url": url,
        "rendererStartTime": start,
        "responseHeadersEndTime": extra.pop("headers_end", end),
        "networkEndTime": end,
        "priority": extra.pop("priority", "VeryHigh"),
        **extra,
    }
    if parent is not None:
        data["initiator"] = {"type": "parser", "url": parent}
    return NetworkRequestRecord.from_dict(data)


def _build(records: list[NetworkRequestRecord], url: str = ROOT) -> dict[str, Any]:
    return build_chains(normalize_records(records, [url])).structure()


# ═══════════════════════════════════════════════════════════════════════════════
# NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════════


def test_normalize_resolves_root_by_url_ignoring_fragment() -> None:
    records = [_rec("https://example.com/a.js", 0, 10, parent=ROOT), _rec(ROOT, 5, 100)]
    normalized = normalize_records(records, [None, "https://example.com/#top"])
    assert normalized.root.url == ROOT
    assert set(normalized.by_url) == {ROOT, "https://example.com/a.js"}


def test_normalize_falls_back_to_record_starting_at_zero() -> None:
    records = [_rec("https://cdn.test/x.js", 3, 9), _rec("https://other.test/", 0, 50)]
    normalized = normalize_records(records, ["https://example.com/"])
    assert normalized.root.url == "https://other.test/"


def test_normalize_without_root_raises() -> None:
    with pytest.raises(MainResourceNotFoundError) as exc_info:
        normalize_records([], ["https://example.com/"])
    assert "Unable to identify the main resource" in str(exc_info.value)

    with pytest.raises(MainResourceNotFoundError):
        normalize_records([_rec("https://cdn.test/x.js", 3, 9)], ["https://example.com/"])


def test_normalize_collapses_duplicates_to_earliest_consistent_record() -> None:
    late = _rec("https://example.com/a.js", 40, 60, parent=ROOT)
    early_inconsistent = _rec("https://example.com/a.js", 20, 30, parent=ROOT, headers_end=35)
    early_consistent = _rec("https://example.com/a.js", 20, 50, parent=ROOT, headers_end=25)
    normalized = normalize_records([_rec(ROOT, 0, 10), late, early_consistent, early_inconsistent], [ROOT])
    assert normalized.by_url["https://example.com/a.js"] is early_consistent

    # Full tie: the later duplicate wins.
    twin_a = _rec("https://example.com/b.js", 20, 50, parent=ROOT, transferSize=1)
    twin_b = _rec("https://example.com/b.js", 20, 50, parent=ROOT, transferSize=2)
    normalized = normalize_records([_rec(ROOT, 0, 10), twin_a, twin_b], [ROOT])
    assert normalized.by_url["https://example.com/b.js"] is twin_b


def test_normalize_skips_malformed_records() -> None:
    broken = NetworkRequestRecord.from_dict({"url": "https://example.com/x.js", "priority": "VeryHigh"})
    no_url = NetworkRequestRecord.from_dict({"rendererStartTime": 1, "networkEndTime": 2})
    normalized = normalize_records([_rec(ROOT, 0, 10), broken, no_url], [ROOT])
    assert list(normalized.by_url) == [ROOT]
    assert normalized.skipped == 2
    assert normalized.notes
    assert normalized.root_is_measurable


def test_normalize_prefers_finished_main_document_over_earlier_aborted_one() -> None:
    aborted = NetworkRequestRecord.from_dict({"url": ROOT, "rendererStartTime": 1000, "priority": "VeryHigh"})
    finished = _rec(ROOT, 1100, 1600)
    child = _rec("https://example.com/a.js", 1200, 1500, parent=ROOT)

    for records in ([aborted, finished, child], [finished, aborted, child]):
        normalized = normalize_records(records, [ROOT])
        assert normalized.root is finished
        assert normalized.root_is_measurable
        assert normalized.by_url[ROOT] is finished
        assert normalized.skipped == 1
        assert build_chains(normalized).structure() == {ROOT: {"https://example.com/a.js": {}}}


def test_normalize_fallback_root_prefers_finished_record() -> None:
    aborted = NetworkRequestRecord.from_dict({"url": "https://a.test/", "rendererStartTime": 0, "priority": "VeryHigh"})
    finished = _rec("https://b.test/", 0, 50)
    normalized = normalize_records([aborted, finished], ["https://example.com/"])
    assert normalized.root is finished


def test_normalize_keeps_unmeasurable_root() -> None:
    root = NetworkRequestRecord.from_dict({"url": ROOT, "priority": "VeryHigh"})
    normalized = normalize_records([root], [ROOT])
    assert normalized.root is root
    assert not normalized.root_is_measurable


# ═══════════════════════════════════════════════════════════════════════════════
# CRITICALITY
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("extra", "expected"),
    [
        ({"priority": "VeryHigh"}, True),
        ({"priority": "High"}, True),
        ({"priority": "Medium"}, False),
        ({"priority": "VeryLow"}, False),
        ({"priority": "Bogus"}, False),
        ({"priority": "High", "resourceType": "XHR"}, False),
        ({"priority": "High", "resourceType": "Image"}, False),
        ({"priority": "High", "mimeType": "image/svg+xml"}, False),
        ({"priority": "High", "isLinkPreload": True}, False),
        ({"priority": "VeryHigh", "resourceType": "Document", "frameId": "child"}, False),
        ({"priority": "VeryHigh", "resourceType": "Document", "frameId": "main"}, True),
        ({"priority": "High", "resourceType": "Script", "frameId": "child"}, True),
    ],
)
def test_is_critical(extra: dict[str, Any], expected: bool) -> None:
    root = _rec(ROOT, 0, 10, frameId="main", resourceType="Document")
    record = _rec("https://example.com/r", 1, 2, parent=ROOT, **extra)
    assert is_critical(record, root) is expected


def test_main_resource_is_always_critical() -> None:
    root = _rec(ROOT, 0, 10, priority="Low")
    assert is_critical(root, root)


# ═══════════════════════════════════════════════════════════════════════════════
# TREE CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════════════


def test_build_nested_chains() -> None:
    records = [
        _rec(ROOT, 0, 100),
        _rec("https://example.com/a.css", 110, 200, parent=ROOT),
        _rec("https://example.com/font.woff2", 210, 300, parent="https://example.com/a.css", priority="High"),
        _rec("https://example.com/b.js", 120, 250, parent=ROOT),
    ]
    assert _build(records) == {
        ROOT: {
            "https://example.com/a.css": {"https://example.com/font.woff2": {}},
            "https://example.com/b.js": {},
        }
    }


def test_build_prunes_low_priority_subtrees() -> None:
    records = [
        _rec(ROOT, 0, 100),
        _rec("https://example.com/lazy.js", 110, 200, parent=ROOT, priority="Low"),
        # Critical itself, but its initiator is not on the tree.
        _rec("https://example.com/under-lazy.css", 210, 300, parent="https://example.com/lazy.js"),
        # No initiator at all.
        _rec("https://example.com/orphan.js", 50, 60),
    ]
    assert _build(records) == {ROOT: {}}


def test_build_breaks_self_and_mutual_cycles() -> None:
    records = [
        _rec(ROOT, 0, 100, parent=ROOT),
        _rec("https://example.com/a.js", 110, 200, parent="https://example.com/b.js"),
        _rec("https://example.com/b.js", 120, 210, parent="https://example.com/a.js"),
        _rec("https://example.com/c.js", 130, 220, parent="https://example.com/c.js"),
        _rec("https://example.com/d.js", 140, 230, parent=ROOT),
    ]
    root = build_chains(normalize_records(records, [ROOT]))
    assert root.structure() == {ROOT: {"https://example.com/d.js": {}}}
    assert root.node_count == 2


def test_build_cycle_back_to_root_is_cut() -> None:
    records = [
        _rec(ROOT, 0, 100, parent="https://example.com/a.js"),
        _rec("https://example.com/a.js", 110, 200, parent=ROOT),
    ]
    root = build_chains(normalize_records(records, [ROOT]))
    assert root.structure() == {ROOT: {"https://example.com/a.js": {}}}
    urls = [n.url for n in root.walk()]
    assert len(urls) == len(set(urls))


def test_build_accepts_overlapping_child_timing() -> None:
    records = [
        _rec(ROOT, 0, 500),
        _rec("https://example.com/early.js", 100, 200, parent=ROOT),
    ]
    assert _build(records) == {ROOT: {"https://example.com/early.js": {}}}


def test_build_is_idempotent() -> None:
    records = [
        _rec(ROOT, 0, 100),
        _rec("https://example.com/a.css", 110, 200, parent=ROOT),
        _rec("https://example.com/b.js", 120, 250, parent=ROOT),
        _rec("https://example.com/c.js", 260, 300, parent="https://example.com/b.js"),
    ]
    normalized = normalize_records(records, [ROOT])
    assert build_chains(normalized).structure() == build_chains(normalized).structure()
    assert _build(records) == _build(list(records))


def test_build_long_linear_chain_is_not_recursive() -> None:
    records = [_rec(ROOT, 0, 1)]
    for i in range(3000):
        parent = ROOT if i == 0 else f"https://example.com/{i - 1}.js"
        records.append(_rec(f"https://example.com/{i}.js", i + 1, i + 2, parent=parent))
    root = build_chains(normalize_records(records, [ROOT]))
    assert root.node_count == 3001
