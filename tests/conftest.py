from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest


def records_to_devtools_log(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Turn camelCase record dicts (times in ms) into a minimal CDP devtools log."""
    events: list[dict[str, Any]] = []
    for idx, rec in enumerate(records):
        request_id = rec.get("requestId") or f"{idx + 1}.1"
        will_be_sent: dict[str, Any] = {
            "requestId": request_id,
            "timestamp": rec["rendererStartTime"] / 1000,
            "request": {
                "url": rec["url"],
                "method": "GET",
                "initialPriority": rec.get("priority", "Low"),
                **({"isLinkPreload": True} if rec.get("isLinkPreload") else {}),
            },
            "initiator": rec.get("initiator") or {"type": "other"},
        }
        if rec.get("resourceType"):
            will_be_sent["type"] = rec["resourceType"]
        if rec.get("frameId"):
            will_be_sent["frameId"] = rec["frameId"]
        events.append({"method": "Network.requestWillBeSent", "params": will_be_sent})

        events.append(
            {
                "method": "Network.responseReceived",
                "params": {
                    "requestId": request_id,
                    "timestamp": rec.get("responseHeadersEndTime", rec["networkEndTime"]) / 1000,
                    "type": rec.get("resourceType") or "Other",
                    "response": {"url": rec["url"], "status": 200, "mimeType": rec.get("mimeType") or "text/html"},
                },
            }
        )
        events.append(
            {
                "method": "Network.loadingFinished",
                "params": {
                    "requestId": request_id,
                    "timestamp": rec["networkEndTime"] / 1000,
                    "encodedDataLength": rec.get("transferSize", 0),
                },
            }
        )
    return events


@pytest.fixture
def devtools_log() -> Callable[[list[dict[str, Any]]], list[dict[str, Any]]]:
    return records_to_devtools_log


@pytest.fixture
def make_artifacts() -> Callable[..., dict[str, Any]]:
    def _make(records: list[dict[str, Any]], *, url: str | None = None) -> dict[str, Any]:
        final_url = url or (records[0]["url"] if records else "https://example.com")
        return {
            "traces": {"defaultPass": {"traceEvents": [{"name": "TracingStartedInBrowser", "ts": 0}]}},
            "devtoolsLogs": {"defaultPass": records_to_devtools_log(records)},
            "URL": {
                "requestedUrl": final_url,
                "mainDocumentUrl": final_url,
                "finalDisplayedUrl": final_url,
            },
        }

    return _make
