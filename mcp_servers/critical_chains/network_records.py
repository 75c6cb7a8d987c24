"""Network request records derived from a devtools log.

A devtools log is the ordered list of CDP events recorded during a page load
(``{"method": "Network.requestWillBeSent", "params": {...}}``).

Only the events that shape a request's timing, priority, size and initiator are
consumed:
- Network.requestWillBeSent (incl. redirect hops)
- Network.resourceChangedPriority
- Network.responseReceived / Network.requestServedFromCache
- Network.dataReceived
- Network.loadingFinished / Network.loadingFailed

CDP timestamps are monotonic seconds; records carry fractional milliseconds.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("mcp.critical_chains.network_records")


class Priority(enum.IntEnum):
    """Chrome resource load priority (ordered)."""

    VERY_LOW = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    VERY_HIGH = 4

    @classmethod
    def parse(cls, raw: Any) -> Priority | None:
        if isinstance(raw, Priority):
            return raw
        if not isinstance(raw, str):
            return None
        return _PRIORITY_BY_NAME.get(raw.strip().replace("_", "").lower())

    @property
    def label(self) -> str:
        return _PRIORITY_LABELS[self]

    @property
    def is_render_critical(self) -> bool:
        return self >= Priority.HIGH


_PRIORITY_LABELS: dict[Priority, str] = {
    Priority.VERY_LOW: "VeryLow",
    Priority.LOW: "Low",
    Priority.MEDIUM: "Medium",
    Priority.HIGH: "High",
    Priority.VERY_HIGH: "VeryHigh",
}
_PRIORITY_BY_NAME: dict[str, Priority] = {label.lower(): p for p, label in _PRIORITY_LABELS.items()}


def _num(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)):
        try:
            value = float(str(value).strip())
        except ValueError:
            return None
    value = float(value)
    return value if math.isfinite(value) else None


def _seconds_to_ms(value: Any) -> float | None:
    seconds = _num(value)
    return seconds * 1000.0 if seconds is not None else None


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _is_http_url(url: Any) -> bool:
    return isinstance(url, str) and url[:4].lower() == "http"


@dataclass(frozen=True, slots=True)
class Initiator:
    """Who caused a request to be issued (parser, script, redirect, ...)."""

    type: str
    url: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Initiator | None:
        """Parse a CDP initiator; the URL falls back to the top stack frame."""
        if not isinstance(data, Mapping):
            return None
        itype = _str_or_none(data.get("type")) or "other"
        url = _str_or_none(data.get("url"))

        # Script-initiated requests only carry the URL on the stack (async parents included).
        stack = data.get("stack")
        while url is None and isinstance(stack, Mapping):
            frames = stack.get("callFrames")
            if isinstance(frames, list):
                for frame in frames:
                    if isinstance(frame, Mapping) and _str_or_none(frame.get("url")):
                        url = frame["url"]
                        break
            stack = stack.get("parent")
        return cls(type=itype, url=url)


@dataclass(frozen=True, slots=True)
class NetworkRequestRecord:
    """One network request observed during page load (times in ms)."""

    url: str
    renderer_start_time: float | None
    response_headers_end_time: float | None
    network_end_time: float | None
    priority: Priority | None = None
    transfer_size: int = 0
    initiator: Initiator | None = None
    request_id: str | None = None
    resource_type: str | None = None
    mime_type: str | None = None
    frame_id: str | None = None
    is_link_preload: bool = False
    failed: bool = False
    from_cache: bool = False

    @property
    def initiator_url(self) -> str | None:
        return self.initiator.url if self.initiator is not None else None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NetworkRequestRecord:
        """Build a record from its camelCase wire shape."""
        size = _num(data.get("transferSize"))
        return cls(
            url=str(data.get("url") or ""),
            renderer_start_time=_num(data.get("rendererStartTime")),
            response_headers_end_time=_num(data.get("responseHeadersEndTime")),
            network_end_time=_num(data.get("networkEndTime")),
            priority=Priority.parse(data.get("priority")),
            transfer_size=max(0, int(size)) if size is not None else 0,
            initiator=Initiator.from_dict(data.get("initiator")),
            request_id=_str_or_none(data.get("requestId")),
            resource_type=_str_or_none(data.get("resourceType")),
            mime_type=_str_or_none(data.get("mimeType")),
            frame_id=_str_or_none(data.get("frameId")),
            is_link_preload=data.get("isLinkPreload") is True,
            failed=data.get("failed") is True,
            from_cache=data.get("fromCache") is True,
        )


@dataclass(slots=True)
class DevtoolsLogParser:
    """Incrementally turns CDP Network events into request records."""

    # requestId -> in-flight request state
    _open: dict[str, dict[str, Any]] = field(default_factory=dict, repr=False)
    # every request state in start order (finished or not)
    _states: list[dict[str, Any]] = field(default_factory=list, repr=False)
    ignored: int = 0

    def ingest(self, event: Any) -> None:
        """Ingest one raw CDP event dict (unknown events are ignored)."""
        if not isinstance(event, Mapping):
            self.ignored += 1
            return
        method = event.get("method")
        params = event.get("params")
        if not isinstance(method, str) or not method.startswith("Network.") or not isinstance(params, Mapping):
            self.ignored += 1
            return

        if method == "Network.requestWillBeSent":
            self._request_will_be_sent(params)
            return

        request_id = params.get("requestId")
        state = self._open.get(request_id) if isinstance(request_id, str) else None
        if state is None:
            self.ignored += 1
            return
        ts = _seconds_to_ms(params.get("timestamp"))

        if method == "Network.resourceChangedPriority":
            priority = Priority.parse(params.get("newPriority"))
            if priority is not None:
                state["priority"] = priority
            return

        if method == "Network.requestServedFromCache":
            state["fromCache"] = True
            return

        if method == "Network.responseReceived":
            response = params.get("response")
            if not isinstance(response, Mapping):
                response = {}
            state["headersEnd"] = _headers_end_ms(response, fallback=ts)
            state["mimeType"] = _str_or_none(response.get("mimeType")) or state.get("mimeType")
            state["resourceType"] = _str_or_none(params.get("type")) or state.get("resourceType")
            if response.get("fromDiskCache") is True or response.get("fromPrefetchCache") is True:
                state["fromCache"] = True
            return

        if method == "Network.dataReceived":
            encoded = _num(params.get("encodedDataLength"))
            if encoded is not None and encoded > 0:
                state["encoded"] += int(encoded)
            return

        if method in {"Network.loadingFinished", "Network.loadingFailed"}:
            state["end"] = ts
            if state.get("headersEnd") is None:
                state["headersEnd"] = ts
            encoded = _num(params.get("encodedDataLength"))
            if encoded is not None and encoded >= 0:
                state["encoded"] = int(encoded)
            if method == "Network.loadingFailed":
                state["failed"] = True
            self._open.pop(request_id, None)
            return

    def _request_will_be_sent(self, params: Mapping[str, Any]) -> None:
        request_id = params.get("requestId")
        request = params.get("request")
        if not isinstance(request_id, str) or not isinstance(request, Mapping):
            self.ignored += 1
            return
        url = request.get("url")
        if not _is_http_url(url):
            # data:, blob:, chrome-extension: ... never hit the network.
            self.ignored += 1
            return

        ts = _seconds_to_ms(params.get("timestamp"))
        initiator = Initiator.from_dict(params.get("initiator"))

        previous = self._open.get(request_id)
        redirect = params.get("redirectResponse")
        if previous is not None and isinstance(redirect, Mapping):
            # Redirects reuse the requestId: close the previous hop here.
            previous["end"] = ts
            previous["headersEnd"] = _headers_end_ms(redirect, fallback=ts)
            encoded = _num(redirect.get("encodedDataLength"))
            if encoded is not None and encoded >= 0:
                previous["encoded"] = int(encoded)
            previous["requestId"] = f"{request_id}:redirect"
            initiator = Initiator(type="redirect", url=previous["url"])

        state: dict[str, Any] = {
            "url": url,
            "requestId": request_id,
            "start": ts,
            "headersEnd": None,
            "end": None,
            "priority": Priority.parse(request.get("initialPriority")),
            "encoded": 0,
            "initiator": initiator,
            "resourceType": _str_or_none(params.get("type")),
            "mimeType": None,
            "frameId": _str_or_none(params.get("frameId")),
            "isLinkPreload": request.get("isLinkPreload") is True,
            "failed": False,
            "fromCache": False,
        }
        self._open[request_id] = state
        self._states.append(state)

    def records(self) -> list[NetworkRequestRecord]:
        return [
            NetworkRequestRecord(
                url=s["url"],
                renderer_start_time=s["start"],
                response_headers_end_time=s["headersEnd"],
                network_end_time=s["end"],
                priority=s["priority"],
                transfer_size=s["encoded"],
                initiator=s["initiator"],
                request_id=s["requestId"],
                resource_type=s["resourceType"],
                mime_type=s["mimeType"],
                frame_id=s["frameId"],
                is_link_preload=s["isLinkPreload"],
                failed=s["failed"],
                from_cache=s["fromCache"],
            )
            for s in self._states
        ]


def _headers_end_ms(response: Mapping[str, Any], *, fallback: float | None) -> float | None:
    timing = response.get("timing")
    if isinstance(timing, Mapping):
        request_time = _num(timing.get("requestTime"))
        headers_end = _num(timing.get("receiveHeadersEnd"))
        if request_time is not None and headers_end is not None and headers_end >= 0:
            return request_time * 1000.0 + headers_end
    return fallback


def network_records_from_devtools_log(events: Iterable[Any]) -> list[NetworkRequestRecord]:
    """Derive request records (in request-start order) from a devtools log."""
    parser = DevtoolsLogParser()
    for event in events:
        parser.ingest(event)
    records = parser.records()
    logger.debug("devtools log -> %d network records (%d events ignored)", len(records), parser.ignored)
    return records


__all__ = [
    "DevtoolsLogParser",
    "Initiator",
    "NetworkRequestRecord",
    "Priority",
    "network_records_from_devtools_log",
]
