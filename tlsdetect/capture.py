"""Load recorded handshake captures for offline replay."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from .models import HandshakeEvent, Tab


@dataclass
class Capture:
    """Events in delivery order, the security info recorded for each request, and open tabs."""
    events: List[HandshakeEvent] = field(default_factory=list)
    records: Dict[str, Any] = field(default_factory=dict)
    tabs: List[Tab] = field(default_factory=list)

    def fetch(self, request_id: str) -> Any:
        """Security info recorded for request_id (None when the capture had none)."""
        return self.records.get(request_id)


def parse_capture(data: Union[list, dict]) -> Capture:
    """
    Build a Capture from decoded JSON.

    Accepted shapes:
      [ {requestId, url, type, securityInfo}, ... ]
      { "tabs": [ {tabId, url}, ... ], "events": [ ... ] }

    Without a "tabs" list every distinct main_frame URL becomes a tab.
    Raises ValueError on anything else.
    """
    if isinstance(data, list):
        raw_events, raw_tabs = data, None
    elif isinstance(data, dict):
        raw_events, raw_tabs = data.get("events", []), data.get("tabs")
    else:
        raise ValueError("capture must be a JSON list of events or an object with 'events'")
    if not isinstance(raw_events, list):
        raise ValueError("'events' must be a list")

    capture = Capture()
    for index, raw in enumerate(raw_events):
        if not isinstance(raw, dict) or not raw.get("url"):
            raise ValueError(f"event {index} has no url")
        request_id = str(raw.get("requestId", index))
        capture.events.append(
            HandshakeEvent(request_id=request_id, url=str(raw["url"]), type=str(raw.get("type", "main_frame")))
        )
        capture.records[request_id] = raw.get("securityInfo")

    if raw_tabs is None:
        seen = []
        for event in capture.events:
            if event.type == "main_frame" and event.url not in seen:
                seen.append(event.url)
        capture.tabs = [Tab(tab_id=i, url=url) for i, url in enumerate(seen, 1)]
    else:
        if not isinstance(raw_tabs, list):
            raise ValueError("'tabs' must be a list")
        for index, raw in enumerate(raw_tabs):
            if not isinstance(raw, dict) or "url" not in raw:
                raise ValueError(f"tab {index} has no url")
            try:
                tab_id = int(raw.get("tabId", index + 1))
            except (TypeError, ValueError):
                raise ValueError(f"tab {index} has a non-numeric tabId") from None
            capture.tabs.append(Tab(tab_id=tab_id, url=str(raw["url"])))
    return capture


def load_capture(path: Union[str, Path]) -> Capture:
    """Read and parse a capture file. Raises ValueError on malformed content."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"capture is not valid JSON: {exc}") from exc
    return parse_capture(data)
