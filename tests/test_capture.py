"""Tests for tlsdetect.capture."""

import json

import pytest

from conftest import make_record
from tlsdetect.capture import Capture, load_capture, parse_capture
from tlsdetect.models import HandshakeEvent, Tab


class TestParseCapture:
    def test_list_of_events(self):
        record = make_record()
        capture = parse_capture([
            {"requestId": "7", "url": "https://a.test/", "type": "main_frame", "securityInfo": record},
            {"requestId": "8", "url": "https://cdn.a.test/app.js", "type": "script"},
        ])
        assert capture.events == [
            HandshakeEvent("7", "https://a.test/", "main_frame"),
            HandshakeEvent("8", "https://cdn.a.test/app.js", "script"),
        ]
        assert capture.fetch("7") == record
        assert capture.fetch("8") is None

    def test_tabs_derived_from_main_frames(self):
        capture = parse_capture([
            {"url": "https://a.test/"},
            {"url": "https://a.test/"},
            {"url": "https://b.test/x.css", "type": "stylesheet"},
            {"url": "http://plain.test/"},
        ])
        assert capture.tabs == [Tab(1, "https://a.test/"), Tab(2, "http://plain.test/")]

    def test_missing_request_id_uses_index(self):
        capture = parse_capture([{"url": "https://a.test/"}, {"url": "https://b.test/"}])
        assert [e.request_id for e in capture.events] == ["0", "1"]
        assert capture.events[0].type == "main_frame"

    def test_object_with_tabs(self):
        capture = parse_capture({
            "tabs": [{"tabId": 4, "url": "https://a.test/"}, {"url": "http://b.test/"}],
            "events": [{"requestId": "r1", "url": "https://a.test/", "securityInfo": None}],
        })
        assert capture.tabs == [Tab(4, "https://a.test/"), Tab(2, "http://b.test/")]
        assert len(capture.events) == 1

    def test_object_without_events(self):
        capture = parse_capture({"tabs": []})
        assert capture.events == []
        assert capture.tabs == []

    @pytest.mark.parametrize("data", [
        "nope",
        {"events": "nope"},
        [{"requestId": "1"}],
        ["https://a.test/"],
        {"events": [], "tabs": "nope"},
        {"events": [], "tabs": [{"tabId": 1}]},
        {"events": [], "tabs": [{"tabId": "one", "url": "https://a.test/"}]},
    ])
    def test_malformed(self, data):
        with pytest.raises(ValueError):
            parse_capture(data)


class TestLoadCapture:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "capture.json"
        path.write_text(json.dumps([{"requestId": "1", "url": "https://a.test/", "securityInfo": make_record()}]))
        capture = load_capture(path)
        assert isinstance(capture, Capture)
        assert capture.fetch("1")["state"] == "secure"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "capture.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_capture(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_capture(tmp_path / "absent.json")
