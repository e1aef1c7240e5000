"""Tests for tlsdetect.cli — capture replay and probing with mocked handshakes."""

import json

import pytest

from conftest import make_cert, make_record
from tlsdetect.cli import (
    EXIT_DETECTED,
    EXIT_ERROR,
    EXIT_NO_DATA,
    EXIT_OK,
    build_parser,
    main,
    parse_targets_from_file,
    plan_targets,
    validate_args,
)
from tlsdetect.models import Tab

ZSCALER_RECORD = make_record([
    make_cert(subject="CN=login.example.com", issuer="CN=Zscaler Intermediate Root CA, O=Zscaler Inc."),
])


@pytest.fixture
def settings_path(tmp_path):
    return str(tmp_path / "settings.db")


def _write_capture(tmp_path, events, tabs=None):
    path = tmp_path / "capture.json"
    data = events if tabs is None else {"tabs": tabs, "events": events}
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Target planning
# ---------------------------------------------------------------------------

class TestPlanTargets:
    def test_https_and_http(self):
        tabs, events, probes = plan_targets(["Example.com", "http://plain.test", "https://b.test:8443/x"])
        assert tabs == [
            Tab(1, "https://Example.com/"),
            Tab(2, "http://plain.test/"),
            Tab(3, "https://b.test:8443/x"),
        ]
        assert [e.request_id for e in events] == ["probe-1", "probe-3"]
        assert probes == {"probe-1": ("example.com", 443), "probe-3": ("b.test", 8443)}

    def test_bad_target(self):
        with pytest.raises(ValueError):
            plan_targets(["ftp://files.test/"])


class TestParseTargetsFromFile:
    def test_skips_blanks_and_comments(self, tmp_path):
        path = tmp_path / "targets.txt"
        path.write_text("# hosts\nexample.com\n\n  b.test:8443  \n")
        assert parse_targets_from_file(str(path)) == ["example.com", "b.test:8443"]


class TestValidateArgs:
    def test_requires_source(self):
        args = build_parser().parse_args([])
        assert "No target" in validate_args(args)

    def test_keyword_only_needs_no_source(self):
        assert validate_args(build_parser().parse_args(["--show-keyword"])) is None

    def test_missing_capture_file(self, tmp_path):
        args = build_parser().parse_args(["--events", str(tmp_path / "nope.json")])
        assert "not found" in validate_args(args)

    def test_timeout_must_be_positive(self):
        args = build_parser().parse_args(["example.com", "--timeout", "0"])
        assert "--timeout" in validate_args(args)

    def test_main_exits_on_invalid_args(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2


# ---------------------------------------------------------------------------
# Capture replay
# ---------------------------------------------------------------------------

class TestReplay:
    def test_detected(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [
            {"requestId": "1", "url": "https://login.example.com/", "securityInfo": ZSCALER_RECORD},
        ])
        assert main(["--events", events, "--settings", settings_path]) == EXIT_DETECTED

    def test_no_match(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [
            {"requestId": "1", "url": "https://clean.test/", "securityInfo": make_record()},
        ])
        assert main(["--events", events, "--settings", settings_path]) == EXIT_OK

    def test_saved_keyword_applies(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [
            {"requestId": "1", "url": "https://login.example.com/", "securityInfo": ZSCALER_RECORD},
        ])
        assert main(["--settings", settings_path, "--set-keyword", "Fortinet"]) == EXIT_OK
        assert main(["--events", events, "--settings", settings_path]) == EXIT_OK
        assert main(["--events", events, "--settings", settings_path, "-k", "ZSCALER"]) == EXIT_DETECTED

    def test_nothing_observed(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [
            {"requestId": "1", "url": "https://quiet.test/", "securityInfo": None},
        ])
        assert main(["--events", events, "--settings", settings_path]) == EXIT_NO_DATA

    def test_http_tab_only(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [], tabs=[{"tabId": 1, "url": "http://plain.test/"}])
        assert main(["--events", events, "--settings", settings_path]) == EXIT_OK

    def test_invalid_capture(self, tmp_path, settings_path):
        path = tmp_path / "capture.json"
        path.write_text("{broken")
        assert main(["--events", str(path), "--settings", settings_path]) == EXIT_ERROR

    def test_json_report(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [
            {"requestId": "1", "url": "https://login.example.com/", "securityInfo": ZSCALER_RECORD},
            {"requestId": "2", "url": "https://cdn.test/lib.js", "type": "script", "securityInfo": make_record()},
        ])
        out = tmp_path / "report.json"
        main(["--events", events, "--settings", settings_path, "-oJ", str(out)])
        parsed = json.loads(out.read_text())
        assert {h["host"] for h in parsed["hosts"]} == {"login.example.com", "cdn.test"}
        assert parsed["keyword"] == "zscaler"

    def test_text_and_html_reports(self, tmp_path, settings_path):
        events = _write_capture(tmp_path, [
            {"requestId": "1", "url": "https://login.example.com/", "securityInfo": ZSCALER_RECORD},
        ])
        text_out, html_out = tmp_path / "r.txt", tmp_path / "r.html"
        main(["--events", events, "--settings", settings_path, "-oN", str(text_out), "-oH", str(html_out)])
        assert "Host: login.example.com [DetectedMatch]" in text_out.read_text()
        assert "login.example.com" in html_out.read_text()


# ---------------------------------------------------------------------------
# Live targets (handshake mocked)
# ---------------------------------------------------------------------------

class TestProbeTargets:
    def test_probe_detected(self, mocker, settings_path):
        fetch = mocker.patch("tlsdetect.cli.fetch_security_info", return_value=ZSCALER_RECORD)
        assert main(["login.example.com", "--settings", settings_path, "--timeout", "2"]) == EXIT_DETECTED
        fetch.assert_called_once_with("login.example.com", 443, timeout=2.0)

    def test_probe_failure_is_no_data(self, mocker, settings_path):
        from tlsdetect.probe import ProbeError

        mocker.patch("tlsdetect.cli.fetch_security_info", side_effect=ProbeError("refused"))
        assert main(["down.test", "--settings", settings_path]) == EXIT_NO_DATA

    def test_bad_target(self, settings_path):
        assert main(["ftp://files.test/", "--settings", settings_path]) == EXIT_ERROR

    def test_targets_from_file(self, tmp_path, mocker, settings_path):
        path = tmp_path / "targets.txt"
        path.write_text("a.test\nhttp://plain.test\n")
        fetch = mocker.patch("tlsdetect.cli.fetch_security_info", return_value=make_record())
        assert main(["-iL", str(path), "--settings", settings_path]) == EXIT_OK
        assert fetch.call_count == 1


# ---------------------------------------------------------------------------
# Keyword settings
# ---------------------------------------------------------------------------

class TestKeywordSettings:
    def test_set_and_show(self, settings_path, capsys):
        assert main(["--settings", settings_path, "--set-keyword", "  Fortinet "]) == EXIT_OK
        capsys.readouterr()
        assert main(["--settings", settings_path, "--show-keyword"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "fortinet"

    def test_empty_resets_to_default(self, settings_path, capsys):
        main(["--settings", settings_path, "--set-keyword", ""])
        capsys.readouterr()
        main(["--settings", settings_path, "--show-keyword"])
        assert capsys.readouterr().out.strip() == "zscaler"
