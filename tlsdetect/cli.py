"""CLI argument parsing and main orchestrator for tlsdetect."""

import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.markup import escape

from . import __version__
from .cache import HostStateStore
from .capture import Capture, load_capture
from .models import HandshakeEvent, Report, Tab
from .monitor import Monitor
from .output import (
    TabBoard,
    TerminalRenderer,
    console,
    render_html,
    render_json,
    render_text,
    setup_logging,
)
from .probe import fetch_security_info
from .settings import SettingsStore
from .utils import clean_keyword, parse_target, url_scheme

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_DATA = 2
EXIT_DETECTED = 3


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="tlsdetect",
        description=(
            "tlsdetect — TLS Interception Detector\n"
            "Flags hosts whose certificate chain contains a keyword such as an inspection proxy's name."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  tlsdetect example.com github.com\n"
            "  tlsdetect https://login.example.com:8443/ --keyword fortinet -v\n"
            "  tlsdetect --events capture.json -oJ hosts.json\n"
            "  tlsdetect --set-keyword zscaler\n"
        ),
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"tlsdetect {__version__}",
    )

    # -----------------------------------------------------------------------
    # Sources
    # -----------------------------------------------------------------------
    src_grp = parser.add_argument_group("Sources")
    src_grp.add_argument(
        "target",
        nargs="*",
        metavar="<target>",
        help="URL or host[:port] to probe (bare hosts are treated as https)",
    )
    src_grp.add_argument(
        "-iL",
        metavar="<inputfile>",
        dest="iL",
        help="Read targets from file (one per line)",
    )
    src_grp.add_argument(
        "--events",
        metavar="<file>",
        default=None,
        help="Replay a recorded JSON capture of handshake events instead of probing",
    )
    src_grp.add_argument(
        "--timeout",
        metavar="<seconds>",
        type=float,
        default=10.0,
        help="Connect/handshake timeout per target (default: 10)",
    )

    # -----------------------------------------------------------------------
    # Keyword
    # -----------------------------------------------------------------------
    kw_grp = parser.add_argument_group("Keyword")
    kw_grp.add_argument(
        "--keyword", "-k",
        metavar="<word>",
        default=None,
        help="Keyword to match for this run only (default: the saved keyword)",
    )
    kw_grp.add_argument(
        "--set-keyword",
        metavar="<word>",
        default=None,
        help="Save the keyword used by later runs (empty resets to 'zscaler')",
    )
    kw_grp.add_argument(
        "--show-keyword",
        action="store_true",
        default=False,
        help="Print the saved keyword",
    )
    kw_grp.add_argument(
        "--settings",
        metavar="<path>",
        default=None,
        help="Settings database (default: ~/.config/tlsdetect/settings.db)",
    )
    kw_grp.add_argument(
        "--password-field",
        action="store_true",
        default=False,
        help="Treat every page as containing a password field and show credential warnings",
    )

    # -----------------------------------------------------------------------
    # Output
    # -----------------------------------------------------------------------
    out_grp = parser.add_argument_group("Output")
    out_grp.add_argument(
        "-v",
        action="count",
        default=0,
        dest="verbose",
        help="Verbose output (-v: certificate chains, -vv: serials and debug logging)",
    )
    out_grp.add_argument(
        "-oN",
        metavar="<file>",
        dest="oN",
        help="Save plain-text report to file",
    )
    out_grp.add_argument(
        "-oJ",
        metavar="<file>",
        dest="oJ",
        help="Save JSON report to file",
    )
    out_grp.add_argument(
        "-oH",
        metavar="<file>",
        dest="oH",
        help="Save HTML report to file",
    )

    return parser


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------

def validate_args(args) -> Optional[str]:
    """
    Validate parsed arguments.
    Returns an error message string, or None if everything is valid.
    """
    has_source = bool(args.target or args.iL or args.events)
    if not has_source and args.set_keyword is None and not args.show_keyword:
        return "No target specified. Provide a URL/host, use -iL <file> or --events <file>."

    if args.iL and not Path(args.iL).is_file():
        return f"Target file not found: {args.iL}"

    if args.events and not Path(args.events).is_file():
        return f"Capture file not found: {args.events}"

    if args.timeout <= 0:
        return f"--timeout must be positive, got {args.timeout}"

    return None


def parse_targets_from_file(path: str) -> List[str]:
    """Read targets from a file, one per line. Skips blank lines and comments (#)."""
    targets = []
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if line and not line.startswith("#"):
                targets.append(line)
    return targets


def plan_targets(targets: List[str]) -> Tuple[List[Tab], List[HandshakeEvent], Dict[str, Tuple[str, int]]]:
    """
    Turn CLI targets into open tabs, main-frame handshake events and probe addresses.

    Raises ValueError for an unusable target.
    """
    tabs: List[Tab] = []
    events: List[HandshakeEvent] = []
    probes: Dict[str, Tuple[str, int]] = {}
    for index, target in enumerate(targets, 1):
        url, host, port = parse_target(target)
        tabs.append(Tab(tab_id=index, url=url))
        if url_scheme(url) == "https":
            request_id = f"probe-{index}"
            events.append(HandshakeEvent(request_id=request_id, url=url, type="main_frame"))
            probes[request_id] = (host, port)
    return tabs, events, probes


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    tlsdetect entry point.

    Returns:
        0 — success, no keyword match
        1 — argument or input error
        2 — nothing was observed
        3 — at least one host matched the keyword
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    err = validate_args(args)
    if err:
        parser.error(err)

    setup_logging(args.verbose)
    renderer = TerminalRenderer(verbose=args.verbose)

    settings = SettingsStore(Path(args.settings)) if args.settings else SettingsStore()

    if args.set_keyword is not None:
        saved = settings.set_keyword(args.set_keyword)
        console.print(f"[dim][*][/dim] Saved keyword: {escape(saved)}")
    if args.show_keyword:
        console.print(escape(settings.get_keyword()), highlight=False)

    targets: List[str] = list(args.target)
    if args.iL:
        targets.extend(parse_targets_from_file(args.iL))
    if not targets and not args.events:
        return EXIT_OK

    # Sources
    try:
        tabs, events, probes = plan_targets(targets)
        capture = load_capture(args.events) if args.events else Capture()
    except (ValueError, OSError) as exc:
        renderer.print_error(str(exc))
        return EXIT_ERROR

    next_id = len(tabs) + 1
    for tab in capture.tabs:
        tabs.append(Tab(tab_id=next_id, url=tab.url))
        next_id += 1
    events.extend(capture.events)

    def fetch(request_id: str):
        if request_id in probes:
            host, port = probes[request_id]
            renderer.print_info(f"Probing {host}:{port}")
            return fetch_security_info(host, port, timeout=args.timeout)
        return capture.fetch(request_id)

    if args.keyword is not None:
        run_keyword = clean_keyword(args.keyword)
        keyword_provider = lambda: run_keyword  # noqa: E731
    else:
        keyword_provider = settings.get_keyword

    store = HostStateStore()
    board = TabBoard()
    monitor = Monitor(
        fetch_security_info=fetch,
        keyword_provider=keyword_provider,
        list_tabs=lambda: tabs,
        surface=board,
        store=store,
    )

    started = datetime.now().isoformat(timespec="seconds")
    t0 = time.monotonic()
    try:
        for event in events:
            monitor.on_handshake(event)
        for tab in tabs:
            monitor.on_tab_updated(tab)
    except KeyboardInterrupt:
        renderer.print_warning("Interrupted by user.")
        return EXIT_ERROR

    report = Report(
        keyword=clean_keyword(keyword_provider()),
        started=started,
        finished=datetime.now().isoformat(timespec="seconds"),
        elapsed=time.monotonic() - t0,
        results=store.results(),
    )

    http_urls = [t.url for t in tabs if url_scheme(t.url) == "http"]
    if not report.results and not http_urls:
        renderer.print_warning("No TLS observations were recorded for the given sources.")
        return EXIT_NO_DATA

    sources = ", ".join(targets + ([args.events] if args.events else []))
    renderer.print_banner(report.keyword, report.started, sources)
    for result in report.results:
        renderer.print_host(result)
        if args.password_field:
            renderer.print_banner_warning(monitor.banner_decision(result.host, True))
    for url in http_urls:
        renderer.print_http(url)
    renderer.print_tabs(board)
    renderer.print_summary(report)

    _write_output_files(args, report, renderer)

    return EXIT_DETECTED if report.detected else EXIT_OK


def _write_output_files(args, report: Report, renderer: TerminalRenderer) -> None:
    """Write any requested output files (-oN, -oJ, -oH)."""
    outputs = [
        (getattr(args, "oN", None), "text", render_text),
        (getattr(args, "oJ", None), "JSON", render_json),
        (getattr(args, "oH", None), "HTML", render_html),
    ]
    for path, fmt, render_fn in outputs:
        if not path:
            continue
        try:
            content = render_fn(report)
            Path(path).write_text(content, encoding="utf-8")
            renderer.print_info(f"Saved {fmt} report to {path}")
        except PermissionError:
            renderer.print_warning(f"Cannot write {fmt} report to {path}: permission denied")
        except Exception as exc:
            renderer.print_warning(f"Failed to write {fmt} report to {path}: {exc}")
