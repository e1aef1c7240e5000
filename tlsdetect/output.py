"""Rich-powered terminal output and file format renderers (JSON, text, HTML)."""

import json
import logging
from typing import Dict, List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from . import __version__
from .models import AnalysisResult, BannerDecision, Presentation, Report, Tab
from .presentation import banner_message, select

# ---------------------------------------------------------------------------
# Tone → rich style mapping
# ---------------------------------------------------------------------------
TONE_STYLE: Dict[str, str] = {
    "ok":   "green",
    "warn": "bold yellow",
    "bad":  "red",
}

_THEME = Theme({
    "info":        "dim white",
    "host.header": "bold cyan",
    "cert.match":  "bold yellow",
    "cert.plain":  "white",
})

console = Console(theme=_THEME)
err_console = Console(stderr=True, theme=_THEME)


def setup_logging(verbose: int = 0) -> None:
    """Route the tlsdetect loggers to the rich stderr console."""
    level = logging.WARNING
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    logger = logging.getLogger("tlsdetect")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=err_console, show_path=False, markup=False))
    logger.setLevel(level)


def source_line(result: AnalysisResult) -> str:
    """Where an observation came from, e.g. "Source: https://a/ [script] — TLSv1.3 TLS_AES_128_GCM_SHA256"."""
    d = result.details
    if d.reason:
        return f"Source: {d.reason}"
    line = f"Source: {d.source_url or '-'}"
    if d.source_type:
        line += f" [{d.source_type}]"
    tls = " ".join(p for p in (d.protocol_version, d.cipher_suite) if p)
    if tls:
        line += f" — {tls}"
    return line


# ---------------------------------------------------------------------------
# Toolbar surface
# ---------------------------------------------------------------------------

class TabBoard:
    """
    Surface that remembers the last presentation drawn for each tab.

    Stands in for the browser toolbar when running from the command line.
    """

    def __init__(self):
        self._drawn: Dict[int, tuple] = {}

    def render(self, tab: Tab, presentation: Presentation) -> None:
        self._drawn[tab.tab_id] = (tab, presentation)

    def get(self, tab_id: int) -> Optional[Presentation]:
        entry = self._drawn.get(tab_id)
        return entry[1] if entry else None

    def items(self) -> List[tuple]:
        return [self._drawn[k] for k in sorted(self._drawn)]

    def __len__(self) -> int:
        return len(self._drawn)


# ---------------------------------------------------------------------------
# Terminal renderer
# ---------------------------------------------------------------------------

class TerminalRenderer:
    """Renders host classifications to the terminal using rich."""

    def __init__(self, verbose: int = 0):
        self.verbose = verbose  # 0 = normal, 1 = -v, 2 = -vv

    def print_banner(self, keyword: str, started: str, sources: str) -> None:
        """Print the tlsdetect tool banner."""
        title = Text(f"tlsdetect v{__version__}  —  TLS Interception Detector", style="bold cyan")
        lines = [
            f"[dim]Keyword:[/dim]  {escape(keyword)}",
            f"[dim]Sources:[/dim]  {escape(sources)}",
            f"[dim]Started:[/dim]  {started}",
        ]
        console.print()
        console.print(Panel(title, border_style="cyan", expand=False))
        for line in lines:
            console.print(f"  {line}")
        console.print()

    def print_host(self, result: AnalysisResult, scheme: str = "https") -> None:
        """Print one host block: its presentation state and, with -v, the chain."""
        presentation = select(result, scheme)
        style = TONE_STYLE.get(presentation.tone, "white")
        console.print(
            f"[host.header]Host: {escape(result.host)}[/host.header]  "
            f"[{style}]{escape(presentation.label)}[/{style}]  "
            f"[dim]{escape(presentation.title)}[/dim]"
        )
        console.print(f"  {escape(presentation.message)}")
        if self.verbose >= 1:
            console.print(f"  [dim]{escape(source_line(result))}[/dim]")

        if result.cert_chain and self.verbose >= 1:
            tbl = Table(
                show_header=True,
                header_style="bold",
                box=box.SIMPLE_HEAVY,
                padding=(0, 1),
                expand=False,
            )
            tbl.add_column("#", style="bold", justify="right")
            tbl.add_column("SUBJECT", min_width=24)
            tbl.add_column("ISSUER", min_width=24)
            if self.verbose >= 2:
                tbl.add_column("SERIAL", min_width=12)
            keyword = result.keyword
            for idx, cert in enumerate(result.cert_chain, 1):
                hit = keyword and keyword in f"{cert.subject_text} {cert.issuer_text}".lower()
                row_style = "cert.match" if hit else "cert.plain"
                row = [str(idx), escape(cert.subject_text), escape(cert.issuer_text)]
                if self.verbose >= 2:
                    row.append(escape(cert.serial_number or ""))
                tbl.add_row(*row, style=row_style)
            console.print(tbl)
        console.print()

    def print_http(self, url: str) -> None:
        presentation = select(None, "http")
        console.print(
            f"[host.header]URL: {escape(url)}[/host.header]  "
            f"[red]{presentation.label}[/red]  [dim]{presentation.title}[/dim]"
        )
        console.print(f"  {presentation.message}")
        console.print()

    def print_tabs(self, board: "TabBoard") -> None:
        """Print what the toolbar of each open tab ended up showing (-v)."""
        if self.verbose < 1 or not len(board):
            return
        for tab, presentation in board.items():
            style = TONE_STYLE.get(presentation.tone, "white")
            console.print(
                f"  [dim]Tab {tab.tab_id}[/dim] {escape(tab.url)}  "
                f"[{style}]{escape(presentation.tooltip or presentation.title)}[/{style}]"
            )
        console.print()

    def print_banner_warning(self, decision: BannerDecision) -> None:
        if decision.warn:
            console.print(Panel(escape(banner_message(decision)), border_style="yellow", expand=False))

    def print_summary(self, report: Report) -> None:
        """Print a summary table of every host with a recorded classification."""
        detected = len(report.detected)
        console.print()
        console.rule("[bold cyan]Summary[/bold cyan]")
        console.print()

        if report.results:
            tbl = Table(box=box.ROUNDED, header_style="bold", expand=False)
            tbl.add_column("Host", style="cyan", min_width=16)
            tbl.add_column("State", min_width=10)
            tbl.add_column("TLS", min_width=8)
            tbl.add_column("Certs", justify="right")
            tbl.add_column("Status", min_width=14)
            for result in report.results:
                presentation = select(result, "https")
                style = TONE_STYLE.get(presentation.tone, "white")
                tbl.add_row(
                    escape(result.host),
                    result.details.state or "-",
                    result.details.protocol_version or "-",
                    str(len(result.cert_chain)),
                    f"[{style}]{escape(presentation.label)}[/{style}]",
                )
            console.print(tbl)
            console.print()

        det_style = "bold yellow" if detected else "bold green"
        console.print(
            f"  Hosts: [cyan]{len(report.results)}[/cyan]  |  "
            f"Matches: [{det_style}]{detected}[/{det_style}]  |  "
            f"Insecure: [red]{len(report.insecure)}[/red]  |  "
            f"Certificates: [cyan]{report.total_certificates}[/cyan]  |  "
            f"Elapsed: [dim]{report.elapsed:.1f}s[/dim]"
        )
        console.print()

    def print_error(self, message: str) -> None:
        err_console.print(f"[bold red][ERROR][/bold red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        console.print(f"[yellow][WARN][/yellow]  {escape(message)}")

    def print_info(self, message: str) -> None:
        if self.verbose >= 1:
            console.print(f"[dim][*][/dim] {escape(message)}")


# ---------------------------------------------------------------------------
# File format renderers
# ---------------------------------------------------------------------------

def render_json(report: Report) -> str:
    """Serialize a Report to pretty-printed JSON, hosts in status-query wire shape."""
    payload = {
        "version": __version__,
        "keyword": report.keyword,
        "started": report.started,
        "finished": report.finished,
        "elapsed": report.elapsed,
        "hosts": [
            dict(r.to_dict(), presentation=select(r, "https").state.value)
            for r in report.results
        ],
    }
    return json.dumps(payload, indent=2, default=str)


def render_text(report: Report) -> str:
    """
    Render a plain-text (no ANSI codes) report.
    Suitable for -oN file output.
    """
    lines: List[str] = []
    lines.append(f"# tlsdetect v{__version__} report")
    lines.append(f"# Keyword:  {report.keyword}")
    lines.append(f"# Started:  {report.started}")
    lines.append(f"# Finished: {report.finished}")
    lines.append(f"# Elapsed:  {report.elapsed:.1f}s")
    lines.append("")

    for result in report.results:
        presentation = select(result, "https")
        lines.append(f"Host: {result.host} [{presentation.state.value}]")
        lines.append(f"  {presentation.title}: {presentation.message}")
        lines.append(f"  {source_line(result)}")
        for idx, cert in enumerate(result.cert_chain, 1):
            lines.append(f"  Cert {idx}")
            lines.append(f"    Subject: {cert.subject_text}")
            lines.append(f"    Issuer:  {cert.issuer_text}")
        if not result.cert_chain:
            lines.append("  (No certificates returned)")
        lines.append("")

    lines.append(
        f"# Summary: {len(report.results)} host(s) | {len(report.detected)} match(es) | "
        f"{len(report.insecure)} insecure | {report.total_certificates} certificate(s)"
    )
    return "\n".join(lines)


def render_html(report: Report) -> str:
    """Render a self-contained HTML report using Jinja2."""
    try:
        from jinja2 import Environment, PackageLoader, select_autoescape
        env = Environment(
            loader=PackageLoader("tlsdetect", "templates"),
            autoescape=select_autoescape(["html", "j2"]),
        )
        template = env.get_template("report.html.j2")
    except Exception:
        # Fallback: minimal inline HTML if template loading fails
        return _render_html_fallback(report)

    rows = [(r, select(r, "https"), source_line(r)) for r in report.results]
    return template.render(report=report, rows=rows, version=__version__)


def _render_html_fallback(report: Report) -> str:
    """Minimal HTML fallback when the Jinja2 template is unavailable."""
    from html import escape as html_escape

    rows = []
    for result in report.results:
        presentation = select(result, "https")
        rows.append(
            f"<tr><td>{html_escape(result.host)}</td><td>{presentation.label}</td>"
            f"<td>{html_escape(result.details.state or '-')}</td>"
            f"<td>{len(result.cert_chain)}</td>"
            f"<td>{html_escape(presentation.message)}</td></tr>"
        )
    table_body = "\n".join(rows)
    return f"""<!DOCTYPE html>
<html><head><title>tlsdetect Report</title></head>
<body>
<h1>tlsdetect v{__version__} Report</h1>
<p>Keyword: {html_escape(report.keyword)} | Started: {report.started} | Elapsed: {report.elapsed:.1f}s</p>
<table border="1">
<tr><th>Host</th><th>Status</th><th>State</th><th>Certs</th><th>Details</th></tr>
{table_body}
</table>
</body></html>"""
