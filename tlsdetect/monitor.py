"""Event dispatch: handshake observations, tab navigations and status queries."""

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, List, Optional

from .cache import HostStateStore, default_store
from .classifier import analyze
from .models import AnalysisResult, BannerDecision, HandshakeEvent, Presentation, Tab
from .presentation import select, should_warn, toolbar_title
from .utils import clean_keyword, host_from_url, url_scheme

logger = logging.getLogger(__name__)

OBSERVED_TYPES = frozenset({
    "main_frame",
    "sub_frame",
    "xmlhttprequest",
    "script",
    "image",
    "stylesheet",
    "object",
    "other",
})

STATUS_QUERY = "getStatusForHost"


def _with_tooltip(result: Optional[AnalysisResult], host: str, scheme: str) -> Presentation:
    return replace(select(result, scheme), tooltip=toolbar_title(host, result, scheme))


class Monitor:
    """
    Ties the network, tab and query callbacks to the shared HostStateStore.

    Collaborators are injected:

    * ``fetch_security_info(request_id)`` returns the raw handshake record for a
      request, or None when the runtime has none.
    * ``keyword_provider()`` returns the configured keyword; it is called once
      per classification so a changed setting applies to the next handshake.
    * ``list_tabs()`` returns the currently open ``Tab`` objects.
    * ``surface.render(tab, presentation)`` draws one tab's toolbar state,
      including ``presentation.tooltip``.

    Handlers never raise for bad input; failures are logged and the affected
    observation or tab is skipped.
    """

    def __init__(
        self,
        fetch_security_info: Callable[[str], Any],
        keyword_provider: Callable[[], str],
        list_tabs: Optional[Callable[[], Iterable[Tab]]] = None,
        surface: Any = None,
        store: Optional[HostStateStore] = None,
    ):
        self.fetch_security_info = fetch_security_info
        self.keyword_provider = keyword_provider
        self.list_tabs = list_tabs or (lambda: ())
        self.surface = surface
        self.store = store if store is not None else default_store

    # -----------------------------------------------------------------------
    # Inbound events
    # -----------------------------------------------------------------------

    def on_handshake(self, event: HandshakeEvent) -> Optional[AnalysisResult]:
        """Classify an observed https response and refresh tabs showing its host."""
        if event.type not in OBSERVED_TYPES:
            return None
        try:
            if url_scheme(event.url) != "https":
                return None
            host = host_from_url(event.url)
        except ValueError:
            logger.debug("Ignoring unparsable request URL %r", event.url)
            return None
        if not host:
            return None

        try:
            record = self.fetch_security_info(event.request_id)
            if record is None:
                return None
            keyword = clean_keyword(self.keyword_provider())
        except Exception as exc:
            logger.warning("Error in security info fetch for %s (%s): %s", host, event.request_id, exc)
            return None

        result = analyze(record, host, event.url, event.type, keyword, store=self.store)
        self.refresh_host(host)
        return result

    def on_tab_updated(self, tab: Tab, status: str = "complete") -> Optional[Presentation]:
        """Redraw a tab once its navigation completes; never re-classifies."""
        if status != "complete":
            return None
        try:
            scheme = url_scheme(tab.url)
            host = host_from_url(tab.url) if scheme == "https" else None
        except ValueError:
            logger.debug("Skipping tab %s with unparsable URL %r", tab.tab_id, tab.url)
            return None

        if scheme == "https" and host:
            result = self.store.get(host)
        elif scheme == "http":
            result = None
        else:
            return None
        presentation = _with_tooltip(result, host or "", scheme)
        self._render(tab, presentation)
        return presentation

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_status_for_host(self, host: str) -> Optional[AnalysisResult]:
        """Latest cached classification for host; answered from memory only."""
        if not host:
            return None
        return self.store.get(host)

    def status_message(self, message: Any) -> Optional[dict]:
        """Answer a ``{"type": "getStatusForHost", "host": ...}`` message in wire shape."""
        if not isinstance(message, dict) or message.get("type") != STATUS_QUERY:
            return None
        host = message.get("host")
        if not host:
            return None
        logger.info("Status requested for host %s", host)
        result = self.get_status_for_host(host)
        return result.to_dict() if result else None

    def banner_decision(self, host: str, has_password_field: bool) -> BannerDecision:
        return should_warn(self.get_status_for_host(host), has_password_field)

    # -----------------------------------------------------------------------
    # Tab bookkeeping
    # -----------------------------------------------------------------------

    def refresh_host(self, host: str) -> int:
        """Redraw every open tab on host. Returns how many tabs were redrawn."""
        result = self.store.get(host)
        redrawn = 0
        for tab in self._tabs():
            try:
                tab_host = host_from_url(tab.url)
            except ValueError:
                logger.debug("Skipping tab %s with unparsable URL %r", tab.tab_id, tab.url)
                continue
            if tab_host == host:
                self._render(tab, _with_tooltip(result, host, url_scheme(tab.url)))
                redrawn += 1
        return redrawn

    def prune(self) -> int:
        """Forget hosts that no open tab shows. Returns the number of entries dropped."""
        hosts: List[str] = []
        for tab in self._tabs():
            try:
                tab_host = host_from_url(tab.url)
            except ValueError:
                continue
            if tab_host:
                hosts.append(tab_host)
        return self.store.retain(hosts)

    def _tabs(self) -> List[Tab]:
        try:
            return list(self.list_tabs())
        except Exception as exc:
            logger.warning("Could not enumerate open tabs: %s", exc)
            return []

    def _render(self, tab: Tab, presentation: Presentation) -> None:
        if self.surface is None:
            return
        try:
            self.surface.render(tab, presentation)
        except Exception as exc:
            logger.warning("Surface failed to render tab %s: %s", tab.tab_id, exc)
