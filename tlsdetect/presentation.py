"""Pure mapping from a host's cached classification to what UI surfaces show."""

from typing import Optional

from .models import AnalysisResult, BannerDecision, Presentation, PresentationState

# Icon keys understood by surfaces; file names are the surface's business.
ICON_DETECTED = "detected"
ICON_DEFAULT = "default"
ICON_HTTP = "http"
ICON_NOCERT = "nocert"

BADGE_WARN_COLOR = "#b45309"
HTTP_TOOLTIP = "Insecure (HTTP)"


def _scheme(url_scheme: Optional[str]) -> str:
    return (url_scheme or "").strip().lower().rstrip(":")


def select(result: Optional[AnalysisResult], url_scheme: Optional[str]) -> Presentation:
    """
    Pick the presentation for a view.

    Rules, first match wins:
      no result + plain http   -> HttpInsecure
      no result                -> NoData
      not secure               -> HttpInsecure (message carries the reason)
      keyword detected         -> DetectedMatch
      empty certificate chain  -> SecureNoCertData
      otherwise                -> SecureNoMatch
    """
    if result is None:
        if _scheme(url_scheme) == "http":
            return Presentation(
                state=PresentationState.HTTP_INSECURE,
                icon=ICON_HTTP,
                title="Insecure HTTP",
                label="HTTP (no TLS)",
                tone="bad",
                message="This page is not using HTTPS.",
            )
        return Presentation(
            state=PresentationState.NO_DATA,
            icon=ICON_NOCERT,
            title="No certificate data yet",
            label="No data",
            tone="bad",
            message="No TLS info recorded yet for this host.",
        )

    host = result.host
    if not result.is_secure:
        return Presentation(
            state=PresentationState.HTTP_INSECURE,
            icon=ICON_HTTP,
            title="Insecure connection",
            label="Not secure",
            tone="bad",
            message=result.reason or "HTTP or unavailable.",
        )
    if result.detected:
        return Presentation(
            state=PresentationState.DETECTED_MATCH,
            icon=ICON_DETECTED,
            title="Keyword detected",
            label="Match detected",
            tone="warn",
            message=f'A certificate for {host} contains "{result.keyword}".',
            badge_text="!",
            badge_color=BADGE_WARN_COLOR,
        )
    if not result.cert_chain:
        return Presentation(
            state=PresentationState.SECURE_NO_CERT_DATA,
            icon=ICON_NOCERT,
            title="No certificates returned",
            label="No certs",
            tone="bad",
            message=f"No certificate chain was returned for {host}.",
        )
    return Presentation(
        state=PresentationState.SECURE_NO_MATCH,
        icon=ICON_DEFAULT,
        title="Secure (no match)",
        label="No match",
        tone="ok",
        message=f'TLS for {host} is secure and no "{result.keyword}" markers were found.',
    )


def toolbar_title(host: str, result: Optional[AnalysisResult], url_scheme: Optional[str] = "https") -> str:
    """Short toolbar tooltip, e.g. "example.com: warn"."""
    if result is None:
        if _scheme(url_scheme) == "http":
            return HTTP_TOOLTIP
        return f"{host}: no data"
    if result.detected:
        kind = "warn"
    elif result.is_secure:
        kind = "ok"
    else:
        kind = "bad"
    return f"{host}: {kind}"


def should_warn(result: Optional[AnalysisResult], has_password_field: bool) -> BannerDecision:
    """
    Decide whether the in-page banner should warn about credential entry.

    Only a secure connection whose chain matched the keyword, on a page that
    contains a credential field, triggers the warning.
    """
    if result is None:
        return BannerDecision(warn=False, host="")
    warn = bool(result.detected and result.is_secure and has_password_field)
    return BannerDecision(warn=warn, host=result.host, keyword=result.keyword)


def banner_message(decision: BannerDecision) -> str:
    """Banner body text for a positive decision ("" when there is nothing to say)."""
    if not decision.warn:
        return ""
    return (
        f"Intercepted TLS detected: a certificate on {decision.host} contains the "
        f"keyword {decision.keyword} while this page includes a password field. "
        "Consider avoiding credential entry."
    )
