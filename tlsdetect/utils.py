"""Utility functions: DN normalization, certificate search text, keyword and URL helpers."""

import ipaddress
import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Optional, Tuple
from urllib.parse import urlsplit

from .models import TextResult

logger = logging.getLogger(__name__)

DEFAULT_KEYWORD = "zscaler"

# (field, label) in emission order
_DN_FIELDS = (
    ("commonName", "CN"),
    ("organization", "O"),
    ("organizationalUnit", "OU"),
    ("countryName", "C"),
)


def _dump(value: Any) -> str:
    """Compact JSON dump of an arbitrary record, matching what browsers serialize."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _join_values(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " + ".join(str(v) for v in value)
    return str(value)


def normalize_dn_checked(dn: Any) -> TextResult:
    """
    Turn a subject/issuer into a comparable string, reporting whether it degraded.

    Accepts a pre-formatted string (returned as-is) or a structured record with
    commonName / organization / organizationalUnit / countryName. Records with none
    of those fields are dumped as JSON.
    """
    if dn is None or (not dn and isinstance(dn, (str, int, float))):
        return TextResult.ok("")
    if isinstance(dn, str):
        return TextResult.ok(dn)

    parts = []
    try:
        if isinstance(dn, Mapping):
            for key, label in _DN_FIELDS:
                value = dn.get(key)
                if value:
                    parts.append(f"{label}={_join_values(value)}")
    except Exception as exc:
        logger.debug("Malformed distinguished name field: %s", exc)
        parts = []
    if parts:
        return TextResult.ok(", ".join(parts))

    try:
        return TextResult.fallback(_dump(dn))
    except Exception:
        pass
    try:
        return TextResult.fallback(str(dn))
    except Exception:
        return TextResult.fallback("")


def normalize_dn(dn: Any) -> str:
    """Total DN normalization: always returns a string."""
    return normalize_dn_checked(dn).text


def cert_to_search_text_checked(cert: Any) -> TextResult:
    """
    Build the lowercase searchable text for one certificate.

    Normally "<subject> <issuer>". Certificates without either field, or whose
    fields cannot be normalized, fall back to a lowercase dump of the whole record.
    """
    if cert is None:
        return TextResult.fallback("")
    try:
        if isinstance(cert, Mapping) and ("subject" in cert or "issuer" in cert):
            subject = normalize_dn(cert.get("subject"))
            issuer = normalize_dn(cert.get("issuer"))
            return TextResult.ok(f"{subject} {issuer}".lower())
    except Exception as exc:
        logger.debug("Falling back to raw dump for malformed certificate: %s", exc)

    try:
        return TextResult.fallback(_dump(cert).lower())
    except Exception:
        return TextResult.fallback("")


def cert_to_search_text(cert: Any) -> str:
    """Searchable text for a certificate; never raises."""
    return cert_to_search_text_checked(cert).text


def clean_keyword(value: Any) -> str:
    """Lowercased keyword, or the default when unset/empty."""
    text = str(value or "").strip()
    return (text or DEFAULT_KEYWORD).lower()


def url_scheme(url: str) -> str:
    """Lowercase scheme of a URL ("" when there is none)."""
    return urlsplit(url).scheme.lower()


def host_from_url(url: str) -> Optional[str]:
    """
    Return the lowercase hostname of a URL, or None if it has none.

    Raises ValueError for URLs that cannot be parsed (e.g. bad ports).
    """
    parts = urlsplit(url)
    # .port validates the port component and raises ValueError if it is garbage
    _ = parts.port
    return parts.hostname or None


_HOSTNAME_RE = re.compile(
    r'^(?:[a-zA-Z0-9_]'
    r'(?:[a-zA-Z0-9\-_]{0,61}[a-zA-Z0-9])?\.)*'
    r'[a-zA-Z0-9](?:[a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.?$'
)


def validate_hostname(host: str) -> bool:
    """Return True if host looks like a DNS name or IP literal."""
    host = host.strip().strip("[]")
    if not host:
        return False
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    return bool(_HOSTNAME_RE.match(host))


def parse_target(target: str, default_port: int = 443) -> Tuple[str, str, int]:
    """
    Turn a CLI target into (url, host, port).

    Accepts full URLs ("https://example.com:8443/login", "http://plain.test/")
    or bare "host[:port]", which is treated as https.
    """
    target = target.strip()
    if not target:
        raise ValueError("target is empty")

    if "://" not in target:
        target = f"https://{target}"

    parts = urlsplit(target)
    if parts.scheme.lower() not in ("http", "https"):
        raise ValueError(f"unsupported scheme: {parts.scheme}")
    host = parts.hostname
    if not host or not validate_hostname(host):
        raise ValueError(f"invalid host in target: {target}")
    try:
        port = parts.port
    except ValueError:
        raise ValueError(f"port out of range in target: {target}") from None
    if port is None:
        port = default_port if parts.scheme.lower() == "https" else 80

    url = target if parts.path else f"{target}/"
    return url, host.lower(), port
