"""Classify a handshake security record against the configured keyword."""

import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from .cache import HostStateStore, default_store
from .models import NO_TLS_INFO, AnalysisResult, CertificateSummary, SecurityDetails
from .utils import DEFAULT_KEYWORD, cert_to_search_text_checked, clean_keyword, normalize_dn

logger = logging.getLogger(__name__)


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _certificates(record: Any) -> Sequence[Any]:
    certs = _field(record, "certificates")
    if certs is None or isinstance(certs, (str, bytes, Mapping)):
        return ()
    try:
        return tuple(certs)
    except TypeError:
        return ()


def summarize_certificate(cert: Any) -> CertificateSummary:
    """Build the immutable summary shown for one chain entry."""
    try:
        serial = _field(cert, "serialNumber")
        return CertificateSummary(
            subject_text=normalize_dn(_field(cert, "subject")),
            issuer_text=normalize_dn(_field(cert, "issuer")),
            serial_number=str(serial) if serial is not None else None,
            validity=_field(cert, "validity"),
        )
    except Exception as exc:
        logger.debug("Unreadable certificate in chain: %s", exc)
        return CertificateSummary(subject_text="", issuer_text="")


def first_match(certificates: Sequence[Any], keyword: str) -> Optional[int]:
    """Index of the first certificate whose search text contains keyword, else None."""
    keyword = keyword.lower()
    for index, cert in enumerate(certificates):
        text = cert_to_search_text_checked(cert)
        if text.degraded:
            logger.debug("Certificate %d normalized via fallback", index)
        if keyword in text.text:
            return index
    return None


def analyze(
    security_record: Any,
    host: str,
    source_url: Optional[str] = None,
    source_type: Optional[str] = None,
    keyword: str = DEFAULT_KEYWORD,
    store: Optional[HostStateStore] = None,
) -> AnalysisResult:
    """
    Classify one observation and record it for host.

    `keyword` is trimmed and lowercased; an empty one falls back to the
    default keyword. A missing record yields a terminal
    "No TLS info" result that is returned but not stored; populated results
    overwrite whatever the store held for host.
    """
    host = host.lower()
    keyword = clean_keyword(keyword)
    if security_record is None:
        return AnalysisResult(
            host=host,
            is_secure=False,
            detected=False,
            keyword=keyword,
            details=SecurityDetails(reason=NO_TLS_INFO),
        )

    state = _field(security_record, "state")
    certificates = _certificates(security_record)

    result = AnalysisResult(
        host=host,
        is_secure=state == "secure" or state == "weak",
        detected=first_match(certificates, keyword) is not None,
        keyword=keyword,
        details=SecurityDetails(
            state=state,
            protocol_version=_field(security_record, "protocolVersion"),
            cipher_suite=_field(security_record, "cipherSuite"),
            source_url=source_url,
            source_type=source_type,
            cert_chain=tuple(summarize_certificate(c) for c in certificates),
        ),
    )

    (store if store is not None else default_store).set(host, result)
    return result
