"""Live TLS handshake probe producing browser-shaped security records."""

import logging
import socket
import ssl
from typing import Any, Dict, List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID

logger = logging.getLogger(__name__)

# Negotiated protocols a browser would report as "weak" rather than "secure".
# The default context refuses anything below TLS 1.2 on current Pythons, so
# "weak" mostly arrives from replayed captures rather than live probes.
WEAK_PROTOCOLS = frozenset({"SSLv3", "TLSv1", "TLSv1.1"})


class ProbeError(Exception):
    """Raised when no TLS handshake could be completed with the target."""


def _values(name: x509.Name, oid) -> List[str]:
    out = []
    for attr in name.get_attributes_for_oid(oid):
        value = attr.value
        out.append(value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value))
    return out


def name_record(name: x509.Name) -> Any:
    """
    Structured DN record for a certificate name.

    Multi-valued O/OU attributes become lists. Names without any of the
    recognized attributes are returned as their RFC 4514 string instead.
    """
    record: Dict[str, Any] = {}
    common = _values(name, NameOID.COMMON_NAME)
    if common:
        record["commonName"] = common[0]
    for key, oid in (
        ("organization", NameOID.ORGANIZATION_NAME),
        ("organizationalUnit", NameOID.ORGANIZATIONAL_UNIT_NAME),
    ):
        values = _values(name, oid)
        if len(values) == 1:
            record[key] = values[0]
        elif values:
            record[key] = values
    country = _values(name, NameOID.COUNTRY_NAME)
    if country:
        record["countryName"] = country[0]
    if record:
        return record
    try:
        return name.rfc4514_string()
    except Exception:
        return str(name)


def format_serial(serial: int) -> str:
    """Colon-separated hex serial, e.g. 0x0a1b -> "0a:1b"."""
    text = f"{serial:x}"
    if len(text) % 2:
        text = "0" + text
    return ":".join(text[i:i + 2] for i in range(0, len(text), 2))


def certificate_record(der: bytes) -> Dict[str, Any]:
    """Parse a DER certificate into the record shape the classifier consumes."""
    cert = x509.load_der_x509_certificate(der)
    return {
        "subject": name_record(cert.subject),
        "issuer": name_record(cert.issuer),
        "serialNumber": format_serial(cert.serial_number),
        "validity": {
            "start": int(cert.not_valid_before_utc.timestamp() * 1000),
            "end": int(cert.not_valid_after_utc.timestamp() * 1000),
        },
    }


def _unverified_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _handshake(
    host: str,
    port: int,
    sni: str,
    timeout: float,
    ctx: ssl.SSLContext,
) -> Tuple[Optional[str], Optional[str], List[bytes]]:
    """Complete one handshake and return (protocol, cipher, presented DER chain)."""
    with socket.create_connection((host, port), timeout=timeout) as sock:
        with ctx.wrap_socket(sock, server_hostname=sni) as tls_sock:
            protocol = tls_sock.version()
            cipher = tls_sock.cipher()
            ders: List[bytes] = []
            # Python 3.13+ exposes the full presented chain
            if hasattr(tls_sock, "get_unverified_chain"):
                try:
                    ders = list(tls_sock.get_unverified_chain() or [])
                except ssl.SSLError:
                    ders = []
            if not ders:
                leaf = tls_sock.getpeercert(binary_form=True)
                ders = [leaf] if leaf else []
    return protocol, (cipher[0] if cipher else None), ders


def fetch_security_info(
    host: str,
    port: int = 443,
    sni: Optional[str] = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    """
    Connect to host:port and describe the handshake like a browser would.

    state is "secure" for a verified handshake, "weak" when the negotiated
    protocol is outdated, and "broken" when the chain does not verify against
    the local trust store (the certificates are still reported).

    The verified handshake uses ssl.create_default_context(), whose minimum is
    TLS 1.2 on current Pythons. A server that only speaks an older protocol
    fails that handshake and surfaces as ProbeError, not "weak".

    Raises:
        ProbeError: if the host cannot be reached or no handshake completes.
    """
    server_name = sni or host
    try:
        try:
            protocol, cipher, ders = _handshake(
                host, port, server_name, timeout, ssl.create_default_context()
            )
            state = "weak" if protocol in WEAK_PROTOCOLS else "secure"
        except ssl.SSLCertVerificationError as exc:
            logger.info("Certificate verification failed for %s:%d: %s", host, port, exc.verify_message)
            protocol, cipher, ders = _handshake(host, port, server_name, timeout, _unverified_context())
            state = "broken"
    except (OSError, ssl.SSLError) as exc:
        raise ProbeError(f"TLS handshake with {host}:{port} failed: {exc}") from exc

    certificates = []
    for index, der in enumerate(ders):
        try:
            certificates.append(certificate_record(der))
        except ValueError as exc:
            logger.debug("Skipping unparsable certificate %d from %s: %s", index, host, exc)

    return {
        "state": state,
        "protocolVersion": protocol,
        "cipherSuite": cipher,
        "certificates": certificates,
    }
