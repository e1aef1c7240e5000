"""Shared fixtures and record builders for the tlsdetect test suite."""

import pytest

from tlsdetect.cache import HostStateStore


def make_cert(subject="CN=example.com", issuer="CN=Example CA, O=Example Trust", serial="0a:0b", validity=None):
    """A certificate record shaped like a browser's security info entry."""
    return {
        "subject": subject,
        "issuer": issuer,
        "serialNumber": serial,
        "validity": validity or {"start": 1700000000000, "end": 1800000000000},
    }


def make_record(certificates=None, state="secure", protocol="TLSv1.3", cipher="TLS_AES_128_GCM_SHA256"):
    """A handshake security record."""
    return {
        "state": state,
        "protocolVersion": protocol,
        "cipherSuite": cipher,
        "certificates": [make_cert()] if certificates is None else certificates,
    }


@pytest.fixture
def store() -> HostStateStore:
    """A fresh, isolated host state store."""
    return HostStateStore(capacity=16)
