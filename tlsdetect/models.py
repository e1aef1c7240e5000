"""Core data models for tlsdetect classifications and presentation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple


NO_TLS_INFO = "No TLS info"


@dataclass(frozen=True)
class TextResult:
    """Normalized text plus whether a best-effort fallback produced it."""
    text: str
    degraded: bool = False

    @classmethod
    def ok(cls, text: str) -> "TextResult":
        return cls(text, False)

    @classmethod
    def fallback(cls, text: str) -> "TextResult":
        return cls(text, True)


@dataclass(frozen=True)
class CertificateSummary:
    """Normalized view of one certificate in an observed chain."""
    subject_text: str
    issuer_text: str
    serial_number: Optional[str] = None   # opaque, e.g. "0a:1b:..."
    validity: Optional[Any] = None        # pass-through, e.g. {"start": ..., "end": ...}

    def to_dict(self) -> dict:
        return {
            "subjectText": self.subject_text,
            "issuerText": self.issuer_text,
            "serialNumber": self.serial_number,
            "validity": self.validity,
        }


@dataclass(frozen=True)
class SecurityDetails:
    """Handshake details captured for one observation."""
    state: Optional[str] = None            # "secure" | "weak" | "insecure" | "broken"
    protocol_version: Optional[str] = None  # e.g. "TLSv1.3"
    cipher_suite: Optional[str] = None
    source_url: Optional[str] = None
    source_type: Optional[str] = None       # "main_frame", "script", ...
    cert_chain: Tuple[CertificateSummary, ...] = ()
    reason: Optional[str] = None            # set only when no handshake info existed

    def to_dict(self) -> dict:
        if self.reason is not None:
            return {"reason": self.reason}
        return {
            "state": self.state,
            "protocolVersion": self.protocol_version,
            "cipherSuite": self.cipher_suite,
            "sourceUrl": self.source_url,
            "sourceType": self.source_type,
            "certChain": [c.to_dict() for c in self.cert_chain],
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Classification of a single handshake observation for a host."""
    host: str
    is_secure: bool
    detected: bool
    keyword: str
    details: SecurityDetails = field(default_factory=SecurityDetails)

    @property
    def cert_chain(self) -> Tuple[CertificateSummary, ...]:
        return self.details.cert_chain

    @property
    def reason(self) -> Optional[str]:
        return self.details.reason

    def to_dict(self) -> dict:
        """Wire shape answered to status queries."""
        return {
            "host": self.host,
            "isSecure": self.is_secure,
            "detected": self.detected,
            "keyword": self.keyword,
            "details": self.details.to_dict(),
        }


class PresentationState(str, Enum):
    NO_DATA = "NoData"
    HTTP_INSECURE = "HttpInsecure"
    DETECTED_MATCH = "DetectedMatch"
    SECURE_NO_CERT_DATA = "SecureNoCertData"
    SECURE_NO_MATCH = "SecureNoMatch"


@dataclass(frozen=True)
class Presentation:
    """Everything a UI surface needs to render one state."""
    state: PresentationState
    icon: str                 # icon key: "detected" | "default" | "http" | "nocert"
    title: str                # e.g. "Keyword detected"
    label: str                # short pill text, e.g. "Match detected"
    tone: str                 # "ok" | "warn" | "bad"
    message: str = ""
    badge_text: Optional[str] = None
    badge_color: Optional[str] = None
    tooltip: str = ""        # toolbar hover text, e.g. "example.com: warn"


@dataclass(frozen=True)
class HandshakeEvent:
    """A response observed on the network, before its security info is fetched."""
    request_id: str
    url: str
    type: str = "main_frame"


@dataclass(frozen=True)
class Tab:
    """An open view whose toolbar state follows its host."""
    tab_id: int
    url: str


@dataclass(frozen=True)
class BannerDecision:
    """Answer handed to the in-page warning banner."""
    warn: bool
    host: str
    keyword: str = ""


@dataclass
class Report:
    """Everything one tlsdetect run observed."""
    keyword: str
    started: str    # ISO timestamp
    finished: str   # ISO timestamp
    elapsed: float  # Seconds
    results: List[AnalysisResult] = field(default_factory=list)

    @property
    def detected(self) -> List[AnalysisResult]:
        return [r for r in self.results if r.detected]

    @property
    def insecure(self) -> List[AnalysisResult]:
        return [r for r in self.results if not r.is_secure]

    @property
    def total_certificates(self) -> int:
        return sum(len(r.cert_chain) for r in self.results)
