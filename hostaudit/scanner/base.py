# hostaudit/scanner/base.py
"""
Base classes and data structures for the hostaudit scan pipeline.

Architecture:
    Resolver → (per address) Checks → Banner inference → Vulnerability lookup

BaseCheck:  Probes one port on one address and classifies the outcome as
            SECURE, INSECURE or INDETERMINATE. Checks NEVER raise past
            run(); a failing check is downgraded to INDETERMINATE.

Everything in this module lives for a single scan invocation. Nothing is
shared between concurrent checks except immutable configuration.
"""

from __future__ import annotations

import enum
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from hostaudit.config import ProbeTimeouts
from hostaudit.errors import UnknownSeverityError

if TYPE_CHECKING:
    from hostaudit.tools.header_check import WebReport

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# Component.part values (CPE "part" field)
PART_OS = "o"
PART_APPLICATION = "a"


# ---------------------------------------------------------------------------
# System identity (produced by banner inference)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Component:
    """
    One inferred product. Every field is always a string; values that could
    not be inferred are the literal "unknown" so consumers never branch on
    missing keys.
    """
    part: str
    vendor: str = UNKNOWN
    product: str = UNKNOWN
    version: str = UNKNOWN

    def to_dict(self) -> Dict[str, str]:
        return {
            "part": self.part,
            "vendor": self.vendor,
            "product": self.product,
            "version": self.version,
        }


def unknown_os() -> Component:
    return Component(part=PART_OS)


@dataclass(frozen=True)
class SystemIdentity:
    operating_system: Component = field(default_factory=unknown_os)
    software: tuple = ()                # tuple of Component, in match order

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operating_system": self.operating_system.to_dict(),
            "software": [c.to_dict() for c in self.software],
        }


@dataclass(frozen=True)
class VulnerabilityQuery:
    """Request body for the audit API, built once per SystemIdentity."""
    software: tuple
    operating_system: Component
    fields: tuple

    def to_payload(self) -> Dict[str, Any]:
        return {
            "software": [c.to_dict() for c in self.software],
            "operating_system": self.operating_system.to_dict(),
            "fields": list(self.fields),
        }


# ---------------------------------------------------------------------------
# Vulnerability findings
# ---------------------------------------------------------------------------

class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_label(cls, label: Any) -> "Severity":
        """
        Map an API severity label to a bucket. Case-insensitive.
        Raises UnknownSeverityError for anything outside the four levels.
        """
        if not isinstance(label, str):
            raise UnknownSeverityError(label)
        try:
            return cls(label.strip().lower())
        except ValueError:
            raise UnknownSeverityError(label) from None


@dataclass(frozen=True)
class VulnerabilityFinding:
    title: str
    description: str
    ai_score: Optional[float]
    cvss_score: Optional[float]
    cvss_severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "ai_score": self.ai_score,
            "cvss_score": self.cvss_score,
            "cvss_severity": self.cvss_severity.value,
        }


SeverityBuckets = Dict[Severity, List[VulnerabilityFinding]]


def empty_buckets() -> SeverityBuckets:
    """All four buckets, always present, in ascending severity order."""
    return {severity: [] for severity in Severity}


# ---------------------------------------------------------------------------
# Check results
# ---------------------------------------------------------------------------

class CheckStatus(str, enum.Enum):
    SECURE = "secure"
    INSECURE = "insecure"
    INDETERMINATE = "indeterminate"


@dataclass
class CheckResult:
    """
    Outcome of one service check against one address.

    Fields:
        check:            Check identifier, e.g. "database_exposure"
        address:          IPv4 address that was probed
        port:             TCP port that was probed
        status:           SECURE / INSECURE / INDETERMINATE
        message:          Human-readable one-liner for the console
        details:          Evidence: banner, certificate CNs, identity,
                          vulnerability buckets, lookup errors
        duration_seconds: Wall-clock time the check took
    """
    check: str
    address: str
    port: int
    status: CheckStatus
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def secure(self) -> Optional[bool]:
        """True / False, or None when the outcome is indeterminate."""
        if self.status is CheckStatus.INDETERMINATE:
            return None
        return self.status is CheckStatus.SECURE


@dataclass
class AddressReport:
    address: str
    results: List[CheckResult] = field(default_factory=list)

    def get(self, check: str) -> Optional[CheckResult]:
        for result in self.results:
            if result.check == check:
                return result
        return None


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseCheck(ABC):
    """
    Abstract base for per-port service checks.

    To create a new check:
        1. Subclass BaseCheck
        2. Set `name`, `title` and `default_port`
        3. Implement `async execute(address, port) -> CheckResult`

    The base class handles automatically:
        - Timing (duration_seconds is set automatically)
        - Error catching (exceptions become an INDETERMINATE result)
    """

    default_port: int = 0

    def __init__(self, timeouts: Optional[ProbeTimeouts] = None, port: Optional[int] = None):
        self.timeouts = timeouts or ProbeTimeouts()
        self.port = port if port is not None else self.default_port

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique check identifier. Used as CheckResult.check."""
        ...

    @property
    def title(self) -> str:
        return self.name.replace("_", " ")

    async def run(self, address: str) -> CheckResult:
        """
        Execute the check with timing and error containment.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.
        """
        start = time.monotonic()
        try:
            result = await self.execute(address, self.port)
        except Exception as e:
            logger.exception(f"Check '{self.name}' failed for {address}:{self.port}")
            result = self.result(
                address,
                CheckStatus.INDETERMINATE,
                f"Unable to complete {self.title} check on {address}:{self.port}: {e}",
                error=f"{type(e).__name__}: {e}",
            )
        result.duration_seconds = round(time.monotonic() - start, 2)
        return result

    @abstractmethod
    async def execute(self, address: str, port: int) -> CheckResult:
        """Perform the probe and classify it. Override this in subclasses."""
        ...

    def result(self, address: str, status: CheckStatus, message: str, **details: Any) -> CheckResult:
        return CheckResult(
            check=self.name,
            address=address,
            port=self.port,
            status=status,
            message=message,
            details=details,
        )


# ---------------------------------------------------------------------------
# Scan report
# ---------------------------------------------------------------------------

@dataclass
class ScanReport:
    """
    Everything one scan produced.

    address_reports follows resolver order. `web` is None when the web
    inspection was disabled or failed; a failure leaves its reason in
    `web_error`.
    """
    hostname: str
    addresses: List[str] = field(default_factory=list)
    address_reports: List[AddressReport] = field(default_factory=list)
    web: Optional[WebReport] = None
    web_error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def results(self) -> List[CheckResult]:
        return [r for report in self.address_reports for r in report.results]

    @property
    def insecure(self) -> List[CheckResult]:
        return [r for r in self.results if r.status is CheckStatus.INSECURE]
