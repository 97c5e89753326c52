# hostaudit/errors.py
"""
Exception hierarchy for the scanner.

Probe errors are always handled inside the check that raised them. Lookup
and web errors fail only the lookup or inspection they belong to.
"""

from __future__ import annotations


class HostAuditError(Exception):
    """Base class for all scanner errors."""


# ---------------------------------------------------------------------------
# Socket probing
# ---------------------------------------------------------------------------

class ProbeError(HostAuditError):
    """A socket probe did not produce a banner or connection."""

    def __init__(self, host: str, port: int, reason: str = ""):
        self.host = host
        self.port = port
        self.reason = reason
        msg = f"{host}:{port}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ProbeTimeout(ProbeError):
    """Connect, handshake or first read did not finish before the deadline."""


class ProbeRefused(ProbeError):
    """The target actively refused the connection."""


class ProbeConnectionError(ProbeError):
    """Any other socket-level fault (reset, unreachable, peer closed early)."""


# ---------------------------------------------------------------------------
# Vulnerability lookup
# ---------------------------------------------------------------------------

class VulnerabilityLookupError(HostAuditError):
    """The audit API failed, answered non-2xx, or returned an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UnknownSeverityError(VulnerabilityLookupError):
    """The audit API returned a CVSS severity outside low/medium/high/critical."""

    def __init__(self, label: object):
        self.label = label
        super().__init__(f"Unrecognised CVSS severity: {label!r}")


# ---------------------------------------------------------------------------
# Web inspection
# ---------------------------------------------------------------------------

class WebInspectionError(HostAuditError):
    """The target URL could not be fetched."""
