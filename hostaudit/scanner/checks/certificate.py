# hostaudit/scanner/checks/certificate.py
"""
Self-signed certificate check.

Completes a TLS handshake with verification DISABLED and compares the
certificate's issuer CN with its subject CN. Verification has to be off:
a verifying client would reject a self-signed certificate during the
handshake and there would be nothing left to inspect.

    issuer CN != subject CN   → SECURE
    issuer CN == subject CN   → INSECURE  (self-signed)
    handshake / connect fails → INSECURE  (no usable certificate)
    certificate unparseable   → INDETERMINATE
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from hostaudit.errors import ProbeError
from hostaudit.scanner.base import BaseCheck, CheckResult, CheckStatus
from hostaudit.scanner.prober import fetch_peer_certificate

logger = logging.getLogger(__name__)


def _common_name(name: x509.Name) -> Optional[str]:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attrs[0].value) if attrs else None


def describe_certificate(der: bytes) -> Dict[str, Any]:
    """Subject/issuer CNs and validity window of a DER certificate."""
    cert = x509.load_der_x509_certificate(der)

    return {
        "subject_cn": _common_name(cert.subject),
        "issuer_cn": _common_name(cert.issuer),
        "not_after": cert.not_valid_after_utc.isoformat(),
        "serial_number": format(cert.serial_number, "X"),
    }


def is_self_signed(info: Dict[str, Any]) -> bool:
    return info.get("issuer_cn") == info.get("subject_cn")


class SelfSignedCertificateCheck(BaseCheck):

    default_port = 443

    def __init__(self, *args, server_hostname: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.server_hostname = server_hostname

    @property
    def name(self) -> str:
        return "self_signed_certificate"

    @property
    def title(self) -> str:
        return "TLS certificate"

    async def execute(self, address: str, port: int) -> CheckResult:
        try:
            der = await fetch_peer_certificate(
                address, port, self.timeouts, server_hostname=self.server_hostname,
            )
        except ProbeError as e:
            return self.result(
                address, CheckStatus.INSECURE,
                f"Error connecting to {address}:{port}: {e.reason}",
                error=e.reason,
            )

        try:
            info = describe_certificate(der)
        except ValueError as e:
            logger.warning(f"Unparseable certificate from {address}:{port}: {e}")
            return self.result(
                address, CheckStatus.INDETERMINATE,
                f"Unable to parse certificate on {address}:{port}",
                error=str(e),
            )

        if is_self_signed(info):
            return self.result(
                address, CheckStatus.INSECURE,
                f"Self-signed certificate detected on {address}:{port}",
                **info,
            )
        return self.result(
            address, CheckStatus.SECURE,
            f"Valid certificate detected on {address}:{port}",
            **info,
        )
