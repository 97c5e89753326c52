# hostaudit/scanner/checks/mail.py
"""
Mail service without TLS check.

Reads the SMTP greeting and looks for ESMTP / STARTTLS markers in it.

    banner has "ESMTP" and lacks "STARTTLS" → INSECURE
    any other banner                        → SECURE
    refused / timeout                       → SECURE (service not exposed)
    other socket fault                      → INDETERMINATE

Note that "not exposed" and "supports TLS" are both reported as SECURE.
"""

from __future__ import annotations

import logging

from hostaudit.errors import ProbeConnectionError, ProbeRefused, ProbeTimeout
from hostaudit.scanner.base import BaseCheck, CheckResult, CheckStatus
from hostaudit.scanner.prober import probe_banner

logger = logging.getLogger(__name__)


def lacks_tls(banner: str) -> bool:
    return "ESMTP" in banner and "STARTTLS" not in banner


class MailTLSCheck(BaseCheck):

    default_port = 25

    @property
    def name(self) -> str:
        return "mail_tls"

    @property
    def title(self) -> str:
        return "SMTP TLS"

    async def execute(self, address: str, port: int) -> CheckResult:
        try:
            banner = await probe_banner(address, port, self.timeouts)
        except (ProbeRefused, ProbeTimeout) as e:
            return self.result(
                address, CheckStatus.SECURE,
                f"Email service is not exposed on {address}:{port}",
                reason=e.reason,
            )
        except ProbeConnectionError as e:
            logger.warning(f"SMTP probe error on {address}:{port}: {e.reason}")
            return self.result(
                address, CheckStatus.INDETERMINATE,
                f"Unable to read SMTP banner on {address}:{port}: {e.reason}",
                error=e.reason,
            )

        banner = banner.strip()
        if lacks_tls(banner):
            return self.result(
                address, CheckStatus.INSECURE,
                f"Email service on {address}:{port} does not support SSL/TLS",
                banner=banner,
            )
        return self.result(
            address, CheckStatus.SECURE,
            f"Email service on {address}:{port} supports SSL/TLS",
            banner=banner,
        )
