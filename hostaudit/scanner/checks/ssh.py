# hostaudit/scanner/checks/ssh.py
"""
OpenSSH exposure and version check.

Reads the SSH identification banner, infers the software and OS identity
from it, and (when a lookup client is configured) asks the vulnerability
audit API which known issues apply to that identity.

    refused / timeout  → SECURE         (service not exposed)
    banner read        → INSECURE       (service reachable; identity +
                                         findings attached as evidence)
    other socket fault → INDETERMINATE

A failed lookup is recorded on the result and logged. It does not change
the verdict and never aborts the scan.
"""

from __future__ import annotations

import logging
from typing import Optional

from hostaudit.errors import ProbeConnectionError, ProbeRefused, ProbeTimeout, VulnerabilityLookupError
from hostaudit.scanner.base import BaseCheck, CheckResult, CheckStatus
from hostaudit.scanner.inference import build_query, infer
from hostaudit.scanner.prober import probe_banner
from hostaudit.scanner.vulners import VulnersClient, count_findings

logger = logging.getLogger(__name__)


class SSHExposureCheck(BaseCheck):

    default_port = 22

    def __init__(self, *args, lookup_client: Optional[VulnersClient] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.lookup_client = lookup_client

    @property
    def name(self) -> str:
        return "ssh_exposure"

    @property
    def title(self) -> str:
        return "OpenSSH"

    async def execute(self, address: str, port: int) -> CheckResult:
        try:
            banner = await probe_banner(address, port, self.timeouts)
        except (ProbeRefused, ProbeTimeout) as e:
            return self.result(
                address, CheckStatus.SECURE,
                f"SSH service is not exposed on {address}:{port}",
                reason=e.reason,
            )
        except ProbeConnectionError as e:
            logger.warning(f"SSH probe error on {address}:{port}: {e.reason}")
            return self.result(
                address, CheckStatus.INDETERMINATE,
                f"Unable to read SSH banner on {address}:{port}: {e.reason}",
                error=e.reason,
            )

        banner = banner.strip()
        identity = infer(banner)
        details = {"banner": banner, "identity": identity}

        if identity.software:
            sw = identity.software[0]
            message = f"SSH service is exposed on {address}:{port}: {sw.product} {sw.version}"
        else:
            message = f"SSH service is exposed on {address}:{port} (version unknown)"

        if self.lookup_client is not None:
            await self._lookup(address, port, identity, details)

        return self.result(address, CheckStatus.INSECURE, message, **details)

    async def _lookup(self, address: str, port: int, identity, details: dict) -> None:
        if not identity.software:
            details["lookup_skipped"] = "no software identified in banner"
            return

        query = build_query(identity, self.lookup_client.config.fields)
        try:
            buckets = await self.lookup_client.query(query)
        except VulnerabilityLookupError as e:
            logger.error(f"Error querying Vulners API for {address}:{port}: {e}")
            details["lookup_error"] = str(e)
            return

        details["vulnerabilities"] = buckets
        logger.info(f"{address}:{port}: {count_findings(buckets)} known vulnerabilities")
