# hostaudit/scanner/checks/database.py
"""
Exposed database service check.

A MySQL listener reachable from outside is a finding on its own. This
check does not try to authenticate or query anything. If the server sends
its greeting packet before the deadline, the advertised version is kept as
evidence.

    refused / timeout  → SECURE         (service not exposed)
    connect succeeds   → INSECURE       (service exposed)
    other socket fault → INDETERMINATE
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from hostaudit.errors import ProbeConnectionError, ProbeError, ProbeRefused, ProbeTimeout
from hostaudit.scanner.base import BaseCheck, CheckResult, CheckStatus
from hostaudit.scanner.prober import open_connection

logger = logging.getLogger(__name__)

# MySQL handshake v10 carries a NUL-terminated server version, e.g. "8.0.36-0ubuntu0.22.04.1"
MYSQL_VERSION_RE = re.compile(rb"(\d+\.\d+\.\d+[\w.~+-]*)")


def _greeting_version(greeting: bytes) -> Optional[str]:
    m = MYSQL_VERSION_RE.search(greeting)
    return m.group(1).decode("ascii", errors="replace") if m else None


class DatabaseExposureCheck(BaseCheck):

    default_port = 3306

    @property
    def name(self) -> str:
        return "database_exposure"

    @property
    def title(self) -> str:
        return "MySQL exposure"

    async def execute(self, address: str, port: int) -> CheckResult:
        greeting_version = None
        try:
            async with open_connection(address, port, self.timeouts) as conn:
                try:
                    greeting_version = _greeting_version(await conn.read_first_chunk())
                except ProbeError as e:
                    logger.debug(f"No MySQL greeting from {address}:{port}: {e}")
        except (ProbeRefused, ProbeTimeout) as e:
            return self.result(
                address, CheckStatus.SECURE,
                f"MySQL service is not exposed on {address}:{port}",
                reason=e.reason,
            )
        except ProbeConnectionError as e:
            logger.warning(f"MySQL probe error on {address}:{port}: {e.reason}")
            return self.result(
                address, CheckStatus.INDETERMINATE,
                f"Unable to determine MySQL exposure on {address}:{port}: {e.reason}",
                error=e.reason,
            )

        message = f"MySQL service is exposed on {address}:{port}"
        if greeting_version:
            message += f" (version {greeting_version})"
        return self.result(address, CheckStatus.INSECURE, message, version=greeting_version)
