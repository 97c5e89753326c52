# hostaudit/config.py
"""
Scan configuration.

All timeouts and ports live here and are passed explicitly to the prober and
checks. Secrets and deployment overrides come from the environment:

    VULNERS_API_KEY    API key sent as X-Api-Key (optional; open POST without it)
    VULNERS_AUDIT_URL  override the audit endpoint (e.g. a self-hosted mirror)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_VULNERS_URL = "https://vulners.com/api/v4/audit/host"

# Fields requested from the audit API for every finding
DEFAULT_VULNERS_FIELDS = ["title", "short_description", "ai_score", "metrics"]


@dataclass(frozen=True)
class ProbeTimeouts:
    """
    Socket probe deadlines, in seconds.

    connect_timeout bounds the TCP connect (and TLS handshake).
    read_timeout bounds the first banner chunk, measured from connect
    initiation, so the defaults give every probe a 5 second ceiling.
    """
    connect_timeout: float = 5.0
    read_timeout: float = 5.0


@dataclass(frozen=True)
class ServicePorts:
    ssh: int = 22
    smtp: int = 25
    https: int = 443
    mysql: int = 3306


@dataclass
class VulnersConfig:
    endpoint: str = DEFAULT_VULNERS_URL
    api_key: Optional[str] = field(default=None, repr=False)
    timeout: float = 15.0
    fields: List[str] = field(default_factory=lambda: list(DEFAULT_VULNERS_FIELDS))

    @classmethod
    def from_env(cls, api_key: Optional[str] = None) -> "VulnersConfig":
        return cls(
            endpoint=os.getenv("VULNERS_AUDIT_URL") or DEFAULT_VULNERS_URL,
            api_key=api_key or os.getenv("VULNERS_API_KEY") or None,
        )


@dataclass
class ScanConfig:
    hostname: str
    timeouts: ProbeTimeouts = field(default_factory=ProbeTimeouts)
    ports: ServicePorts = field(default_factory=ServicePorts)
    vulners: VulnersConfig = field(default_factory=VulnersConfig)

    # Addresses scanned concurrently. 1 keeps a single socket open at a time.
    workers: int = 1

    lookup: bool = True                 # query the audit API for SSH banners
    web: bool = True                    # inspect http://<hostname>
    http_timeout: float = 15.0
    max_redirects: int = 10

    @property
    def url(self) -> str:
        return f"http://{self.hostname}"

    @classmethod
    def from_env(cls, hostname: str, api_key: Optional[str] = None, **overrides) -> "ScanConfig":
        return cls(
            hostname=hostname,
            vulners=VulnersConfig.from_env(api_key=api_key),
            **overrides,
        )
