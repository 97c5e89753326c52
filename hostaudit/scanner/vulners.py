# hostaudit/scanner/vulners.py
"""
Vulnerability lookup client for the Vulners host audit API.

Takes the identity inferred from a banner, asks the audit endpoint which
known vulnerabilities apply, and sorts the answer into four severity
buckets (low, medium, high, critical).

Request:
    POST https://vulners.com/api/v4/audit/host
    {
        "software": [{"part": "a", "vendor": "openbsd", "product": "openssh", "version": "8.9p1"}],
        "operating_system": {"part": "o", "vendor": "canonical", "product": "ubuntu", "version": "22.04"},
        "fields": ["title", "short_description", "ai_score", "metrics"]
    }

Response (relevant parts):
    {
        "result": [
            {"vulnerabilities": [
                {"title": "...", "short_description": "...", "ai_score": 8.1,
                 "metrics": {"cvss": {"score": 8.1, "severity": "HIGH"}}}
            ]}
        ]
    }

Failure policy:
    - transport error, timeout, non-2xx, non-JSON body → VulnerabilityLookupError
    - severity label outside the four levels → UnknownSeverityError
      (a broken API contract fails the lookup instead of losing a finding)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from hostaudit.config import VulnersConfig
from hostaudit.errors import VulnerabilityLookupError
from hostaudit.scanner.base import (
    Severity,
    SeverityBuckets,
    VulnerabilityFinding,
    VulnerabilityQuery,
    empty_buckets,
)

logger = logging.getLogger(__name__)

USER_AGENT = "hostaudit/1.0 (+security posture scanner)"


def _safe_float(value: Any, field_name: str = "value") -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Dropping non-numeric {field_name} from audit response: {value!r}")
        return None


def _parse_finding(vuln: Any) -> VulnerabilityFinding:
    if not isinstance(vuln, dict):
        raise VulnerabilityLookupError(f"Malformed vulnerability entry: {vuln!r}")

    cvss = (vuln.get("metrics") or {}).get("cvss") or {}
    severity = Severity.from_label(cvss.get("severity"))

    return VulnerabilityFinding(
        title=vuln.get("title") or "",
        description=vuln.get("short_description") or "",
        ai_score=_safe_float(vuln.get("ai_score"), "ai_score"),
        cvss_score=_safe_float(cvss.get("score"), "cvss score"),
        cvss_severity=severity,
    )


def parse_vulnerabilities(payload: Any) -> SeverityBuckets:
    """
    Bucket every finding in an audit response by CVSS severity.

    Findings keep their response order inside each bucket. All four buckets
    are always present, even when empty.
    """
    buckets = empty_buckets()
    if not isinstance(payload, dict):
        return buckets

    results = payload.get("result") or []
    if not isinstance(results, list):
        raise VulnerabilityLookupError("Audit response 'result' is not a list")

    for entry in results:
        vulns = entry.get("vulnerabilities") if isinstance(entry, dict) else None
        for vuln in vulns or []:
            finding = _parse_finding(vuln)
            buckets[finding.cvss_severity].append(finding)

    return buckets


def count_findings(buckets: SeverityBuckets) -> int:
    return sum(len(findings) for findings in buckets.values())


class VulnersClient:
    """
    Async client for the host audit endpoint.

    A new HTTP client is opened per query; lookups happen at most once per
    reachable SSH service so there is nothing worth pooling.
    """

    def __init__(
        self,
        config: Optional[VulnersConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or VulnersConfig()
        self._transport = transport

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.config.api_key:
            headers["X-Api-Key"] = self.config.api_key
        return headers

    async def query(self, query: VulnerabilityQuery) -> SeverityBuckets:
        """Submit an identity and return its findings bucketed by severity."""
        endpoint = self.config.endpoint
        payload = query.to_payload()
        logger.debug(f"Vulners audit request: {payload}")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
            ) as client:
                resp = await client.post(endpoint, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise VulnerabilityLookupError(
                f"Vulners API request timed out after {self.config.timeout}s"
            ) from e
        except httpx.RequestError as e:
            raise VulnerabilityLookupError(f"Vulners API request failed: {e}") from e

        if not resp.is_success:
            raise VulnerabilityLookupError(
                f"Vulners API request failed with status {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise VulnerabilityLookupError("Vulners API returned a non-JSON body") from e

        buckets = parse_vulnerabilities(body)
        logger.info(
            f"Vulners audit: {count_findings(buckets)} finding(s) for "
            f"{', '.join(c.product + ' ' + c.version for c in query.software) or 'no software'}"
        )
        return buckets
