# hostaudit/scanner/orchestrator.py
"""
Scan Orchestrator.

Coordinates the full scan pipeline:

    1. Resolve the hostname to IPv4 addresses
    2. For each address, run every check in ALL_CHECKS order
    3. Inspect the hostname's HTTP response (optional)
    4. Return a ScanReport

An empty resolution produces a report with zero address reports and no
checks are run. Every resolved address gets exactly one CheckResult per
check. Nothing in here raises for a target-side failure.

Usage:
    from hostaudit.config import ScanConfig
    from hostaudit.scanner import ScanOrchestrator

    report = asyncio.run(ScanOrchestrator(ScanConfig.from_env("example.com")).execute())
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Type

import dns.asyncresolver
import httpx

from hostaudit.config import ScanConfig
from hostaudit.errors import WebInspectionError
from hostaudit.scanner.base import AddressReport, BaseCheck, ScanReport
from hostaudit.scanner.checks import ALL_CHECKS
from hostaudit.scanner.resolver import resolve
from hostaudit.scanner.vulners import VulnersClient
from hostaudit.tools.header_check import inspect

logger = logging.getLogger(__name__)

# check name → ServicePorts attribute
CHECK_PORTS: Dict[str, str] = {
    "database_exposure": "mysql",
    "self_signed_certificate": "https",
    "mail_tls": "smtp",
    "ssh_exposure": "ssh",
}


class ScanOrchestrator:

    def __init__(
        self,
        config: ScanConfig,
        checks: Optional[Dict[str, Type[BaseCheck]]] = None,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
        lookup_client: Optional[VulnersClient] = None,
        web_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.checks = checks if checks is not None else ALL_CHECKS
        self.resolver = resolver
        self.web_transport = web_transport

        if lookup_client is None and config.lookup:
            lookup_client = VulnersClient(config.vulners)
        self.lookup_client = lookup_client if config.lookup else None

    # -------------------------------------------------------------------
    # Check construction
    # -------------------------------------------------------------------

    def _check_kwargs(self, name: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"timeouts": self.config.timeouts}

        port_attr = CHECK_PORTS.get(name)
        if port_attr:
            kwargs["port"] = getattr(self.config.ports, port_attr)

        if name == "self_signed_certificate":
            kwargs["server_hostname"] = self.config.hostname
        elif name == "ssh_exposure":
            kwargs["lookup_client"] = self.lookup_client

        return kwargs

    def build_checks(self) -> List[BaseCheck]:
        """Fresh check instances, in registry order."""
        return [cls(**self._check_kwargs(name)) for name, cls in self.checks.items()]

    # -------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------

    async def scan_address(self, address: str) -> AddressReport:
        """Run every check against one address, one at a time."""
        report = AddressReport(address=address)
        for check in self.build_checks():
            result = await check.run(address)
            logger.info(
                f"[{address}] {check.name}: {result.status.value} "
                f"({result.duration_seconds}s)"
            )
            report.results.append(result)
        return report

    async def scan_addresses(self, addresses: List[str]) -> List[AddressReport]:
        """
        Scan every address. With workers > 1 up to that many addresses are
        in flight at once; the returned list always follows `addresses`.
        """
        workers = max(1, self.config.workers)
        if workers == 1:
            return [await self.scan_address(a) for a in addresses]

        semaphore = asyncio.Semaphore(workers)

        async def bounded(address: str) -> AddressReport:
            async with semaphore:
                return await self.scan_address(address)

        return list(await asyncio.gather(*(bounded(a) for a in addresses)))

    async def inspect_web(self, report: ScanReport) -> None:
        url = self.config.url
        try:
            report.web = await inspect(
                url,
                timeout=self.config.http_timeout,
                max_redirects=self.config.max_redirects,
                transport=self.web_transport,
            )
        except WebInspectionError as e:
            logger.warning(f"Web inspection of {url} failed: {e}")
            report.web_error = str(e)

    async def execute(self) -> ScanReport:
        start = time.monotonic()
        hostname = self.config.hostname
        report = ScanReport(hostname=hostname)

        logger.info(f"Starting scan of {hostname}")

        report.addresses = await resolve(hostname, resolver=self.resolver)
        if report.addresses:
            logger.info(f"{hostname} resolved to {', '.join(report.addresses)}")
            report.address_reports = await self.scan_addresses(report.addresses)
        else:
            logger.warning(f"No IPv4 addresses for {hostname}, skipping service checks")

        if self.config.web:
            await self.inspect_web(report)

        report.duration_seconds = round(time.monotonic() - start, 2)

        logger.info(
            f"Scan of {hostname} completed in {report.duration_seconds}s: "
            f"{len(report.results)} check(s), {len(report.insecure)} insecure"
        )
        return report
