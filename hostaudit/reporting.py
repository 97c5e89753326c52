# hostaudit/reporting.py
"""
Console and JSON output for a ScanReport.

Console layout:

    Network Tests for 203.0.113.10
      ✅ MySQL service is not exposed on 203.0.113.10:3306
      ❌ SSH service is exposed on 203.0.113.10:22: openssh 8.9p1
         CRITICAL (1)
           CVE-2024-6387: regreSSHion ...
    Redirect Chain and HTTPS Tests
      ✅ All redirects use HTTPS
    ...

Green ✅ is secure / passed, red ❌ is insecure / failed, yellow ⚠ is
indeterminate.
"""

from __future__ import annotations

import json
import sys
import textwrap
from dataclasses import asdict
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO

from colorama import Fore, Style

from hostaudit.scanner.base import (
    AddressReport,
    CheckResult,
    CheckStatus,
    ScanReport,
    Severity,
    SystemIdentity,
    VulnerabilityFinding,
)
from hostaudit.tools.header_check import WebCheck, WebReport

PASS_MARK = "✅"
FAIL_MARK = "❌"
WARN_MARK = "⚠"

STATUS_STYLE = {
    CheckStatus.SECURE: (Fore.GREEN, PASS_MARK),
    CheckStatus.INSECURE: (Fore.RED, FAIL_MARK),
    CheckStatus.INDETERMINATE: (Fore.YELLOW, WARN_MARK),
}

SEVERITY_COLORS = {
    Severity.LOW: Fore.GREEN,
    Severity.MEDIUM: Fore.YELLOW,
    Severity.HIGH: Fore.RED,
    Severity.CRITICAL: Fore.MAGENTA,
}

# Section headings for WebCheck.section, in display order
WEB_SECTIONS = [
    ("redirects", "Redirect Chain and HTTPS Tests"),
    ("headers", "Security Headers"),
    ("csp", "Content Security Policy (CSP)"),
    ("cookies", "Cookies"),
]

INDENT = "  "


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (SystemIdentity, VulnerabilityFinding)):
        return value.to_dict()
    if isinstance(value, dict):
        return {str(_jsonable(k)): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def result_to_dict(result: CheckResult) -> Dict[str, Any]:
    return {
        "check": result.check,
        "address": result.address,
        "port": result.port,
        "status": result.status.value,
        "secure": result.secure,
        "message": result.message,
        "details": _jsonable(result.details),
        "duration_seconds": result.duration_seconds,
    }


def report_to_dict(report: ScanReport) -> Dict[str, Any]:
    return {
        "hostname": report.hostname,
        "addresses": list(report.addresses),
        "address_reports": [
            {
                "address": ar.address,
                "results": [result_to_dict(r) for r in ar.results],
            }
            for ar in report.address_reports
        ],
        "web": asdict(report.web) if report.web else None,
        "web_error": report.web_error,
        "duration_seconds": report.duration_seconds,
    }


def to_json(report: ScanReport, indent: Optional[int] = 2) -> str:
    return json.dumps(report_to_dict(report), indent=indent, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

class ConsoleReporter:
    """Writes a human-readable report. Pass color=False for plain text."""

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True, width: int = 80):
        self.stream = stream or sys.stdout
        self.color = color
        self.width = width

    def _paint(self, text: str, color: str, bright: bool = False) -> str:
        if not self.color:
            return text
        style = Style.BRIGHT if bright else ""
        return f"{style}{color}{text}{Style.RESET_ALL}"

    def _write(self, text: str = "", depth: int = 0) -> None:
        self.stream.write(f"{INDENT * depth}{text}\n")

    def _wrapped(self, text: str, depth: int, color: str = "", dim: bool = False) -> None:
        prefix = INDENT * depth
        for line in textwrap.wrap(text, width=self.width, initial_indent=prefix,
                                  subsequent_indent=prefix + INDENT):
            if self.color and (color or dim):
                line = f"{Style.DIM if dim else ''}{color}{line}{Style.RESET_ALL}"
            self.stream.write(line + "\n")

    def heading(self, text: str) -> None:
        self._write()
        self._write(self._paint(text, Fore.CYAN, bright=True))

    def status(self, status: CheckStatus, message: str, depth: int = 1) -> None:
        color, mark = STATUS_STYLE[status]
        self._write(self._paint(f"{mark} {message}", color), depth)

    # -------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------

    def findings(self, buckets: Dict[Severity, List[VulnerabilityFinding]], depth: int = 2) -> None:
        total = sum(len(v) for v in buckets.values())
        if not total:
            self._write(self._paint("No known vulnerabilities", Fore.GREEN), depth)
            return

        for severity in reversed(list(Severity)):
            found = buckets.get(severity) or []
            if not found:
                continue
            color = SEVERITY_COLORS[severity]
            self._write(self._paint(f"{severity.value.upper()} ({len(found)})", color, bright=True), depth)
            for finding in found:
                score = f" [CVSS {finding.cvss_score}]" if finding.cvss_score is not None else ""
                self._wrapped(f"{finding.title}{score}: {finding.description}", depth + 1, color)

    def check_result(self, result: CheckResult) -> None:
        self.status(result.status, result.message)
        details = result.details

        if "vulnerabilities" in details:
            self.findings(details["vulnerabilities"])
        elif "lookup_error" in details:
            self._write(self._paint(f"{WARN_MARK} Vulnerability lookup failed: {details['lookup_error']}",
                                    Fore.YELLOW), 2)

    def address(self, report: AddressReport) -> None:
        self.heading(f"Network Tests for {report.address}...")
        for result in report.results:
            self.check_result(result)

    def web_check(self, check: WebCheck) -> None:
        status = CheckStatus.SECURE if check.passed else CheckStatus.INSECURE
        self.status(status, check.message)
        for item in check.details:
            self._wrapped(item, 2, Fore.RED if not check.passed else "")

    def web(self, web: Optional[WebReport], error: Optional[str] = None) -> None:
        if error:
            self.heading("Web Tests")
            self.status(CheckStatus.INSECURE, f"Error: {error}")
            return
        if web is None:
            return
        for section, title in WEB_SECTIONS:
            checks = web.section(section)
            if not checks:
                continue
            self.heading(title)
            for check in checks:
                self.web_check(check)

    def render(self, report: ScanReport) -> None:
        if not report.addresses:
            self.heading(f"Network Tests for {report.hostname}...")
            self.status(CheckStatus.INDETERMINATE, f"No IPv4 addresses found for {report.hostname}")
        for address_report in report.address_reports:
            self.address(address_report)
        self.web(report.web, report.web_error)
        self._write()
