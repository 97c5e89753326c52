# tests/test_reporting.py
import io
import json

from hostaudit.reporting import ConsoleReporter, report_to_dict, to_json
from hostaudit.scanner.base import (
    AddressReport,
    CheckResult,
    CheckStatus,
    ScanReport,
    Severity,
    VulnerabilityFinding,
    empty_buckets,
)
from hostaudit.scanner.inference import infer
from hostaudit.tools.header_check import WebCheck, WebReport


def _report():
    buckets = empty_buckets()
    buckets[Severity.CRITICAL].append(VulnerabilityFinding(
        title="CVE-2024-6387",
        description="Signal handler race condition in sshd allows unauthenticated remote code execution",
        ai_score=8.1,
        cvss_score=8.1,
        cvss_severity=Severity.CRITICAL,
    ))
    ssh = CheckResult(
        check="ssh_exposure", address="192.0.2.1", port=22,
        status=CheckStatus.INSECURE,
        message="SSH service is exposed on 192.0.2.1:22: openssh 8.9p1",
        details={"banner": "SSH-2.0-OpenSSH_8.9p1", "identity": infer("SSH-2.0-OpenSSH_8.9p1"),
                 "vulnerabilities": buckets},
    )
    mysql = CheckResult(
        check="database_exposure", address="192.0.2.1", port=3306,
        status=CheckStatus.SECURE,
        message="MySQL service is not exposed on 192.0.2.1:3306",
    )
    mail = CheckResult(
        check="mail_tls", address="192.0.2.1", port=25,
        status=CheckStatus.INDETERMINATE,
        message="Unable to read SMTP banner on 192.0.2.1:25: connection reset",
    )
    web = WebReport(
        url="http://example.com",
        final_url="http://example.com",
        status_code=200,
        checks=[
            WebCheck("redirects", "final_https", False, "Final URL is not served over HTTPS: http://example.com"),
            WebCheck("cookies", "none", True, "No Set-Cookie headers found"),
        ],
    )
    return ScanReport(
        hostname="example.com",
        addresses=["192.0.2.1"],
        address_reports=[AddressReport("192.0.2.1", [mysql, mail, ssh])],
        web=web,
    )


def _render(report):
    out = io.StringIO()
    ConsoleReporter(stream=out, color=False).render(report)
    return out.getvalue()


def test_console_marks_each_status():
    text = _render(_report())

    assert "Network Tests for 192.0.2.1..." in text
    assert "✅ MySQL service is not exposed on 192.0.2.1:3306" in text
    assert "⚠ Unable to read SMTP banner" in text
    assert "❌ SSH service is exposed on 192.0.2.1:22: openssh 8.9p1" in text


def test_console_lists_findings_by_severity():
    text = _render(_report())

    assert "CRITICAL (1)" in text
    assert "CVE-2024-6387 [CVSS 8.1]:" in text
    assert "HIGH (" not in text


def test_console_web_sections():
    text = _render(_report())

    assert "Redirect Chain and HTTPS Tests" in text
    assert "❌ Final URL is not served over HTTPS: http://example.com" in text
    assert "Cookies" in text
    assert "Security Headers" not in text


def test_console_wraps_long_lines():
    out = io.StringIO()
    ConsoleReporter(stream=out, color=False, width=40).render(_report())
    assert all(len(line) <= 40 for line in out.getvalue().splitlines() if "CVE" in line)


def test_console_no_addresses_and_web_error():
    report = ScanReport(hostname="nowhere.example", web_error="Error fetching http://nowhere.example: boom")
    text = _render(report)

    assert "⚠ No IPv4 addresses found for nowhere.example" in text
    assert "❌ Error: Error fetching http://nowhere.example: boom" in text


def test_color_output_contains_ansi_codes():
    out = io.StringIO()
    ConsoleReporter(stream=out, color=True).render(_report())
    assert "\x1b[" in out.getvalue()


def test_json_report():
    data = json.loads(to_json(_report()))

    (address_report,) = data["address_reports"]
    ssh = address_report["results"][2]
    assert ssh["status"] == "insecure"
    assert ssh["secure"] is False
    assert ssh["details"]["identity"]["software"][0]["product"] == "openssh"
    assert list(ssh["details"]["vulnerabilities"]) == ["low", "medium", "high", "critical"]
    assert ssh["details"]["vulnerabilities"]["critical"][0]["cvss_severity"] == "critical"
    assert address_report["results"][1]["secure"] is None
    assert data["web"]["checks"][0]["section"] == "redirects"


def test_report_to_dict_without_web():
    data = report_to_dict(ScanReport(hostname="example.com"))
    assert data["web"] is None
    assert data["address_reports"] == []
