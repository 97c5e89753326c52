# tests/test_orchestrator.py
import asyncio

import httpx
import pytest

from hostaudit.config import ProbeTimeouts, ScanConfig, ServicePorts
from hostaudit.scanner import ScanOrchestrator
from hostaudit.scanner import orchestrator as orchestrator_module
from hostaudit.scanner.base import BaseCheck, CheckStatus
from hostaudit.scanner.checks import ALL_CHECKS


def _fake_resolve(addresses):
    async def fake(hostname, resolver=None, lifetime=None):
        return list(addresses)
    return fake


class RecordingCheck(BaseCheck):
    """Records (check, address) calls; sleeps longer for earlier addresses."""

    calls = []
    delays = {}
    check_name = "recording"

    @property
    def name(self):
        return self.check_name

    async def execute(self, address, port):
        RecordingCheck.calls.append((self.name, address))
        await asyncio.sleep(self.delays.get(address, 0))
        return self.result(address, CheckStatus.SECURE, f"{self.name} ok on {address}")


class FirstCheck(RecordingCheck):
    check_name = "first"


class SecondCheck(RecordingCheck):
    check_name = "second"


FAKE_CHECKS = {"first": FirstCheck, "second": SecondCheck}


@pytest.fixture(autouse=True)
def reset_recording():
    RecordingCheck.calls = []
    RecordingCheck.delays = {}


def _config(**overrides):
    overrides.setdefault("lookup", False)
    overrides.setdefault("web", False)
    return ScanConfig(hostname="example.com", **overrides)


def test_zero_addresses_runs_zero_checks(monkeypatch):
    monkeypatch.setattr(orchestrator_module, "resolve", _fake_resolve([]))

    report = asyncio.run(ScanOrchestrator(_config(), checks=FAKE_CHECKS).execute())

    assert report.addresses == []
    assert report.address_reports == []
    assert report.results == []
    assert RecordingCheck.calls == []


def test_every_address_gets_every_check_in_order(monkeypatch):
    monkeypatch.setattr(orchestrator_module, "resolve", _fake_resolve(["192.0.2.1", "192.0.2.2"]))

    report = asyncio.run(ScanOrchestrator(_config(), checks=FAKE_CHECKS).execute())

    assert [ar.address for ar in report.address_reports] == ["192.0.2.1", "192.0.2.2"]
    for ar in report.address_reports:
        assert [r.check for r in ar.results] == ["first", "second"]
    # sequential: one address finishes before the next starts
    assert RecordingCheck.calls == [
        ("first", "192.0.2.1"), ("second", "192.0.2.1"),
        ("first", "192.0.2.2"), ("second", "192.0.2.2"),
    ]


def test_worker_pool_preserves_resolver_order(monkeypatch):
    addresses = ["192.0.2.1", "192.0.2.2", "192.0.2.3"]
    monkeypatch.setattr(orchestrator_module, "resolve", _fake_resolve(addresses))
    RecordingCheck.delays = {"192.0.2.1": 0.2, "192.0.2.2": 0.1}

    report = asyncio.run(ScanOrchestrator(_config(workers=3), checks=FAKE_CHECKS).execute())

    assert [ar.address for ar in report.address_reports] == addresses
    # the fastest address started its second check before the slowest finished
    assert RecordingCheck.calls.index(("second", "192.0.2.3")) < RecordingCheck.calls.index(("second", "192.0.2.1"))


def test_build_checks_applies_config():
    config = _config(
        timeouts=ProbeTimeouts(1.0, 2.0),
        ports=ServicePorts(ssh=2222, smtp=2525, https=8443, mysql=13306),
    )
    checks = ScanOrchestrator(config).build_checks()

    assert [c.name for c in checks] == list(ALL_CHECKS)
    assert [c.port for c in checks] == [13306, 8443, 2525, 2222]
    assert all(c.timeouts == ProbeTimeouts(1.0, 2.0) for c in checks)
    assert checks[1].server_hostname == "example.com"
    assert checks[3].lookup_client is None


def test_lookup_client_created_when_enabled():
    orchestrator = ScanOrchestrator(_config(lookup=True))
    ssh = orchestrator.build_checks()[3]
    assert ssh.lookup_client is orchestrator.lookup_client
    assert ssh.lookup_client is not None


def test_real_checks_against_closed_ports(monkeypatch, closed_port):
    monkeypatch.setattr(orchestrator_module, "resolve", _fake_resolve(["127.0.0.1"]))
    config = _config(
        timeouts=ProbeTimeouts(1.0, 0.5),
        ports=ServicePorts(ssh=closed_port, smtp=closed_port, https=closed_port, mysql=closed_port),
    )

    report = asyncio.run(ScanOrchestrator(config).execute())
    (address_report,) = report.address_reports

    statuses = {r.check: r.status for r in address_report.results}
    assert statuses == {
        "database_exposure": CheckStatus.SECURE,
        "self_signed_certificate": CheckStatus.INSECURE,
        "mail_tls": CheckStatus.SECURE,
        "ssh_exposure": CheckStatus.SECURE,
    }
    assert [r.check for r in report.insecure] == ["self_signed_certificate"]


def test_web_failure_is_recorded_not_raised(monkeypatch):
    monkeypatch.setattr(orchestrator_module, "resolve", _fake_resolve([]))

    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    orchestrator = ScanOrchestrator(
        _config(web=True), checks=FAKE_CHECKS, web_transport=httpx.MockTransport(handler),
    )
    report = asyncio.run(orchestrator.execute())

    assert report.web is None
    assert "http://example.com" in report.web_error


def test_web_report_attached(monkeypatch):
    monkeypatch.setattr(orchestrator_module, "resolve", _fake_resolve([]))
    orchestrator = ScanOrchestrator(
        _config(web=True), checks=FAKE_CHECKS,
        web_transport=httpx.MockTransport(lambda request: httpx.Response(200)),
    )
    report = asyncio.run(orchestrator.execute())

    assert report.web is not None
    assert report.web.url == "http://example.com"
    assert report.web_error is None
