# tests/test_cli.py
import json

import pytest

from hostaudit import cli
from hostaudit.scanner.base import ScanReport
from hostaudit.tools.header_check import WebReport


class FakeOrchestrator:
    instances = []
    report = None

    def __init__(self, config, checks=None):
        self.config = config
        self.checks = checks
        FakeOrchestrator.instances.append(self)

    async def execute(self):
        return FakeOrchestrator.report


@pytest.fixture
def fake_orchestrator(monkeypatch):
    FakeOrchestrator.instances = []
    FakeOrchestrator.report = None
    monkeypatch.setattr(cli, "ScanOrchestrator", FakeOrchestrator)
    monkeypatch.delenv("VULNERS_API_KEY", raising=False)
    return FakeOrchestrator


def test_missing_hostname_exits_2(monkeypatch, fake_orchestrator, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt="": "")

    assert cli.main(["--no-color"]) == 2
    assert "No hostname provided" in capsys.readouterr().err
    assert fake_orchestrator.instances == []


def test_prompted_hostname_is_scanned(monkeypatch, fake_orchestrator):
    monkeypatch.setattr("builtins.input", lambda prompt="": "  example.com ")
    fake_orchestrator.report = ScanReport(hostname="example.com", addresses=["192.0.2.1"])

    assert cli.main(["--no-color"]) == 0
    assert fake_orchestrator.instances[0].config.hostname == "example.com"


def test_flags_build_config(fake_orchestrator):
    fake_orchestrator.report = ScanReport(hostname="example.com", addresses=["192.0.2.1"])

    cli.main([
        "example.com", "--no-web", "--no-lookup", "--workers", "4",
        "--connect-timeout", "2", "--read-timeout", "3", "--api-key", "k",
        "--check", "ssh_exposure", "--check", "database_exposure", "--no-color",
    ])
    orchestrator = fake_orchestrator.instances[0]
    config = orchestrator.config

    assert config.web is False
    assert config.lookup is False
    assert config.workers == 4
    assert config.timeouts.connect_timeout == 2.0
    assert config.timeouts.read_timeout == 3.0
    assert config.vulners.api_key == "k"
    assert list(orchestrator.checks) == ["database_exposure", "ssh_exposure"]


def test_nothing_scanned_exits_1(fake_orchestrator):
    fake_orchestrator.report = ScanReport(hostname="nowhere.example")
    assert cli.main(["nowhere.example", "--no-color"]) == 1


def test_web_only_report_exits_0(fake_orchestrator):
    fake_orchestrator.report = ScanReport(
        hostname="example.com",
        web=WebReport(url="http://example.com", final_url="http://example.com", status_code=200),
    )
    assert cli.main(["example.com", "--no-color"]) == 0


def test_json_output(fake_orchestrator, capsys):
    fake_orchestrator.report = ScanReport(hostname="example.com", addresses=["192.0.2.1"])

    assert cli.main(["example.com", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["hostname"] == "example.com"
    assert data["addresses"] == ["192.0.2.1"]


def test_invalid_workers_exits_2(fake_orchestrator):
    assert cli.main(["example.com", "--workers", "0"]) == 2


def test_unknown_check_is_a_usage_error(fake_orchestrator):
    with pytest.raises(SystemExit) as exc:
        cli.main(["example.com", "--check", "telnet"])
    assert exc.value.code == 2
