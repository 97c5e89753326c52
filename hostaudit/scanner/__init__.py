# hostaudit/scanner/__init__.py
"""
Host security scan pipeline.

Components:
    resolver.py      hostname → IPv4 addresses
    prober.py        bounded TCP / TLS socket probes
    inference.py     banner → SystemIdentity
    vulners.py       SystemIdentity → severity-bucketed findings
    checks/          per-port service checks
    orchestrator.py  runs everything for one hostname
"""

from hostaudit.scanner.orchestrator import ScanOrchestrator

__all__ = ["ScanOrchestrator"]
