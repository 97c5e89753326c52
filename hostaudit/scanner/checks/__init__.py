# hostaudit/scanner/checks/__init__.py
"""
Per-port service checks.
Each check probes one port on one address and returns a CheckResult.
Checks never raise past BaseCheck.run().
"""
from hostaudit.scanner.checks.database import DatabaseExposureCheck
from hostaudit.scanner.checks.certificate import SelfSignedCertificateCheck
from hostaudit.scanner.checks.mail import MailTLSCheck
from hostaudit.scanner.checks.ssh import SSHExposureCheck

# Registry of all checks.
# ORDER MATTERS: the orchestrator runs them in this order for every address.
ALL_CHECKS = {
    "database_exposure": DatabaseExposureCheck,
    "self_signed_certificate": SelfSignedCertificateCheck,
    "mail_tls": MailTLSCheck,
    "ssh_exposure": SSHExposureCheck,
}

__all__ = [
    "DatabaseExposureCheck", "SelfSignedCertificateCheck",
    "MailTLSCheck", "SSHExposureCheck", "ALL_CHECKS",
]
