# hostaudit/__init__.py
"""
hostaudit: security posture scanner for a single hostname.

Resolves the hostname, probes MySQL, HTTPS, SMTP and SSH on every IPv4
address, looks up known vulnerabilities for the SSH banner, and checks the
site's HTTP security headers.
"""

from __future__ import annotations

import logging

__version__ = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    """
    Log to stderr so stdout only carries the report.
    Accepts a level name (DEBUG, INFO, ...) in any case.
    """
    numeric = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=True,
    )

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
