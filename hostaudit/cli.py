# hostaudit/cli.py
"""
Command line entry point.

    hostaudit example.com
    hostaudit example.com --check ssh_exposure --no-web     # SSH audit only
    hostaudit example.com --json > report.json

Exit codes:
    0  scan completed
    1  nothing to report (no address resolved and no web report)
    2  usage error or no hostname given
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

from hostaudit import __version__, configure_logging
from hostaudit.config import ProbeTimeouts, ScanConfig
from hostaudit.reporting import ConsoleReporter, to_json
from hostaudit.scanner.checks import ALL_CHECKS
from hostaudit.scanner.orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOTHING_SCANNED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hostaudit",
        description="Security posture scanner: service exposure, TLS, SSH vulnerabilities and HTTP headers",
    )
    p.add_argument("hostname", nargs="?", help="Hostname to scan (prompted for when omitted)")
    p.add_argument("--no-web", action="store_true", help="Skip the HTTP header inspection")
    p.add_argument("--no-lookup", action="store_true", help="Skip the Vulners vulnerability lookup")
    p.add_argument("--check", action="append", dest="checks", choices=list(ALL_CHECKS),
                   metavar="NAME",
                   help=f"Run only this check (repeatable). One of: {', '.join(ALL_CHECKS)}")
    p.add_argument("--workers", type=int, default=1,
                   help="Addresses scanned concurrently (default: 1)")
    p.add_argument("--connect-timeout", type=float, default=5.0, metavar="S",
                   help="TCP/TLS connect timeout in seconds (default: 5)")
    p.add_argument("--read-timeout", type=float, default=5.0, metavar="S",
                   help="Banner read deadline in seconds, from connect start (default: 5)")
    p.add_argument("--api-key", help="Vulners API key (default: $VULNERS_API_KEY)")
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    p.add_argument("--log-level", default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                   type=str.upper, help="Log level for stderr (default: WARNING)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def prompt_hostname(color: bool = True) -> str:
    label = "Please enter a hostname: "
    if color:
        label = f"{Style.BRIGHT}{Fore.CYAN}{label}{Style.RESET_ALL}"
    try:
        return input(label).strip()
    except EOFError:
        return ""


def build_config(args: argparse.Namespace, hostname: str) -> ScanConfig:
    return ScanConfig.from_env(
        hostname,
        api_key=args.api_key,
        timeouts=ProbeTimeouts(
            connect_timeout=args.connect_timeout,
            read_timeout=args.read_timeout,
        ),
        workers=args.workers,
        lookup=not args.no_lookup,
        web=not args.no_web,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    color = not args.no_color and not args.json and sys.stdout.isatty()
    if color:
        just_fix_windows_console()

    if args.workers < 1:
        parser.print_usage(sys.stderr)
        print("hostaudit: error: --workers must be at least 1", file=sys.stderr)
        return EXIT_USAGE

    hostname = (args.hostname or "").strip() or prompt_hostname(color)
    if not hostname:
        print("No hostname provided. Exiting.", file=sys.stderr)
        return EXIT_USAGE

    config = build_config(args, hostname)
    logger.debug(f"Scan config: {config}")
    checks = {name: ALL_CHECKS[name] for name in ALL_CHECKS if name in args.checks} if args.checks else None

    report = asyncio.run(ScanOrchestrator(config, checks=checks).execute())

    if args.json:
        print(to_json(report))
    else:
        ConsoleReporter(color=color).render(report)

    if not report.addresses and report.web is None:
        return EXIT_NOTHING_SCANNED
    return EXIT_OK
