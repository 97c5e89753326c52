# hostaudit/scanner/resolver.py
"""
Address resolver.

Resolves a hostname to its IPv4 (A record) addresses with dnspython's
async resolver. Resolution failures are an expected outcome, not an error:
every failure is logged and returns an empty list, which callers treat as
"nothing to scan".

    NXDOMAIN          → []   name does not exist
    NoAnswer          → []   name exists but has no A records
    NoNameservers     → []   every nameserver failed
    Timeout / other   → []   resolver gave up

No retries and no reverse lookups. IPv6 is out of scope.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import List, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)


def _normalize(hostname: str) -> str:
    h = (hostname or "").strip().lower().rstrip(".")
    if h.startswith("*."):
        h = h[2:]
    return h


def _ipv4_literal(value: str) -> Optional[str]:
    try:
        return str(ipaddress.IPv4Address(value))
    except ValueError:
        return None


async def resolve(
    hostname: str,
    resolver: Optional[dns.asyncresolver.Resolver] = None,
    lifetime: Optional[float] = None,
) -> List[str]:
    """
    Resolve `hostname` to IPv4 addresses, de-duplicated in answer order.
    Never raises for DNS failures.
    """
    name = _normalize(hostname)
    if not name:
        return []

    literal = _ipv4_literal(name)
    if literal:
        return [literal]

    try:
        if resolver is None:
            resolver = dns.asyncresolver.Resolver()
            if lifetime is not None:
                resolver.lifetime = lifetime
        answers = await resolver.resolve(name, "A")
    except dns.resolver.NXDOMAIN:
        logger.warning(f"Could not find DNS records for {hostname}.")
        return []
    except dns.resolver.NoAnswer:
        logger.warning(f"DNS server responded, but no A records found for {hostname}.")
        return []
    except dns.resolver.NoNameservers as e:
        logger.warning(f"No nameserver could resolve {hostname}: {e}")
        return []
    except dns.exception.Timeout:
        logger.warning(f"DNS resolution timed out for {hostname}.")
        return []
    except dns.exception.DNSException as e:
        logger.warning(f"Error resolving hostname {hostname}: {type(e).__name__}: {e}")
        return []

    ips: List[str] = []
    for rdata in answers:
        ip = getattr(rdata, "address", None) or str(rdata)
        if ip not in ips:
            ips.append(ip)

    logger.info(f"Resolved {hostname} → {', '.join(ips) or 'no addresses'}")
    return ips
