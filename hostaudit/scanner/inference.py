# hostaudit/scanner/inference.py
"""
Banner inference engine.

Turns a raw service banner into a SystemIdentity (operating system plus
software components) that can be sent to the vulnerability audit API.

Pure functions only, no I/O. The same banner always produces the same
identity.

Matching policy:
    Signature tables are ordered lists of (matches, build) pairs. They are
    evaluated top to bottom and the FIRST match wins; later entries are not
    consulted.

Examples:
    "SSH-2.0-OpenSSH_9.6"          → software [a/openbsd/openssh/9.6]
    "nginx on ubuntu-22.04"        → os o/canonical/ubuntu/22.04
    "220 mail ESMTP Postfix"       → all-unknown os, no software
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from hostaudit.config import DEFAULT_VULNERS_FIELDS
from hostaudit.scanner.base import (
    PART_APPLICATION,
    PART_OS,
    UNKNOWN,
    Component,
    SystemIdentity,
    VulnerabilityQuery,
    unknown_os,
)


@dataclass(frozen=True)
class Signature:
    """One row of a signature table."""
    name: str
    matches: Callable[[str], bool]
    build: Callable[[str], Component]


# ---------------------------------------------------------------------------
# Operating system signatures
# ---------------------------------------------------------------------------

# (product keyword, vendor). ORDER MATTERS, first match wins
OS_PRODUCTS: List[Tuple[str, str]] = [
    ("ubuntu", "canonical"),
    ("debian", "debian"),
    ("centos", "centos"),
    ("enterprise_linux", "redhat"),
    ("fedora", "fedora"),
    ("alpine_linux", "alpine"),
    ("amazon_linux", "amazon"),
]


def _os_signature(product: str, vendor: str) -> Signature:
    version_re = re.compile(re.escape(product) + r"[-\s]?([\d.]+)", re.IGNORECASE)

    def matches(banner: str) -> bool:
        return product in banner.lower()

    def build(banner: str) -> Component:
        m = version_re.search(banner)
        return Component(
            part=PART_OS,
            vendor=vendor,
            product=product,
            version=m.group(1) if m else UNKNOWN,
        )

    return Signature(name=product, matches=matches, build=build)


OS_SIGNATURES: List[Signature] = [_os_signature(p, v) for p, v in OS_PRODUCTS]


# ---------------------------------------------------------------------------
# Software signatures
# ---------------------------------------------------------------------------

# SSH identification string: SSH-<protoversion>-<product>_<version>
SSH_BANNER_RE = re.compile(r"SSH-[\d.]+-(\S+?_\S+)")

# Vendor is pinned to the reference SSH implementation's origin
SSH_VENDOR = "openbsd"


def _ssh_matches(banner: str) -> bool:
    return SSH_BANNER_RE.search(banner) is not None


def _ssh_build(banner: str) -> Component:
    token = SSH_BANNER_RE.search(banner).group(1)
    product, version = token.split("_", 1)
    return Component(
        part=PART_APPLICATION,
        vendor=SSH_VENDOR,
        product=product.lower(),
        version=version,
    )


SOFTWARE_SIGNATURES: List[Signature] = [
    Signature(name="ssh", matches=_ssh_matches, build=_ssh_build),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def first_match(table: Sequence[Signature], banner: str) -> Optional[Component]:
    """Evaluate `table` in order and build from the first matching row."""
    for signature in table:
        if signature.matches(banner):
            return signature.build(banner)
    return None


def infer_operating_system(banner: str) -> Component:
    return first_match(OS_SIGNATURES, banner) or unknown_os()


def infer_software(banner: str) -> Tuple[Component, ...]:
    component = first_match(SOFTWARE_SIGNATURES, banner)
    return (component,) if component else ()


def infer(banner: str) -> SystemIdentity:
    """Infer the operating system and software identity from a banner."""
    banner = banner or ""
    return SystemIdentity(
        operating_system=infer_operating_system(banner),
        software=infer_software(banner),
    )


def build_query(
    identity: SystemIdentity,
    fields: Optional[Sequence[str]] = None,
) -> VulnerabilityQuery:
    """Build the audit API request for an inferred identity."""
    return VulnerabilityQuery(
        software=tuple(identity.software),
        operating_system=identity.operating_system,
        fields=tuple(fields if fields is not None else DEFAULT_VULNERS_FIELDS),
    )
