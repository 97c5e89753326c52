# hostaudit/tools/header_check.py
"""
HTTP header check.

Fetches http://<hostname>, follows redirects by hand so every hop is
recorded, and checks the final response for security best practices.

Sections:
    redirects  any plain-HTTP hop, final URL not HTTPS, first HTTPS hop
               leaving the original hostname
    headers    Referrer-Policy, X-Frame-Options, X-Content-Type-Options,
               Strict-Transport-Security
    csp        frame-ancestors, script-src / object-src, unsafe-inline,
               unsafe-eval
    cookies    HttpOnly and Secure on every Set-Cookie

The check functions are pure and work on plain strings; inspect() is the
only part that does network I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

import httpx

from hostaudit.errors import WebInspectionError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; hostaudit security scanner)"

SECURE_REFERRER_POLICIES = {"strict-origin-when-cross-origin", "same-origin", "no-referrer"}
SECURE_FRAME_OPTIONS = {"SAMEORIGIN", "DENY"}
HSTS_MAX_AGE = "max-age=31536000"


@dataclass
class WebCheck:
    section: str            # redirects, headers, csp, cookies
    name: str
    passed: bool
    message: str
    details: List[str] = field(default_factory=list)


@dataclass
class WebReport:
    url: str
    final_url: str
    status_code: int
    redirect_chain: List[str] = field(default_factory=list)
    checks: List[WebCheck] = field(default_factory=list)

    def section(self, name: str) -> List[WebCheck]:
        return [c for c in self.checks if c.section == name]

    @property
    def failed(self) -> List[WebCheck]:
        return [c for c in self.checks if not c.passed]


# ---------------------------------------------------------------------------
# Redirect chain
# ---------------------------------------------------------------------------

def check_redirects(url: str, redirect_chain: Sequence[str], final_url: str) -> List[WebCheck]:
    checks: List[WebCheck] = []

    http_hops = [hop for hop in redirect_chain if hop.startswith("http://")]
    if http_hops:
        checks.append(WebCheck(
            "redirects", "https_redirects", False,
            "Redirect chain contains HTTP URLs", details=http_hops,
        ))
    else:
        checks.append(WebCheck("redirects", "https_redirects", True, "All redirects use HTTPS"))

    if final_url.startswith("https://"):
        checks.append(WebCheck("redirects", "final_https", True, "Final URL is served over HTTPS"))
    else:
        checks.append(WebCheck(
            "redirects", "final_https", False,
            f"Final URL is not served over HTTPS: {final_url}",
        ))

    if redirect_chain:
        first = redirect_chain[0]
        hostname = urlparse(url).hostname or ""
        if first.startswith("https://") and hostname not in first:
            checks.append(WebCheck(
                "redirects", "redirect_pattern", False,
                "Insecure HTTPS redirect pattern detected", details=[first],
            ))
        else:
            checks.append(WebCheck("redirects", "redirect_pattern", True, "HTTPS redirect pattern is secure"))

    return checks


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------

def check_security_headers(headers: Dict[str, str]) -> List[WebCheck]:
    """`headers` must have lower-cased names."""
    checks: List[WebCheck] = []

    referrer = headers.get("referrer-policy")
    if not referrer:
        checks.append(WebCheck("headers", "referrer_policy", False, "Missing Referrer-Policy header"))
    elif referrer.strip().lower() not in SECURE_REFERRER_POLICIES:
        checks.append(WebCheck(
            "headers", "referrer_policy", False,
            f'Referrer-Policy is set to a less secure value: "{referrer}"',
        ))
    else:
        checks.append(WebCheck("headers", "referrer_policy", True, "Referrer-Policy is secure"))

    xfo = headers.get("x-frame-options")
    if not xfo:
        checks.append(WebCheck("headers", "x_frame_options", False, "Missing X-Frame-Options header"))
    elif xfo.strip().upper() not in SECURE_FRAME_OPTIONS:
        checks.append(WebCheck(
            "headers", "x_frame_options", False,
            f'X-Frame-Options is set to an insecure value: "{xfo}"',
        ))
    else:
        checks.append(WebCheck("headers", "x_frame_options", True, "X-Frame-Options is secure"))

    xcto = headers.get("x-content-type-options")
    if not xcto:
        checks.append(WebCheck(
            "headers", "x_content_type_options", False, "Missing X-Content-Type-Options header",
        ))
    elif xcto.strip().lower() != "nosniff":
        checks.append(WebCheck(
            "headers", "x_content_type_options", False,
            f'X-Content-Type-Options is set to an insecure value: "{xcto}"',
        ))
    else:
        checks.append(WebCheck("headers", "x_content_type_options", True, "X-Content-Type-Options is secure"))

    hsts = headers.get("strict-transport-security")
    if not hsts:
        checks.append(WebCheck(
            "headers", "hsts", False, "Missing Strict-Transport-Security (HSTS) header",
        ))
    elif HSTS_MAX_AGE not in hsts.lower() or "includesubdomains" not in hsts.lower():
        checks.append(WebCheck(
            "headers", "hsts", False, f'HSTS header is not configured securely: "{hsts}"',
        ))
    else:
        checks.append(WebCheck("headers", "hsts", True, "HSTS header is secure"))

    return checks


# ---------------------------------------------------------------------------
# Content Security Policy
# ---------------------------------------------------------------------------

def check_csp(csp: Optional[str]) -> List[WebCheck]:
    if not csp:
        return [WebCheck("csp", "present", False, "Missing Content-Security-Policy header")]

    checks: List[WebCheck] = []

    if "frame-ancestors 'self'" in csp or "frame-ancestors 'none'" in csp:
        checks.append(WebCheck(
            "csp", "frame_ancestors", True,
            "Content-Security-Policy frame-ancestors directive is secure",
        ))
    else:
        checks.append(WebCheck(
            "csp", "frame_ancestors", False,
            "Content-Security-Policy does not include a secure frame-ancestors directive",
        ))

    broad_script = "script-src" not in csp
    broad_object = "object-src" not in csp
    if broad_script:
        checks.append(WebCheck(
            "csp", "script_src", False, "Content-Security-Policy contains broad script-src directive",
        ))
    if broad_object:
        checks.append(WebCheck(
            "csp", "object_src", False, "Content-Security-Policy contains broad object-src directive",
        ))
    if not broad_script and not broad_object:
        checks.append(WebCheck(
            "csp", "sources", True,
            "Content-Security-Policy script-src and object-src directives are secure",
        ))

    unsafe_inline = "'unsafe-inline'" in csp
    unsafe_eval = "'unsafe-eval'" in csp
    if unsafe_inline:
        checks.append(WebCheck(
            "csp", "unsafe_inline", False, 'Content-Security-Policy contains "unsafe-inline" directive',
        ))
    if unsafe_eval:
        checks.append(WebCheck(
            "csp", "unsafe_eval", False, 'Content-Security-Policy contains "unsafe-eval" directive',
        ))
    if not unsafe_inline and not unsafe_eval:
        checks.append(WebCheck(
            "csp", "unsafe", True, "Content-Security-Policy does not contain unsafe directives",
        ))

    return checks


# ---------------------------------------------------------------------------
# Cookies
# ---------------------------------------------------------------------------

def parse_set_cookie(header_value: str, index: int = 0) -> Tuple[str, bool, bool]:
    """Return (name, httponly, secure) for one Set-Cookie header value."""
    name_val = header_value.split(";", 1)[0].strip()
    name = name_val.split("=", 1)[0].strip() if "=" in name_val else ""
    flags = header_value.lower()
    return name or f"Cookie {index + 1}", "httponly" in flags, "secure" in flags


def check_cookies(set_cookies: Sequence[str]) -> List[WebCheck]:
    if not set_cookies:
        return [WebCheck("cookies", "none", True, "No Set-Cookie headers found")]

    checks: List[WebCheck] = []
    for index, header in enumerate(set_cookies):
        name, httponly, secure = parse_set_cookie(header, index)
        if not httponly:
            checks.append(WebCheck(
                "cookies", "httponly", False, f'Cookie "{name}" is missing HttpOnly flag',
            ))
        if not secure:
            checks.append(WebCheck(
                "cookies", "secure", False, f'Cookie "{name}" is missing Secure flag',
            ))

    if not checks:
        checks.append(WebCheck(
            "cookies", "flags", True, "All session cookies have HttpOnly and Secure flags",
        ))
    return checks


# ---------------------------------------------------------------------------
# Fetch + inspect
# ---------------------------------------------------------------------------

async def _follow_redirects(
    client: httpx.AsyncClient,
    url: str,
    max_redirects: int,
) -> Tuple[List[str], str, httpx.Response]:
    chain: List[str] = []
    current = url
    while True:
        resp = await client.get(current)
        location = resp.headers.get("location")
        if not (location and resp.is_redirect):
            return chain, current, resp
        chain.append(location)
        current = urljoin(current, location)
        if len(chain) > max_redirects:
            raise WebInspectionError(f"Too many redirects ({len(chain)}) starting at {url}")


async def inspect(
    url: str,
    timeout: float = 15.0,
    max_redirects: int = 10,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WebReport:
    """
    Fetch `url` and run every header check on the final response.
    Raises WebInspectionError if the target cannot be fetched.
    """
    try:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            verify=False,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        ) as client:
            chain, final_url, resp = await _follow_redirects(client, url, max_redirects)
    except httpx.TimeoutException as e:
        raise WebInspectionError(f"Timed out fetching {url} after {timeout}s") from e
    except httpx.RequestError as e:
        raise WebInspectionError(f"Error fetching {url}: {e}") from e

    logger.info(f"Fetched {url} → {final_url} (HTTP {resp.status_code}, {len(chain)} redirect(s))")

    headers = {k.lower(): v for k, v in resp.headers.items()}
    report = WebReport(
        url=url,
        final_url=final_url,
        status_code=resp.status_code,
        redirect_chain=chain,
    )
    report.checks.extend(check_redirects(url, chain, final_url))
    report.checks.extend(check_security_headers(headers))
    report.checks.extend(check_csp(headers.get("content-security-policy")))
    report.checks.extend(check_cookies(resp.headers.get_list("set-cookie")))
    return report
