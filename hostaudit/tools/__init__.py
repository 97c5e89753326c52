# hostaudit/tools/__init__.py
"""
Target inspection tools that run alongside the per-address service checks.

    header_check   redirect chain, security headers, CSP and cookie hygiene
                   of the hostname's HTTP response
"""

from hostaudit.tools.header_check import WebCheck, WebReport, inspect

__all__ = ["WebCheck", "WebReport", "inspect"]
