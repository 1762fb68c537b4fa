"""
Request security module.

CORS response headers and the localhost-only Referer / Host checks that
keep browsers and DNS rebinding from reaching the locally bound gateway.
"""

from typing import Dict, Optional
from urllib.parse import urlsplit

LOCAL_HOSTNAME = "localhost"

CORS_ALLOW_METHODS = "POST, GET, PUT, DELETE, OPTIONS, XMODIFY"
CORS_ALLOW_HEADERS = (
    "X-Requested-With, X-HTTP-Method-Override, Content-Type, Accept, Authorization"
)
CORS_MAX_AGE = "86400"

REFERER_REJECTED = "expected request from localhost"
HOST_REJECTED = "unexpected host header"


def cors_headers(origin: Optional[str]) -> Dict[str, str]:
    """
    Build CORS response headers.

    Args:
        origin: request Origin header, echoed back when present

    Returns:
        Header name -> value
    """
    return {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": CORS_MAX_AGE,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
    }


def is_preflight(method: str) -> bool:
    return method.upper() == "OPTIONS"


def check_referer(referer: Optional[str]) -> Optional[str]:
    """
    A page served from anywhere but localhost must not drive the gateway.
    Other ports are allowed; locally running apps are trusted.

    Returns:
        Rejection message, or None when the request may proceed
    """
    if not referer:
        return None
    if urlsplit(referer).hostname != LOCAL_HOSTNAME:
        return REFERER_REJECTED
    return None


def check_host(host: Optional[str]) -> Optional[str]:
    """
    A Host header naming anything but localhost means the client thought it
    was talking to someone else (DNS rebinding).

    Returns:
        Rejection message, or None when the request may proceed
    """
    if not host:
        return None
    if host.split(":")[0] != LOCAL_HOSTNAME:
        return HOST_REJECTED
    return None


def verify_local_request(
    referer: Optional[str], host: Optional[str], enable_cors: bool
) -> Optional[str]:
    """
    Run the Referer check (skipped when CORS is enabled) then the Host check.

    Note:
        This function provides pure verification logic only.
        The caller turns a rejection into a 403 response.
    """
    if not enable_cors:
        rejection = check_referer(referer)
        if rejection:
            return rejection
    return check_host(host)
