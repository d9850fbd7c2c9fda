"""
Process-wide HTTP client shared by the GitHub provider and the enhancer.

Every request carries the project's User-Agent. Callers add their own auth and
Accept headers per request and may override the default timeout.
"""

import httpx

from maintainability_index import __version__
from maintainability_index.config import get_verify_ssl

USER_AGENT = f"repo-maintainability-index/{__version__}"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
POOL_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
    keepalive_expiry=30.0,
)

_http_client: httpx.Client | None = None
_http_client_verify_ssl: bool | None = None


def _build_client(verify_ssl: bool) -> httpx.Client:
    return httpx.Client(
        verify=verify_ssl,
        timeout=DEFAULT_TIMEOUT,
        limits=POOL_LIMITS,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def _get_http_client() -> httpx.Client:
    """
    Return the shared client, building it on first use.

    The client is rebuilt after ``close_http_client`` or when ``--insecure``
    has flipped SSL verification since it was built.
    """
    global _http_client, _http_client_verify_ssl
    verify_ssl = get_verify_ssl()
    if (
        _http_client is not None
        and not _http_client.is_closed
        and _http_client_verify_ssl == verify_ssl
    ):
        return _http_client

    close_http_client()
    _http_client = _build_client(verify_ssl)
    _http_client_verify_ssl = verify_ssl
    return _http_client


def close_http_client() -> None:
    """Close the shared client; the next request builds a fresh one."""
    global _http_client, _http_client_verify_ssl
    if _http_client is not None and not _http_client.is_closed:
        _http_client.close()
    _http_client = None
    _http_client_verify_ssl = None
