"""
Request helpers: client metadata, input sanitization and URL handling.
"""

import re
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import Request

MAX_INPUT_LENGTH = 1000

_UNSAFE_CHARS = re.compile(r"[<>\"']")


@dataclass(frozen=True)
class ClientMetadata:
    """Network metadata of the calling client, recorded in audit entries."""

    ip_address: str
    user_agent: str


def get_client_ip(request: Request) -> str:
    """
    Resolve the client IP.

    Prefers the first hop of X-Forwarded-For, then X-Real-IP, then the
    socket peer, and finally falls back to localhost.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "127.0.0.1"


def get_client_metadata(request: Request) -> ClientMetadata:
    """FastAPI dependency returning the caller's IP and user agent."""
    return ClientMetadata(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent") or "Unknown",
    )


def sanitize_string(value: str | None) -> str:
    """Strip HTML-significant characters, trim and cap free-form input."""
    if not isinstance(value, str):
        return ""
    return _UNSAFE_CHARS.sub("", value).strip()[:MAX_INPUT_LENGTH]


def is_absolute_url(value: str, require_https: bool = False) -> bool:
    """Check that value is an absolute http(s) URL with a host."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False

    allowed = ("https",) if require_https else ("http", "https")
    return parts.scheme in allowed and bool(parts.hostname)


def append_query_params(url: str, params: dict[str, str]) -> str:
    """
    Add query parameters to a URL, replacing existing keys of the same name
    and preserving everything else.
    """
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))
