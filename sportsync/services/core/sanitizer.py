"""
Response and URL sanitization for third-party payloads.

Provider responses end up in user-facing market titles, so every string in
a decoded body is scrubbed: script/iframe tags, ``javascript:`` URIs,
inline event handlers and ``data:text/html`` payloads are removed, then the
remaining text is HTML-entity encoded.
"""
import html
import ipaddress
import re
from typing import Any
from urllib.parse import urlparse

SUSPICIOUS_PATTERNS = [
    re.compile(r'</?script\b[^>]*>', re.IGNORECASE),
    re.compile(r'</?iframe\b[^>]*>', re.IGNORECASE),
    re.compile(r'javascript:', re.IGNORECASE),
    re.compile(r'\bon\w+\s*=', re.IGNORECASE),
    re.compile(r'data:text/html', re.IGNORECASE),
]

ALLOWED_SCHEMES = {'http', 'https'}
BLOCKED_HOSTNAMES = {'localhost', 'localhost.localdomain', 'metadata.google.internal'}


def sanitize_string(value: str) -> str:
    """
    Strip dangerous markup and HTML-escape the rest.

    Examples:
        >>> sanitize_string('<script>alert(1)</script>Arsenal')
        'alert(1)Arsenal'
        >>> sanitize_string('Brighton & Hove Albion')
        'Brighton &amp; Hove Albion'
    """
    for pattern in SUSPICIOUS_PATTERNS:
        value = pattern.sub('', value)
    return html.escape(value, quote=True)


def sanitize_response(data: Any) -> Any:
    """Recursively sanitize every string in a decoded JSON value. Keys are kept as-is."""
    if isinstance(data, str):
        return sanitize_string(data)
    if isinstance(data, list):
        return [sanitize_response(item) for item in data]
    if isinstance(data, dict):
        return {key: sanitize_response(value) for key, value in data.items()}
    return data


def sanitize_url(url: str) -> str:
    """
    Validate an outbound URL.

    Raises:
        ValueError: Scheme is not http(s), or the host is loopback,
            private, link-local or otherwise internal
    """
    parsed = urlparse(url)

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValueError(f"Blocked URL scheme: {parsed.scheme or '<none>'}")

    host = (parsed.hostname or '').lower()
    if not host:
        raise ValueError(f"URL has no host: {url}")
    if host in BLOCKED_HOSTNAMES:
        raise ValueError(f"Blocked internal host: {host}")

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return url

    if (address.is_private or address.is_loopback or address.is_link_local
            or address.is_reserved or address.is_unspecified):
        raise ValueError(f"Blocked internal address: {host}")

    return url
