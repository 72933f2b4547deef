"""
Domain matching helpers for the cookie domain rewrite middleware.

Patterns are plain hostnames where '*' stands for any run of zero or more
characters. Each pattern is anchored over the whole candidate, so '*.local'
matches 'api.local' and 'www.api.local' but not 'local'.
"""

import re
from collections.abc import Iterable, Sequence

from utils.error_codes import ConfigurationError, ErrorCode

_SCHEMES = ('http://', 'https://')


def compile_domain_pattern(pattern: str) -> re.Pattern:
    """Compile a wildcard hostname pattern into an anchored regex."""
    regex = '^' + re.escape(pattern).replace(r'\*', '.*') + '$'
    try:
        return re.compile(regex)
    except re.error as e:
        raise ConfigurationError(
            f"invalid match domain pattern '{pattern}': {e}",
            error_code=ErrorCode.CFG_INVALID_PATTERN,
        ) from e


def compile_domain_patterns(patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    return tuple(compile_domain_pattern(p) for p in patterns)


def matches_domain(hostname: str, matchers: Sequence[re.Pattern]) -> bool:
    """Return True if the hostname matches any compiled pattern (case-sensitive)."""
    for matcher in matchers:
        if matcher.fullmatch(hostname):
            return True
    return False


def host_without_port(host: str) -> str:
    """Strip a trailing ':port' from a Host header value.

    The last colon delimits host from port.
    """
    idx = host.rfind(':')
    if idx != -1:
        return host[:idx]
    return host


def hostname_from_url(value: str) -> str:
    """Extract the hostname from an Origin or Referer header value.

    Drops a leading http:// or https:// scheme, then truncates at the first
    ':' (port) and the first '/' (path).
    """
    for scheme in _SCHEMES:
        if value.startswith(scheme):
            value = value[len(scheme):]
            break
    idx = value.find(':')
    if idx != -1:
        value = value[:idx]
    idx = value.find('/')
    if idx != -1:
        value = value[:idx]
    return value
