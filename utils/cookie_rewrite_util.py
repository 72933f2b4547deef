"""
Set-Cookie domain rewriting.

Cookie values are treated as opaque text: each replacement is a literal
substring substitution of 'Domain=<from>' and 'domain=<from>', applied to every
occurrence. Cookies that contain no configured source domain are returned
unchanged.
"""

from collections.abc import Iterable, Sequence

from models.cookie_rewrite_config_model import DomainReplacementModel

SET_COOKIE = b'set-cookie'

_ATTRIBUTE_PREFIXES = ('Domain=', 'domain=')


def rewrite_cookie_domain(cookie: str, replacements: Iterable[DomainReplacementModel]) -> str:
    """Apply every replacement, in order, to a single Set-Cookie value."""
    modified = cookie
    for replacement in replacements:
        for prefix in _ATTRIBUTE_PREFIXES:
            modified = modified.replace(prefix + replacement.from_, prefix + replacement.to)
    return modified


def rewrite_set_cookie_headers(
    headers: Iterable[tuple[bytes, bytes]],
    replacements: Sequence[DomainReplacementModel],
) -> tuple[list[tuple[bytes, bytes]], int]:
    """Rewrite the Set-Cookie entries of a raw ASGI header list.

    Returns the new header list and the number of cookies that changed. All
    set-cookie entries are removed and re-added after the other headers, in
    their original relative order. When there are no set-cookie entries the
    original headers are returned as a new list.
    """
    headers = list(headers)
    cookies = [value for name, value in headers if name.lower() == SET_COOKIE]
    if not cookies:
        return headers, 0

    out = [(name, value) for name, value in headers if name.lower() != SET_COOKIE]
    changed = 0
    for raw in cookies:
        cookie = raw.decode('latin-1')
        modified = rewrite_cookie_domain(cookie, replacements)
        if modified != cookie:
            changed += 1
            raw = modified.encode('latin-1')
        out.append((SET_COOKIE, raw))
    return out, changed
