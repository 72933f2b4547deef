"""
Cookie Domain Rewrite Middleware

ASGI middleware that rewrites the Domain attribute of Set-Cookie headers when
the request comes from a configured "local" domain. The origin is taken from
the Host header, then Origin, then Referer. Matching requests get their
Set-Cookie values rewritten on http.response.start, before any body bytes are
sent; everything else passes through untouched.
"""

import logging

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from models.cookie_rewrite_config_model import CookieRewriteConfigModel, create_default_config
from utils.cookie_rewrite_util import rewrite_set_cookie_headers
from utils.domain_match_util import (
    compile_domain_patterns,
    host_without_port,
    hostname_from_url,
    matches_domain,
)
from utils.error_codes import ConfigurationError, ErrorCode

logger = logging.getLogger('cookie_rewrite.middleware')

DEFAULT_NAME = 'cookie-domain-rewrite'


class CookieDomainRewriteMiddleware:
    """
    Rewrites Set-Cookie domains for requests originating from matched domains.

    The compiled patterns and replacement list are built once and shared
    read-only by every request. Each matching request gets its own send
    wrapper, which rewrites the headers exactly once.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: CookieRewriteConfigModel | None = None,
        name: str = DEFAULT_NAME,
    ):
        config = config if config is not None else create_default_config()
        if not config.replacements:
            raise ConfigurationError(
                'no replacements configured', error_code=ErrorCode.CFG_NO_REPLACEMENTS, source=name
            )
        for replacement in config.replacements:
            try:
                replacement.from_.encode('latin-1')
                replacement.to.encode('latin-1')
            except UnicodeEncodeError as e:
                raise ConfigurationError(
                    f"replacement '{replacement.from_}' -> '{replacement.to}' is not a valid header value",
                    error_code=ErrorCode.CFG_INVALID_REPLACEMENT,
                    source=name,
                ) from e

        self.app = app
        self.name = name
        self.match_domains = compile_domain_patterns(config.match_domains)
        self.replacements = tuple(config.replacements)
        logger.info(
            f'{name}: {len(self.match_domains)} match domain(s), '
            f'{len(self.replacements)} replacement(s)'
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get('type') != 'http' or not self.should_rewrite(scope):
            await self.app(scope, receive, send)
            return

        rewritten = False

        async def send_wrapper(message: Message) -> None:
            nonlocal rewritten
            if message.get('type') == 'http.response.start' and not rewritten:
                rewritten = True
                headers, changed = rewrite_set_cookie_headers(
                    message.get('headers') or [], self.replacements
                )
                if changed:
                    logger.debug(f'{self.name}: rewrote {changed} cookie domain(s) for {scope.get("path")}')
                message = {**message, 'headers': headers}
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def should_rewrite(self, scope: Scope) -> bool:
        """Decide from Host, then Origin, then Referer whether to rewrite cookies."""
        headers = _header_values(scope, ('host', 'origin', 'referer'))

        host = headers.get('host')
        if host and self._matches(host_without_port(host)):
            logger.debug(f'{self.name}: host {host} matched')
            return True

        for header in ('origin', 'referer'):
            value = headers.get(header)
            if value and self._matches(hostname_from_url(value)):
                logger.debug(f'{self.name}: {header} {value} matched')
                return True
        return False

    def _matches(self, hostname: str) -> bool:
        return matches_domain(hostname, self.match_domains)


def _header_values(scope: Scope, names: tuple[str, ...]) -> dict[str, str]:
    """Return the first value of each requested header (names lowercase)."""
    found: dict[str, str] = {}
    for k, v in scope.get('headers') or []:
        key = k.decode('latin-1').lower()
        if key in names and key not in found:
            found[key] = v.decode('latin-1')
    return found
