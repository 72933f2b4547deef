"""
Cookie domain rewrite entry point.

Wires the middleware into an app and exposes an operator CLI:

    cookie-rewrite check [--config FILE]
    cookie-rewrite preview --host api.oreilly.local --cookie 'a=b; Domain=oreilly.review'
    cookie-rewrite serve myproject.app:app [--host 127.0.0.1] [--port 8000]
"""

import argparse
import json
import sys

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.types import ASGIApp
from uvicorn.importer import ImportFromStringError, import_from_string

from middleware.cookie_domain_rewrite_middleware import DEFAULT_NAME, CookieDomainRewriteMiddleware
from models.cookie_rewrite_config_model import CookieRewriteConfigModel
from utils.config_util import load_config
from utils.cookie_rewrite_util import rewrite_cookie_domain
from utils.error_codes import ConfigurationError
from utils.logging_util import configure_logging

load_dotenv()


def install_cookie_rewrite(
    app: FastAPI,
    config: CookieRewriteConfigModel | None = None,
    name: str = DEFAULT_NAME,
) -> FastAPI:
    """Add the middleware to a FastAPI/Starlette app.

    Configuration is validated here so a bad config fails at startup rather
    than when Starlette first builds the middleware stack.
    """
    config = config if config is not None else load_config()
    CookieDomainRewriteMiddleware(_reject, config, name)
    app.add_middleware(CookieDomainRewriteMiddleware, config=config, name=name)
    return app


def wrap_asgi_app(
    app: ASGIApp,
    config: CookieRewriteConfigModel | None = None,
    name: str = DEFAULT_NAME,
) -> CookieDomainRewriteMiddleware:
    config = config if config is not None else load_config()
    return CookieDomainRewriteMiddleware(app, config, name)


async def _reject(scope, receive, send):
    raise RuntimeError('validation-only middleware has no downstream app')


def _preview_scope(host: str | None, origin: str | None, referer: str | None) -> dict:
    headers = []
    for key, value in (('host', host), ('origin', origin), ('referer', referer)):
        if value:
            headers.append((key.encode('latin-1'), value.encode('latin-1')))
    return {'type': 'http', 'method': 'GET', 'path': '/', 'headers': headers}


def do_check(args) -> int:
    config = load_config(args.config)
    CookieDomainRewriteMiddleware(_reject, config, args.name)
    print(json.dumps(config.dict(by_alias=True), indent=2))
    return 0


def do_preview(args) -> int:
    config = load_config(args.config)
    middleware = CookieDomainRewriteMiddleware(_reject, config, args.name)
    matched = middleware.should_rewrite(_preview_scope(args.host, args.origin, args.referer))
    print(f'rewrite: {"yes" if matched else "no"}')
    for cookie in args.cookie or []:
        print(rewrite_cookie_domain(cookie, middleware.replacements) if matched else cookie)
    return 0


def do_serve(args) -> int:
    config = load_config(args.config)
    try:
        target = import_from_string(args.app)
    except ImportFromStringError as e:
        print(f'Cannot import {args.app}: {e}', file=sys.stderr)
        return 2
    app = wrap_asgi_app(target, config, args.name)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='cookie-rewrite', description='Cookie domain rewrite middleware tools')
    p.add_argument('--config', help='YAML/JSON config file (default: $COOKIE_REWRITE_CONFIG_FILE)')
    p.add_argument('--name', default=DEFAULT_NAME, help='Middleware instance name used in logs')
    sub = p.add_subparsers(dest='cmd', required=True)

    s = sub.add_parser('check', help='Validate configuration and print the effective config')
    s.set_defaults(func=do_check)

    s = sub.add_parser('preview', help='Show how cookies would be rewritten for a request')
    s.add_argument('--host')
    s.add_argument('--origin')
    s.add_argument('--referer')
    s.add_argument('--cookie', action='append', help='Set-Cookie value; may be repeated')
    s.set_defaults(func=do_preview)

    s = sub.add_parser('serve', help='Serve an ASGI app wrapped with the middleware')
    s.add_argument('app', help='ASGI app import string, e.g. package.module:app')
    s.add_argument('--host', default='127.0.0.1')
    s.add_argument('--port', type=int, default=8000)
    s.add_argument('--log-level', default='info')
    s.set_defaults(func=do_serve)
    return p


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f'Configuration error: {e}', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
