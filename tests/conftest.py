"""
Pytest configuration for cookie rewrite tests.

Ensures the project root is on sys.path so imports like `from utils...`
resolve when tests run from a checkout without an editable install.
"""

# External imports
import os
import sys

_HERE = os.path.dirname(__file__)
_PROJECT_ROOT = os.path.abspath(os.path.join(_HERE, os.pardir))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from models.cookie_rewrite_config_model import CookieRewriteConfigModel, DomainReplacementModel


@pytest.fixture(autouse=True)
def clean_cookie_rewrite_env(monkeypatch):
    """Keep developer shells and .env files from leaking into tests."""
    for key in (
        'COOKIE_REWRITE_CONFIG_FILE',
        'COOKIE_REWRITE_MATCH_DOMAINS',
        'COOKIE_REWRITE_REPLACEMENTS',
        'LOGS_DIR',
        'LOG_FORMAT',
        'LOG_LEVEL',
    ):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def local_config():
    return CookieRewriteConfigModel(
        match_domains=['*.local'],
        replacements=[DomainReplacementModel(from_='oreilly.review', to='oreilly.local')],
    )


@pytest.fixture
def make_cookie_app():
    """Build a FastAPI app whose /login route sets the given raw Set-Cookie values."""

    def _make(cookies):
        app = FastAPI()

        @app.get('/login')
        async def login():
            response = PlainTextResponse('ok')
            for cookie in cookies:
                response.headers.append('set-cookie', cookie)
            return response

        return app

    return _make


class ASGIRecorder:
    """Collects messages sent through an ASGI send callable."""

    def __init__(self):
        self.messages = []

    async def __call__(self, message):
        self.messages.append(message)

    @property
    def start(self):
        return next(m for m in self.messages if m['type'] == 'http.response.start')

    def header_values(self, name: bytes):
        return [v for k, v in self.start['headers'] if k.lower() == name]


@pytest.fixture
def recorder():
    return ASGIRecorder()


async def empty_receive():
    return {'type': 'http.request', 'body': b'', 'more_body': False}


def http_scope(host=None, origin=None, referer=None, path='/'):
    headers = []
    for key, value in (('host', host), ('origin', origin), ('referer', referer)):
        if value is not None:
            headers.append((key.encode('latin-1'), value.encode('latin-1')))
    return {'type': 'http', 'method': 'GET', 'path': path, 'headers': headers}
