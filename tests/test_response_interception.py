"""
Interception tests against raw ASGI apps.

These drive the middleware directly so the exact message sequence seen by the
server can be asserted: headers are rewritten on http.response.start, exactly
once, and body messages are forwarded untouched.
"""

import pytest

from conftest import empty_receive, http_scope
from middleware.cookie_domain_rewrite_middleware import CookieDomainRewriteMiddleware

COOKIE = b'session=abc123; Domain=oreilly.review; Secure; HttpOnly'
REWRITTEN = b'session=abc123; Domain=oreilly.local; Secure; HttpOnly'


def _raw_app(bodies, headers=None):
    async def app(scope, receive, send):
        await send({
            'type': 'http.response.start',
            'status': 200,
            'headers': list(headers if headers is not None else [(b'set-cookie', COOKIE)]),
        })
        for i, chunk in enumerate(bodies):
            await send({'type': 'http.response.body', 'body': chunk, 'more_body': i < len(bodies) - 1})
    return app


@pytest.mark.asyncio
async def test_empty_body_response_rewritten(local_config, recorder):
    middleware = CookieDomainRewriteMiddleware(_raw_app([b'']), local_config)
    await middleware(http_scope(host='api.oreilly.local'), empty_receive, recorder)
    assert recorder.header_values(b'set-cookie') == [REWRITTEN]
    assert [m['type'] for m in recorder.messages] == ['http.response.start', 'http.response.body']


@pytest.mark.asyncio
async def test_streamed_body_forwarded_unchanged(local_config, recorder):
    chunks = [b'Domain=oreilly.review ', b'chunk two', b'']
    middleware = CookieDomainRewriteMiddleware(_raw_app(chunks), local_config)
    await middleware(http_scope(host='api.oreilly.local'), empty_receive, recorder)
    assert recorder.header_values(b'set-cookie') == [REWRITTEN]
    bodies = [m['body'] for m in recorder.messages if m['type'] == 'http.response.body']
    assert bodies == chunks


@pytest.mark.asyncio
async def test_rewrite_runs_once_per_response(local_config, recorder):
    async def app(scope, receive, send):
        start = {'type': 'http.response.start', 'status': 200, 'headers': [(b'set-cookie', COOKIE)]}
        await send(start)
        # A misbehaving app re-sending start must not be rewritten again
        await send(start)

    middleware = CookieDomainRewriteMiddleware(app, local_config)
    await middleware(http_scope(host='api.oreilly.local'), empty_receive, recorder)
    first, second = recorder.messages
    assert first['headers'] == [(b'set-cookie', REWRITTEN)]
    assert second['headers'] == [(b'set-cookie', COOKIE)]


@pytest.mark.asyncio
async def test_wrapper_state_not_shared_between_requests(local_config):
    middleware = CookieDomainRewriteMiddleware(_raw_app([b'ok']), local_config)
    for _ in range(3):
        sent = []

        async def send(message):
            sent.append(message)

        await middleware(http_scope(host='api.oreilly.local'), empty_receive, send)
        assert sent[0]['headers'] == [(b'set-cookie', REWRITTEN)]


@pytest.mark.asyncio
async def test_original_message_not_mutated(local_config, recorder):
    headers = [(b'set-cookie', COOKIE)]
    middleware = CookieDomainRewriteMiddleware(_raw_app([b''], headers=headers), local_config)
    await middleware(http_scope(host='api.oreilly.local'), empty_receive, recorder)
    assert recorder.start['status'] == 200
    assert headers == [(b'set-cookie', COOKIE)]


@pytest.mark.asyncio
async def test_non_matching_request_uses_original_send(local_config):
    seen = {}

    async def app(scope, receive, send):
        seen['send'] = send

    async def send(message):
        pass

    middleware = CookieDomainRewriteMiddleware(app, local_config)
    await middleware(http_scope(host='api.oreilly.review'), empty_receive, send)
    assert seen['send'] is send


@pytest.mark.asyncio
@pytest.mark.parametrize('scope_type', ['lifespan', 'websocket'])
async def test_non_http_scopes_pass_through(local_config, scope_type):
    seen = {}

    async def app(scope, receive, send):
        seen['scope'] = scope
        seen['send'] = send

    async def send(message):
        pass

    scope = {'type': scope_type, 'headers': [(b'host', b'api.oreilly.local')]}
    middleware = CookieDomainRewriteMiddleware(app, local_config)
    await middleware(scope, empty_receive, send)
    assert seen['scope'] is scope
    assert seen['send'] is send


@pytest.mark.asyncio
async def test_downstream_errors_propagate(local_config, recorder):
    async def app(scope, receive, send):
        raise RuntimeError('upstream exploded')

    middleware = CookieDomainRewriteMiddleware(app, local_config)
    with pytest.raises(RuntimeError, match='upstream exploded'):
        await middleware(http_scope(host='api.oreilly.local'), empty_receive, recorder)


def test_should_rewrite_precedence(local_config):
    middleware = CookieDomainRewriteMiddleware(None, local_config)
    assert middleware.should_rewrite(http_scope(host='api.oreilly.local'))
    assert middleware.should_rewrite(
        http_scope(host='api.oreilly.review', origin='http://www.oreilly.local:3000')
    )
    assert middleware.should_rewrite(
        http_scope(host='api.oreilly.review', referer='https://app.oreilly.local/path')
    )
    assert not middleware.should_rewrite(
        http_scope(host='api.oreilly.review', origin='https://www.oreilly.review', referer='https://x.review/')
    )
    assert not middleware.should_rewrite(http_scope())


def test_should_rewrite_reads_header_names_case_insensitively(local_config):
    middleware = CookieDomainRewriteMiddleware(None, local_config)
    scope = {'type': 'http', 'headers': [(b'Origin', b'https://www.oreilly.local')]}
    assert middleware.should_rewrite(scope)


@pytest.mark.asyncio
@pytest.mark.parametrize('cookies', [[], [(b'set-cookie', COOKIE)]])
async def test_generator_headers_keep_non_cookie_entries(local_config, recorder, cookies):
    async def app(scope, receive, send):
        await send({
            'type': 'http.response.start',
            'status': 200,
            'headers': (h for h in [(b'content-type', b'text/plain')] + cookies),
        })
        await send({'type': 'http.response.body', 'body': b'ok'})

    middleware = CookieDomainRewriteMiddleware(app, local_config)
    await middleware(http_scope(host='api.oreilly.local'), empty_receive, recorder)
    expected = [(b'content-type', b'text/plain')]
    if cookies:
        expected.append((b'set-cookie', REWRITTEN))
    assert recorder.start['headers'] == expected
