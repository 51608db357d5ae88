from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from cachegate import BaseClock, Resource, ValidatorOptions
from cachegate.asgi import ConditionalRequestMiddleware, _ASGIScope

T = int(datetime(2015, 8, 25, 12, 0, 0, tzinfo=timezone.utc).timestamp())
T_HTTP = "Tue, 25 Aug 2015 12:00:00 GMT"

RESOURCES = {
    "/article": Resource(etag="v1", last_modified=T),
    "/untagged": Resource(),
}


# Mock ASGI application that returns a simple response
async def simple_asgi_app(scope: _ASGIScope, receive: Any, send: Any) -> None:
    """Simple ASGI app that returns a 200 OK response."""
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [
                (b"content-type", b"text/plain"),
                (b"content-length", b"13"),
            ],
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"Hello, World!",
            "more_body": False,
        }
    )


def resolve(scope: _ASGIScope) -> Resource | None:
    return RESOURCES.get(scope["path"])


async def aresolve(scope: _ASGIScope) -> Resource | None:
    return RESOURCES.get(scope["path"])


# Helper function to create ASGI scope
def create_asgi_scope(
    method: str = "GET",
    path: str = "/article",
    headers: list[tuple[bytes, bytes]] | None = None,
    type: str = "http",
) -> _ASGIScope:
    """Create a basic ASGI HTTP scope dictionary."""
    return {
        "type": type,
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": path,
        "query_string": b"",
        "root_path": "",
        "headers": headers or [],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 8000),
        "state": {},
        "extensions": {},
    }


async def simple_receive() -> dict[str, Any]:
    """Simple receive callable that returns http.disconnect."""
    return {"type": "http.disconnect"}


# Helper class to collect ASGI responses
class ResponseCollector:
    """Collect response data from ASGI send calls."""

    def __init__(self) -> None:
        self.status: int = 0
        self.headers: list[tuple[bytes, bytes]] = []
        self.body_chunks: list[bytes] = []

    async def send(self, message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.headers = message.get("headers", [])
        elif message["type"] == "http.response.body":
            body = message.get("body", b"")
            if body:
                self.body_chunks.append(body)

    def get_body(self) -> bytes:
        return b"".join(self.body_chunks)

    def get_header(self, name: bytes) -> bytes | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


@pytest.fixture
def middleware(clock: BaseClock) -> ConditionalRequestMiddleware:
    return ConditionalRequestMiddleware(app=simple_asgi_app, resolver=resolve, clock=clock)


async def call(middleware: ConditionalRequestMiddleware, scope: _ASGIScope) -> ResponseCollector:
    collector = ResponseCollector()
    await middleware(scope, simple_receive, collector.send)
    return collector


@pytest.mark.anyio
async def test_request_without_conditionals_reaches_app(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(middleware, create_asgi_scope())

    assert collector.status == 200
    assert collector.get_body() == b"Hello, World!"


@pytest.mark.anyio
async def test_matching_if_none_match_is_not_modified(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(middleware, create_asgi_scope(headers=[(b"if-none-match", b'"v1"')]))

    assert collector.status == 304
    assert collector.get_body() == b""
    assert collector.get_header(b"etag") == b'"v1"'
    assert collector.get_header(b"last-modified") == T_HTTP.encode()
    assert collector.get_header(b"date") is not None


@pytest.mark.anyio
async def test_different_if_none_match_reaches_app(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(middleware, create_asgi_scope(headers=[(b"if-none-match", b'"v0"')]))

    assert collector.status == 200
    assert collector.get_body() == b"Hello, World!"


@pytest.mark.anyio
async def test_failed_if_match_is_precondition_failed(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(middleware, create_asgi_scope(method="PUT", headers=[(b"if-match", b'"v0"')]))

    assert collector.status == 412
    assert collector.get_body() == b""
    assert collector.get_header(b"etag") is None


@pytest.mark.anyio
async def test_resource_without_identity_fails_closed(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(
        middleware,
        create_asgi_scope(path="/untagged", headers=[(b"If-Modified-Since", T_HTTP.encode())]),
    )

    assert collector.status == 412


@pytest.mark.anyio
async def test_unknown_resource_reaches_app(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(middleware, create_asgi_scope(path="/other", headers=[(b"if-none-match", b'"v1"')]))

    assert collector.status == 200
    assert collector.get_body() == b"Hello, World!"


@pytest.mark.anyio
async def test_stale_resource_reaches_app(middleware: ConditionalRequestMiddleware) -> None:
    headers = [(b"if-none-match", b'"v1"'), (b"cache-control", b"max-age=0")]
    collector = await call(middleware, create_asgi_scope(headers=headers))

    assert collector.status == 200


@pytest.mark.anyio
async def test_async_resolver(clock: BaseClock) -> None:
    middleware = ConditionalRequestMiddleware(app=simple_asgi_app, resolver=aresolve, clock=clock)

    collector = await call(middleware, create_asgi_scope(headers=[(b"if-none-match", b'"v1"')]))

    assert collector.status == 304


@pytest.mark.anyio
async def test_malformed_header_is_ignored_by_default(middleware: ConditionalRequestMiddleware) -> None:
    collector = await call(middleware, create_asgi_scope(headers=[(b"if-none-match", b'W/"v1"')]))

    assert collector.status == 200


@pytest.mark.anyio
async def test_malformed_header_is_rejected_in_strict_mode(
    clock: BaseClock, caplog: pytest.LogCaptureFixture
) -> None:
    middleware = ConditionalRequestMiddleware(app=simple_asgi_app, resolver=resolve, strict=True, clock=clock)

    with caplog.at_level(logging.WARNING, logger="cachegate"):
        collector = await call(middleware, create_asgi_scope(headers=[(b"if-modified-since", b"yesterday")]))

    assert collector.status == 400
    assert caplog.messages == [
        "Rejecting request: method=GET path=/article "
        "error=The header 'if-modified-since' has an invalid value: 'yesterday'"
    ]


@pytest.mark.anyio
async def test_bare_max_stale_is_accepted_in_strict_mode(clock: BaseClock) -> None:
    middleware = ConditionalRequestMiddleware(app=simple_asgi_app, resolver=resolve, strict=True, clock=clock)

    collector = await call(middleware, create_asgi_scope(headers=[(b"cache-control", b"max-stale")]))

    assert collector.status == 200
    assert collector.get_body() == b"Hello, World!"


@pytest.mark.anyio
async def test_weak_tag_is_rejected_in_strict_mode(clock: BaseClock) -> None:
    middleware = ConditionalRequestMiddleware(app=simple_asgi_app, resolver=resolve, strict=True, clock=clock)

    collector = await call(middleware, create_asgi_scope(headers=[(b"if-none-match", b'"W/v1"')]))

    assert collector.status == 400


@pytest.mark.anyio
async def test_custom_safe_methods(clock: BaseClock) -> None:
    middleware = ConditionalRequestMiddleware(
        app=simple_asgi_app,
        resolver=resolve,
        options=ValidatorOptions(safe_methods=["GET"]),
        clock=clock,
    )

    collector = await call(middleware, create_asgi_scope(method="HEAD", headers=[(b"if-none-match", b'"v1"')]))

    assert collector.status == 412


@pytest.mark.anyio
async def test_resolver_not_called_without_conditionals(clock: BaseClock) -> None:
    calls: list[str] = []

    def counting_resolver(scope: _ASGIScope) -> Resource | None:
        calls.append(scope["path"])
        return resolve(scope)

    middleware = ConditionalRequestMiddleware(app=simple_asgi_app, resolver=counting_resolver, clock=clock)

    await call(middleware, create_asgi_scope())
    await call(middleware, create_asgi_scope(headers=[(b"cache-control", b"no-cache")]))

    assert calls == ["/article"]


@pytest.mark.anyio
async def test_non_http_scope_is_passed_through(middleware: ConditionalRequestMiddleware) -> None:
    seen: list[str] = []

    async def lifespan_app(scope: _ASGIScope, receive: Any, send: Any) -> None:
        seen.append(scope["type"])

    middleware.app = lifespan_app
    await middleware(create_asgi_scope(type="lifespan"), simple_receive, ResponseCollector().send)

    assert seen == ["lifespan"]


@pytest.mark.anyio
async def test_decision_is_logged(
    make_clock: Callable[[int], BaseClock], caplog: pytest.LogCaptureFixture
) -> None:
    middleware = ConditionalRequestMiddleware(app=simple_asgi_app, resolver=resolve, clock=make_clock(T))

    with caplog.at_level(logging.INFO, logger="cachegate.asgi"):
        await call(middleware, create_asgi_scope(headers=[(b"if-modified-since", T_HTTP.encode())]))

    assert caplog.messages == [
        "Conditional request evaluated: method=GET path=/article status=304 "
        "reason=The resource was last modified at If-Modified-Since"
    ]
