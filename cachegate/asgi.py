from __future__ import annotations

import inspect
import logging
import typing as t

from typing_extensions import assert_never

from cachegate._core._headers import Headers, find_malformed_header
from cachegate._core._response import ResponseDirectives
from cachegate._core._spec import (
    NOT_MODIFIED,
    OK,
    PRECONDITION_FAILED,
    CacheValidator,
    ValidatorOptions,
)
from cachegate._core.models import RequestConditionals, ResourceDescriptor
from cachegate._exceptions import HeaderValidationError
from cachegate._utils import HEADERS_ENCODING, BaseClock, generate_http_date

logger = logging.getLogger(__name__)


class _ASGIScope(t.TypedDict, total=False):
    """ASGI HTTP scope type."""

    type: str
    asgi: dict[str, str]
    http_version: str
    method: str
    scheme: str
    path: str
    query_string: bytes
    root_path: str
    headers: list[tuple[bytes, bytes]]
    server: tuple[str, int | None] | None
    client: tuple[str, int] | None
    state: dict[str, t.Any]
    extensions: dict[str, t.Any]


_Scope = _ASGIScope
_Receive = t.Callable[[], t.Awaitable[dict[str, t.Any]]]
_Send = t.Callable[[dict[str, t.Any]], t.Awaitable[None]]
_ASGIApp = t.Callable[[_Scope, _Receive, _Send], t.Awaitable[None]]
_Resolver = t.Callable[
    [_Scope],
    t.Union[t.Optional[ResourceDescriptor], t.Awaitable[t.Optional[ResourceDescriptor]]],
]


class ConditionalRequestMiddleware:
    """
    ASGI middleware that answers conditional requests before the application runs.

    For every HTTP request carrying If-* or Cache-Control headers, the
    resolver is asked for the identity of the addressed resource. The request
    is then answered with an empty 304 or 412, or handed to the application
    for a full response. Requests the resolver does not know about (it
    returns None) always reach the application.

    Args:
        app: The ASGI application to wrap.
        resolver: Callable returning the ResourceDescriptor for a scope, or
            None. May be a coroutine function.
        options: Validator options. Defaults to ValidatorOptions().
        strict: When True, requests with malformed conditional headers are
            rejected with 400 instead of having those headers ignored.
        clock: Clock used for freshness arithmetic.

    Example:
        ```python
        from cachegate import Resource
        from cachegate.asgi import ConditionalRequestMiddleware

        def resolve(scope):
            if scope["path"] == "/report":
                return Resource(etag=report.etag, last_modified=report.updated_at)
            return None

        app = ConditionalRequestMiddleware(app=my_asgi_app, resolver=resolve)
        ```
    """

    def __init__(
        self,
        app: _ASGIApp,
        resolver: _Resolver,
        options: ValidatorOptions | None = None,
        strict: bool = False,
        clock: BaseClock | None = None,
    ) -> None:
        self.app = app
        self.resolver = resolver
        self.strict = strict
        self.validator = CacheValidator(options=options, clock=clock)

        logger.info(
            "Initialized ConditionalRequestMiddleware with safe_methods=%s, strict=%s",
            self.validator.options.safe_methods,
            strict,
        )

    async def __call__(self, scope: _Scope, receive: _Receive, send: _Send) -> None:
        if scope["type"] != "http":
            logger.debug("Skipping non-HTTP request: type=%s", scope["type"])
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "/")
        headers = Headers.from_raw(scope.get("headers", []))

        logger.debug("Incoming HTTP request: method=%s path=%s", method, path)

        if self.strict:
            malformed = find_malformed_header(headers)
            if malformed is not None:
                error = HeaderValidationError(*malformed)
                logger.warning("Rejecting request: method=%s path=%s error=%s", method, path, error)
                await self._send_empty_response(400, {}, send)
                return

        conditionals = RequestConditionals.from_headers(headers)
        if not conditionals.has_conditionals:
            logger.debug("No conditional headers, passing request through")
            await self.app(scope, receive, send)
            return

        resource = await self._resolve(scope)
        if resource is None:
            logger.debug("Resolver returned no resource, passing request through")
            await self.app(scope, receive, send)
            return

        decision = self.validator.evaluate(conditionals, resource, method)
        logger.info(
            "Conditional request evaluated: method=%s path=%s status=%d reason=%s",
            method,
            path,
            decision.status,
            decision.reason,
        )

        if decision.status == OK:
            await self.app(scope, receive, send)
        elif decision.status == NOT_MODIFIED:
            validators = ResponseDirectives.for_resource(resource).to_headers()
            await self._send_empty_response(NOT_MODIFIED, validators, send)
        elif decision.status == PRECONDITION_FAILED:
            await self._send_empty_response(PRECONDITION_FAILED, {}, send)
        else:
            assert_never(decision.status)

    async def _resolve(self, scope: _Scope) -> ResourceDescriptor | None:
        resource = self.resolver(scope)
        if inspect.isawaitable(resource):
            resource = await resource
        return t.cast(t.Optional[ResourceDescriptor], resource)

    async def _send_empty_response(self, status: int, headers: dict[str, str], send: _Send) -> None:
        headers = {"Date": generate_http_date(), **headers}
        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    (key.encode(HEADERS_ENCODING), value.encode(HEADERS_ENCODING)) for key, value in headers.items()
                ],
            }
        )
        await send(
            {
                "type": "http.response.body",
                "body": b"",
                "more_body": False,
            }
        )
        logger.debug("Empty response sent: status=%d", status)
