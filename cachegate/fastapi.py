from __future__ import annotations

import inspect
import logging
import typing as t

from cachegate._core._headers import Headers, find_malformed_header
from cachegate._core._response import ResponseDirectives
from cachegate._core._spec import OK, CacheValidator, ValidatorOptions
from cachegate._core.models import RequestConditionals, ResourceDescriptor
from cachegate._exceptions import HeaderValidationError
from cachegate._utils import generate_http_date

try:
    import fastapi
    from fastapi.responses import JSONResponse
except ImportError as e:
    raise ImportError(
        "fastapi is required to use cachegate.fastapi module. "
        "Please install cachegate with the 'fastapi' extra, "
        "e.g., 'pip install cachegate[fastapi]'."
    ) from e

logger = logging.getLogger(__name__)

_Resolver = t.Callable[
    [fastapi.Request],
    t.Union[t.Optional[ResourceDescriptor], t.Awaitable[t.Optional[ResourceDescriptor]]],
]


def cache(
    *,
    max_age: int | None = None,
    s_maxage: int | None = None,
    public: bool = False,
    private: bool = False,
    no_cache: bool = False,
    no_store: bool = False,
    no_transform: bool = False,
    must_revalidate: bool = False,
    proxy_revalidate: bool = False,
    vary: str | None = None,
) -> t.Any:
    """
    Add HTTP Cache-Control headers to FastAPI responses.

    Args:
        max_age: Maximum time in seconds a response can be cached.
            [RFC 7234, Section 5.2.2.8]
        s_maxage: Maximum time in seconds for shared caches (proxies, CDNs).
            [RFC 7234, Section 5.2.2.9]
        public: Marks response as cacheable by any cache.
            [RFC 7234, Section 5.2.2.5]
        private: Marks response as cacheable only by private caches.
            [RFC 7234, Section 5.2.2.6]
        no_cache: Response can be cached but MUST be revalidated before use.
            [RFC 7234, Section 5.2.2.2]
        no_store: Response MUST NOT be stored in any cache.
            [RFC 7234, Section 5.2.2.3]
        no_transform: Prohibits any transformations to the response.
            [RFC 7234, Section 5.2.2.4]
        must_revalidate: Cache MUST revalidate stale responses.
            [RFC 7234, Section 5.2.2.1]
        proxy_revalidate: Like must_revalidate but only for shared caches.
            [RFC 7234, Section 5.2.2.7]
        vary: Request header the representation varies by.

    Returns:
        A dependency function that adds Cache-Control headers to the response.

    Examples:
        >>> from fastapi import FastAPI
        >>> from cachegate.fastapi import cache
        >>>
        >>> app = FastAPI()
        >>>
        >>> @app.get("/api/user/profile")
        >>> async def get_profile(
        ...     _: None = cache(max_age=300, private=True)
        ... ):
        ...     return {"name": "John"}
    """
    directives = ResponseDirectives(
        max_age=max_age,
        s_maxage=s_maxage,
        public=public,
        private=private,
        no_cache=no_cache,
        no_store=no_store,
        no_transform=no_transform,
        must_revalidate=must_revalidate,
        proxy_revalidate=proxy_revalidate,
        vary=vary,
    )

    def add_cache_headers(response: fastapi.Response) -> t.Any:
        """Add Cache-Control headers to the response."""
        response.headers["Date"] = generate_http_date()
        response.headers.update(directives.to_headers())

    return fastapi.Depends(add_cache_headers)


def conditional(
    resolver: _Resolver,
    *,
    options: ValidatorOptions | None = None,
    strict: bool = False,
) -> t.Any:
    """
    Evaluate conditional request headers before the endpoint runs.

    The resolver receives the incoming request and returns the identity of
    the addressed resource (or None to skip validation). A 304 or 412 outcome
    is raised as an HTTPException; on a full response the resource's ETag
    and Last-Modified headers are attached.

    Args:
        resolver: Callable, or coroutine function, mapping a request to a
            ResourceDescriptor.
        options: Validator options. Defaults to ValidatorOptions().
        strict: Raise HeaderValidationError for malformed conditional
            headers instead of ignoring them. Pair it with
            header_validation_exception_handler.

    Examples:
        >>> from cachegate import Resource
        >>> from cachegate.fastapi import conditional
        >>>
        >>> def resolve(request):
        ...     return Resource(etag=articles[request.path_params["id"]].etag)
        >>>
        >>> @app.get("/articles/{id}")
        >>> async def get_article(id: str, _: None = conditional(resolve)):
        ...     return articles[id]
    """
    validator = CacheValidator(options=options)

    async def check_preconditions(request: fastapi.Request, response: fastapi.Response) -> None:
        headers = Headers.from_raw(request.headers.raw)

        if strict:
            malformed = find_malformed_header(headers)
            if malformed is not None:
                raise HeaderValidationError(*malformed)

        resource = resolver(request)
        if inspect.isawaitable(resource):
            resource = await resource
        if resource is None:
            return

        descriptor = t.cast(ResourceDescriptor, resource)
        validators = ResponseDirectives.for_resource(descriptor).to_headers()
        conditionals = RequestConditionals.from_headers(headers)
        decision = validator.evaluate(conditionals, descriptor, request.method)

        logger.debug(
            "Conditional request evaluated: method=%s path=%s status=%d reason=%s",
            request.method,
            request.url.path,
            decision.status,
            decision.reason,
        )

        if decision.status != OK:
            raise fastapi.HTTPException(status_code=decision.status, headers=validators)

        response.headers.update(validators)

    return fastapi.Depends(check_preconditions)


async def header_validation_exception_handler(request: fastapi.Request, exc: Exception) -> fastapi.Response:
    """
    Map HeaderValidationError to a 400 response.

    Example:
        >>> app.add_exception_handler(HeaderValidationError, header_validation_exception_handler)
    """
    assert isinstance(exc, HeaderValidationError)
    logger.warning("Rejecting request with malformed header: path=%s error=%s", request.url.path, exc)
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "header": exc.header_name},
    )
