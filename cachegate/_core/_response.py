from __future__ import annotations

import typing as t
from dataclasses import dataclass

from cachegate._core._headers import INT32_MAX
from cachegate._core.models import ResourceDescriptor, resource_etag
from cachegate._utils import Timestamp, format_http_date

__all__ = ("ResponseDirectives",)


@dataclass
class ResponseDirectives:
    """
    Cache headers to attach to a full response.

    Only serializes; it never sends anything. Unset fields produce no header.

    Args:
        public: Any cache may store the response. [RFC 7234, Section 5.2.2.5]
        private: Only a private cache may store the response. [RFC 7234, Section 5.2.2.6]
        no_cache: Caches must revalidate before reuse. [RFC 7234, Section 5.2.2.2]
        no_store: Caches must not store anything. [RFC 7234, Section 5.2.2.3]
        no_transform: Intermediaries must not transform the payload. [RFC 7234, Section 5.2.2.4]
        must_revalidate: Stale copies must be revalidated. [RFC 7234, Section 5.2.2.1]
        proxy_revalidate: must-revalidate for shared caches only. [RFC 7234, Section 5.2.2.7]
        max_age: Freshness lifetime in seconds. [RFC 7234, Section 5.2.2.8]
        s_maxage: Freshness lifetime for shared caches. [RFC 7234, Section 5.2.2.9]
        age: Seconds the response spent in a proxy cache, usually 0.
        etag: Entity tag, quoted on output.
        last_modified: Instant the resource last changed.
        expires: Instant after which the response is stale; past instants
            mean already expired.
        vary: Request header name the representation varies by.

    Examples:
        >>> ResponseDirectives(public=True, max_age=60, etag="abc").to_headers()
        {'ETag': '"abc"', 'Cache-Control': 'public, max-age=60'}
    """

    public: bool = False
    private: bool = False
    no_cache: bool = False
    no_store: bool = False
    no_transform: bool = False
    must_revalidate: bool = False
    proxy_revalidate: bool = False
    max_age: t.Optional[int] = None
    s_maxage: t.Optional[int] = None
    age: t.Optional[int] = None
    etag: t.Optional[str] = None
    last_modified: t.Optional[Timestamp] = None
    expires: t.Optional[Timestamp] = None
    vary: t.Optional[str] = None

    @classmethod
    def for_resource(cls, resource: ResourceDescriptor, **directives: t.Any) -> "ResponseDirectives":
        """Directives carrying the validators of `resource`."""
        return cls(
            etag=resource_etag(resource) or None,
            last_modified=resource.last_modified,
            **directives,
        )

    def cache_control(self) -> t.Optional[str]:
        directives: list[str] = []

        if self.public:
            directives.append("public")

        if self.private:
            directives.append("private")

        if self.no_cache:
            directives.append("no-cache")

        if self.no_store:
            directives.append("no-store")

        if self.no_transform:
            directives.append("no-transform")

        if self.must_revalidate:
            directives.append("must-revalidate")

        if self.proxy_revalidate:
            directives.append("proxy-revalidate")

        if self.max_age is not None:
            directives.append(f"max-age={self.max_age}")

        if self.s_maxage is not None:
            directives.append(f"s-maxage={self.s_maxage}")

        return ", ".join(directives) if directives else None

    def to_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}

        if self.age is not None:
            headers["Age"] = str(min(max(int(self.age), 0), INT32_MAX))

        if self.etag:
            headers["ETag"] = '"' + self.etag.strip('"') + '"'

        if self.expires is not None:
            headers["Expires"] = format_http_date(self.expires)

        if self.last_modified is not None:
            headers["Last-Modified"] = format_http_date(self.last_modified)

        if self.vary:
            headers["Vary"] = self.vary

        cache_control = self.cache_control()
        if cache_control:
            headers["Cache-Control"] = cache_control

        return headers
