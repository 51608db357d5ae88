from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from cachegate._core._headers import (
    CONDITIONAL_HEADERS,
    Headers,
    parse_cache_control,
    parse_entity_tag,
)
from cachegate._utils import Timestamp, parse_date, to_timestamp

logger = logging.getLogger("cachegate.core.models")


@runtime_checkable
class ResourceDescriptor(Protocol):
    """
    Identity of the resource a request addresses.

    `etag` is an opaque strong validator; an empty string means the resource
    has no stable identity. `last_modified` is a Unix timestamp or a
    datetime; None means the resource has no time-based identity.
    """

    @property
    def etag(self) -> str: ...

    @property
    def last_modified(self) -> Optional[Timestamp]: ...


@dataclass(frozen=True)
class Resource:
    etag: str = ""
    last_modified: Optional[Timestamp] = None


def resource_etag(resource: ResourceDescriptor) -> str:
    """The resource's entity tag without surrounding quotes, or ""."""
    etag = resource.etag or ""
    if len(etag) >= 2 and etag[0] == '"' and etag[-1] == '"':
        etag = etag[1:-1]
    return etag


def resource_time(resource: ResourceDescriptor) -> Optional[int]:
    """The resource's last modification in whole Unix seconds, or None."""
    return to_timestamp(resource.last_modified)


@dataclass(frozen=True)
class RequestConditionals:
    """
    Conditional and cache-control headers of a single request.

    Every field is either absent (None / False) or an already validated
    value; malformed header values are never stored.

    Attributes:
    ----------
    matching_etag : str | None
        Strong tag from If-Match, or "*" for any representation.

    not_matching_etag : str | None
        Strong tag from If-None-Match, or "*".

    modified_since : int | None
        If-Modified-Since as a Unix timestamp.

    not_modified_since : int | None
        If-Unmodified-Since as a Unix timestamp.

    max_age, max_stale_age, min_fresh_age : int | None
        Cache-Control deltas in seconds. -1 means "stale immediately",
        values are capped at 2147483647. s-maxage is folded into
        max_stale_age.

    has_conditionals : bool
        True when any recognized header was present on the request,
        whatever its value.
    """

    matching_etag: Optional[str] = None
    not_matching_etag: Optional[str] = None
    modified_since: Optional[int] = None
    not_modified_since: Optional[int] = None
    no_cache: bool = False
    no_store: bool = False
    no_transform: bool = False
    cache_only: bool = False
    max_age: Optional[int] = None
    max_stale_age: Optional[int] = None
    min_fresh_age: Optional[int] = None
    has_conditionals: bool = False

    @classmethod
    def from_headers(cls, headers: Mapping[str, Union[str, List[str]]]) -> "RequestConditionals":
        """
        Build the record from raw request headers.

        Header names are case-insensitive; CGI-style names such as
        HTTP_IF_NONE_MATCH are accepted too. Never raises for malformed
        values: they are treated as absent.
        """
        if not isinstance(headers, Headers):
            headers = Headers(headers)

        cache_control = parse_cache_control(headers["cache-control"] if "cache-control" in headers else None)

        conditionals = cls(
            matching_etag=parse_entity_tag(headers["if-match"] if "if-match" in headers else None),
            not_matching_etag=parse_entity_tag(headers["if-none-match"] if "if-none-match" in headers else None),
            modified_since=(
                parse_date(headers["if-modified-since"]) if "if-modified-since" in headers else None
            ),
            not_modified_since=(
                parse_date(headers["if-unmodified-since"]) if "if-unmodified-since" in headers else None
            ),
            no_cache=cache_control.no_cache,
            no_store=cache_control.no_store,
            no_transform=cache_control.no_transform,
            cache_only=cache_control.only_if_cached,
            max_age=cache_control.max_age,
            max_stale_age=cache_control.max_stale,
            min_fresh_age=cache_control.min_fresh,
            has_conditionals=any(name in headers for name in CONDITIONAL_HEADERS),
        )

        if cache_control.invalid:
            logger.debug(f"Ignoring Cache-Control directives with unusable values: {cache_control.invalid}")

        return conditionals

