from __future__ import annotations

from typing import (
    Any,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

from cachegate._utils import HEADERS_ENCODING, parse_date

"""
HTTP token and quoted-string parsing utilities.

These functions implement RFC 7230 parsing rules for HTTP/1.1 tokens
and quoted strings.
"""


INT32_MAX = 2147483647
STALE_IMMEDIATELY = -1

CONDITIONAL_HEADERS = (
    "if-match",
    "if-none-match",
    "if-modified-since",
    "if-unmodified-since",
    "cache-control",
)

# Markers appended to entity tags by compressing intermediaries
# (e.g. Apache mod_deflate turns "abc" into "abc-gzip").
ETAG_PROXY_SUFFIXES = ("-gzip", ";gzip", "-br", "-deflate")

WILDCARD = "*"


def is_char(c: str) -> bool:
    """
    Check if character is a valid ASCII character (0-127).

    Per RFC 7230: CHAR = any US-ASCII character (octets 0 - 127)
    """
    if not c:
        return False
    return ord(c) <= 127


def is_ctl(c: str) -> bool:
    """
    Check if character is a control character.

    Per RFC 7230: CTL = control characters (0-31 and 127)
    """
    if not c:
        return False
    b = ord(c)
    return b <= 31 or b == 127


def is_separator(c: str) -> bool:
    """
    Check if character is an HTTP separator.

    Per RFC 2616 Section 2.2:
    separators = "(" | ")" | "<" | ">" | "@"
               | "," | ";" | ":" | "\" | <">
               | "/" | "[" | "]" | "?" | "="
               | "{" | "}" | SP | HT
    """
    if not c:
        return False
    return c in '()<>@,;:\\"/[]?={} \t'


def is_token(c: str) -> bool:
    """
    Check if character is valid in an HTTP token.

    Per RFC 7230 Section 3.2.6:
    token = 1*tchar
    tchar = "!" / "#" / "$" / "%" / "&" / "'" / "*"
          / "+" / "-" / "." / "0"-"9" / "A"-"Z"
          / "^" / "_" / "`" / "a"-"z" / "|" / "~"

    Implementation: token chars are CHAR but not CTL or separators

    Examples:
        >>> is_token('a')
        True
        >>> is_token('-')
        True
        >>> is_token(' ')
        False
        >>> is_token(',')
        False
    """
    return is_char(c) and not is_ctl(c) and not is_separator(c)


def is_qd_text(c: str) -> bool:
    r"""
    Check if character is valid in quoted-text.

    Per RFC 7230 Section 3.2.6:
    qdtext = HTAB / SP / %x21 / %x23-5B / %x5D-7E / obs-text
    """
    if not c:
        return False

    b = ord(c)
    return (
        b == 0x09  # HTAB
        or b == 0x20  # SP
        or b == 0x21  # !
        or (0x23 <= b <= 0x5B)  # # to [ (skips " which is 0x22)
        or (0x5D <= b <= 0x7E)  # ] to ~ (skips \ which is 0x5C)
        or b >= 0x80
    )  # obs-text


def http_unquote(raw: str) -> tuple[int, str]:
    """
    Unquote an HTTP quoted-string.

    Per RFC 7230 Section 3.2.6:
    quoted-string = DQUOTE *( qdtext / quoted-pair ) DQUOTE
    quoted-pair = "\" ( HTAB / SP / VCHAR / obs-text )

    The raw string must begin with a double quote ("). Only the first
    quoted string is parsed.

    Returns:
        Tuple of (eaten, result) where eaten is the number of characters
        consumed, or -1 on failure.

    Examples:
        >>> http_unquote('"hello"')
        (7, 'hello')
        >>> http_unquote('"hello\\"world"')
        (14, 'hello"world')
        >>> http_unquote('"test')
        (-1, '')
    """
    if not raw or raw[0] != '"':
        return -1, ""

    buf: list[str] = []
    i = 1

    while i < len(raw):
        b = raw[i]

        if b == '"':
            return i + 1, "".join(buf)

        elif b == "\\":
            if i + 1 >= len(raw):
                return -1, ""
            buf.append(raw[i + 1])
            i += 2

        else:
            buf.append(b if is_qd_text(b) else "?")
            i += 1

    return -1, ""


def normalize_header_name(name: str) -> str:
    """
    Lower-case a header name, accepting the CGI/WSGI environ spelling.

    Examples:
        >>> normalize_header_name("If-None-Match")
        'if-none-match'
        >>> normalize_header_name("HTTP_IF_NONE_MATCH")
        'if-none-match'
    """
    name = name.strip().lower()
    if name.startswith("http_"):
        name = name[5:].replace("_", "-")
    return name


class Headers(MutableMapping[str, str]):
    def __init__(self, headers: Mapping[str, Union[str, List[str]]]) -> None:
        self._headers: dict[str, list[str]] = {}
        for k, v in headers.items():
            self._headers.setdefault(normalize_header_name(k), []).extend([v] if isinstance(v, str) else v)

    @classmethod
    def from_raw(cls, raw_headers: List[Tuple[bytes, bytes]]) -> "Headers":
        headers = cls({})
        for key, value in raw_headers:
            headers[key.decode(HEADERS_ENCODING)] = value.decode(HEADERS_ENCODING)
        return headers

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(normalize_header_name(key), None)

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[normalize_header_name(key)])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers.setdefault(normalize_header_name(key), []).append(value)

    def __delitem__(self, key: str) -> None:
        del self._headers[normalize_header_name(key)]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_header_name(key) in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return repr(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


class CacheControl:
    """
    Request Cache-Control directives [RFC7234, Section 5.2.1].

    Uses None for unset numeric values; -1 means the client asked for a
    negative delta, which is treated as "stale immediately".

    Supported Directives:
    - max-age [RFC7234, Section 5.2.1.1]
    - max-stale [RFC7234, Section 5.2.1.2]
    - min-fresh [RFC7234, Section 5.2.1.3]
    - no-cache [RFC7234, Section 5.2.1.4]
    - no-store [RFC7234, Section 5.2.1.5]
    - no-transform [RFC7234, Section 5.2.1.6]
    - only-if-cached [RFC7234, Section 5.2.1.7]
    - s-maxage [RFC7234, Section 5.2.2.9], folded into max-stale
    """

    def __init__(self) -> None:
        self.max_age: Optional[int] = None
        self.max_stale: Optional[int] = None
        self.min_fresh: Optional[int] = None
        self.no_cache: bool = False
        self.no_store: bool = False
        self.no_transform: bool = False
        self.only_if_cached: bool = False

        # Extensions (unrecognized directives)
        self.extensions: List[str] = []

        # Directives whose value could not be used
        self.invalid: List[str] = []


def parse_int_value(value: str) -> Optional[int]:
    """
    Parse a delta-seconds value, return None if it is not an integer.

    Examples:
        >>> parse_int_value("60")
        60
        >>> parse_int_value("-5")
        -1
        >>> parse_int_value("9999999999999")
        2147483647
        >>> parse_int_value("soon") is None
        True
    """
    value = value.strip()
    digits = value[1:] if value.startswith("-") else value
    # int() would also accept "+5" and "1_000", which are not delta-seconds
    if not digits or not all("0" <= c <= "9" for c in digits):
        return None
    val = int(value)
    if val < 0:
        return STALE_IMMEDIATELY
    return min(val, INT32_MAX)


def parse(value: str) -> CacheControl:
    """
    Parse a Cache-Control header value character by character.

    Handles quoted values, so commas inside quotes do not split directives.
    """
    cc = CacheControl()

    if not value:
        return cc

    i = 0
    length = len(value)

    while i < length:
        # Skip leading whitespace and commas
        while i < length and (value[i] in (" ", "\t", ",")):
            i += 1

        if i >= length:
            break

        j = i
        while j < length and is_token(value[j]):
            j += 1

        if j == i:
            # No valid token found, skip this character
            i += 1
            continue

        token = value[i:j].lower()

        while j < length and value[j] in (" ", "\t"):
            j += 1

        if j < length and value[j] == "=":
            k = j + 1

            while k < length and value[k] in (" ", "\t"):
                k += 1

            if k >= length or value[k] == ",":
                handle_directive_with_value(cc, token, "")
                i = k
                continue

            if value[k] == '"':
                eaten, result = http_unquote(value[k:])
                if eaten == -1:
                    # Quote mismatch, skip to next directive
                    cc.invalid.append(token)
                    i = k + 1
                    continue

                i = k + eaten
                handle_directive_with_value(cc, token, result)
            else:
                z = k
                while z < length and value[z] not in (" ", "\t", ","):
                    z += 1

                i = z
                handle_directive_with_value(cc, token, value[k:z])
        else:
            handle_directive_without_value(cc, token)
            i = j

    return cc


def handle_directive_with_value(cc: CacheControl, token: str, value: str) -> None:
    """Handle a directive that has a value."""
    if token in ("max-age", "max-stale", "s-maxage", "min-fresh"):
        seconds = parse_int_value(value)
        if seconds is None:
            cc.invalid.append(token)

        if token == "max-age":
            cc.max_age = seconds
        elif token == "min-fresh":
            cc.min_fresh = seconds
        else:
            # s-maxage only matters to shared caches; here it bounds staleness
            cc.max_stale = seconds

    elif token in ("no-cache", "no-store", "no-transform", "only-if-cached"):
        # field-name lists are irrelevant to a request, the directive still applies
        handle_directive_without_value(cc, token)

    else:
        cc.extensions.append(f"{token}={value}")


def handle_directive_without_value(cc: CacheControl, token: str) -> None:
    """Handle a directive that doesn't have a value."""
    if token == "no-cache":
        cc.no_cache = True

    elif token == "no-store":
        cc.no_store = True

    elif token == "no-transform":
        cc.no_transform = True

    elif token == "only-if-cached":
        cc.only_if_cached = True

    elif token == "max-stale":
        # RFC 7234 allows a bare max-stale; with no bound to compare it stays unset.
        pass

    elif token in ("max-age", "s-maxage", "min-fresh"):
        # These require a value; without one they stay unset.
        cc.invalid.append(token)

    else:
        cc.extensions.append(token)


def parse_cache_control(value: str | None) -> CacheControl:
    """
    Parse a request Cache-Control header.

    This is the main entry point for parsing. Never raises; unusable
    values leave the corresponding directive unset.

    Examples:
        >>> cc = parse_cache_control("max-age=0, no-transform")
        >>> cc.max_age
        0
        >>> cc.no_transform
        True
        >>> parse_cache_control("max-age=abc").max_age is None
        True
        >>> parse_cache_control("s-maxage=30").max_stale
        30
    """
    if value is None:
        return CacheControl()
    return parse(value)


def strip_proxy_suffix(value: str) -> str:
    for suffix in ETAG_PROXY_SUFFIXES:
        if value.endswith(suffix):
            return value[: -len(suffix)]
    return value


def parse_entity_tag(value: str | None) -> Optional[str]:
    """
    Parse an If-Match / If-None-Match value into a single strong tag.

    Returns the unquoted tag, the wildcard "*", or None when the value is
    empty, weak, or lists more than one tag.
    A quoted "*" is read as the wildcard as well.

    Examples:
        >>> parse_entity_tag('"abc"')
        'abc'
        >>> parse_entity_tag('"abc-gzip"')
        'abc'
        >>> parse_entity_tag('*')
        '*'
        >>> parse_entity_tag('W/"abc"') is None
        True
        >>> parse_entity_tag('"W/abc"') is None
        True
        >>> parse_entity_tag('"a", "b"') is None
        True
    """
    if value is None:
        return None

    value = value.strip()
    if not value or "," in value:
        return None

    if "W/" in value or "w/" in value:
        return None

    value = strip_proxy_suffix(value)
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1]
    value = strip_proxy_suffix(value.strip('"'))

    if not value:
        return None
    return value


def find_malformed_header(headers: Mapping[str, str]) -> Optional[Tuple[str, str]]:
    """
    Look for the first conditional header whose value would be dropped.

    Returns a (header name, header value) pair, or None if every recognized
    header is usable. The parser itself degrades such values to absent;
    this lets an outer layer reject the request instead.
    """
    if not isinstance(headers, Headers):
        headers = Headers(headers)

    for name in ("if-match", "if-none-match"):
        if name in headers and parse_entity_tag(headers[name]) is None:
            return name, headers[name]

    for name in ("if-modified-since", "if-unmodified-since"):
        if name in headers and parse_date(headers[name]) is None:
            return name, headers[name]

    if "cache-control" in headers and parse_cache_control(headers["cache-control"]).invalid:
        return "cache-control", headers["cache-control"]

    return None
