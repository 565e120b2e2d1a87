"""
Ersatz Request Matchers

Composable predicates over a ClientRequest. Each matcher tests one
request attribute and carries a description for the unmatched-request
report; the description never affects matching.

Features:
- HTTP method (with ANY wildcard) and path matching
- Header, query and body-parameter matching over value collections
- Cookie matching on the full cookie record
- Decoded body matching through the decoder chain
- Scheme (secure) and free-form request predicates
"""

import logging
from enum import Enum
from typing import Any, Callable, Optional

from ..encdec.chains import DecoderChain, DecodingContext
from ..encdec.cookie import Cookie
from ..encdec.multipart import MultipartRequestContent
from .predicates import (
    Predicate,
    anything,
    contains_in_any_order,
    equal_to,
    has_item,
    predicate_of,
    starts_with,
)
from .request import ClientRequest

logger = logging.getLogger("ersatz.mock")


class HttpMethod(str, Enum):
    """Supported HTTP methods. ANY matches every method."""

    ANY = '*'
    GET = 'GET'
    HEAD = 'HEAD'
    POST = 'POST'
    PUT = 'PUT'
    DELETE = 'DELETE'
    PATCH = 'PATCH'
    OPTIONS = 'OPTIONS'
    TRACE = 'TRACE'

    @classmethod
    def of(cls, value: Any) -> 'HttpMethod':
        if isinstance(value, HttpMethod):
            return value
        return cls(str(value).upper())

    def __str__(self) -> str:
        return self.value


class RequestMatcher:
    """
    A predicate over a ClientRequest with a description.

    Example:
        matcher = header_matching('Accept', has_item('application/json'))
        matcher.matches(request)
    """

    def __init__(self, test: Callable[[ClientRequest], bool], description: str = 'a configured predicate'):
        self._test = test
        self.description = description

    def matches(self, request: ClientRequest) -> bool:
        return bool(self._test(request))

    def __call__(self, request: ClientRequest) -> bool:
        return self.matches(request)

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"RequestMatcher({self.description!r})"


def method_matcher(method: Any) -> RequestMatcher:
    """Match the request method; ANY on either side is a wildcard."""
    expected = HttpMethod.of(method)

    def _test(request: ClientRequest) -> bool:
        actual = request.method.upper()
        return expected is HttpMethod.ANY or actual == HttpMethod.ANY.value or actual == expected.value

    return RequestMatcher(_test, f"HTTP method is ({expected.value})")


def path_matcher(path: Any) -> RequestMatcher:
    """
    Match the request path.

    Args:
        path: Exact path string, '*' for any path, or a value predicate
    """
    if path == '*':
        predicate = anything()
    else:
        predicate = predicate_of(path)

    return RequestMatcher(lambda request: predicate(request.path), f"Path matches {predicate}")


def _values_predicate(value: Any) -> Predicate:
    """Single values mean 'contains this item', lists mean 'contains all of these'."""
    if isinstance(value, Predicate):
        return value
    if isinstance(value, (list, tuple)):
        return contains_in_any_order(*value)
    return has_item(value)


def header_matching(name: str, values: Any) -> RequestMatcher:
    """
    Match when the header's value collection satisfies the predicate.

    Names compare case-insensitively. Every header() call on an
    expectation adds an independent matcher, so one multi-valued header
    may satisfy several matchers for the same name.
    """
    predicate = _values_predicate(values)
    wanted = name.lower()

    def _test(request: ClientRequest) -> bool:
        return any(
            key.lower() == wanted and predicate(header_values)
            for key, header_values in request.headers.items()
        )

    return RequestMatcher(_test, f"Header {name} matches {predicate}")


def header_exists(name: str) -> RequestMatcher:
    wanted = name.lower()
    return RequestMatcher(
        lambda request: any(key.lower() == wanted for key, _ in request.raw_headers),
        f"Header {name} exists"
    )


def header_does_not_exist(name: str) -> RequestMatcher:
    exists = header_exists(name)
    return RequestMatcher(lambda request: not exists(request), f"Header {name} does not exist")


def content_type_header(content_type: str) -> RequestMatcher:
    """Match a Content-Type header starting with the given type, tolerating parameters."""
    return header_matching('Content-Type', has_item(starts_with(content_type)))


def query_matching(name: str, values: Any) -> RequestMatcher:
    predicate = _values_predicate(values)
    return RequestMatcher(
        lambda request: name in request.query and predicate(request.query[name]),
        f"Query string {name} matches {predicate}"
    )


def query_exists(name: str) -> RequestMatcher:
    return RequestMatcher(lambda request: name in request.query, f"Query string {name} exists")


def query_does_not_exist(name: str) -> RequestMatcher:
    return RequestMatcher(lambda request: name not in request.query, f"Query string {name} does not exist")


def body_param_matching(name: str, values: Any) -> RequestMatcher:
    """
    Match a url-encoded body parameter.

    A value of None matches a valueless parameter (`name` or `name=`).
    """
    if values is None:
        predicate = has_item('')
    else:
        predicate = _values_predicate(values)

    def _test(request: ClientRequest) -> bool:
        params = request.body_parameters
        return name in params and predicate(params[name])

    return RequestMatcher(_test, f"Param {name} matches {predicate}")


def body_param_exists(name: str) -> RequestMatcher:
    return RequestMatcher(lambda request: name in request.body_parameters, f"Param {name} exists")


def body_param_does_not_exist(name: str) -> RequestMatcher:
    return RequestMatcher(lambda request: name not in request.body_parameters, f"Param {name} does not exist")


class CookieMatcher(Predicate):
    """
    Predicate over a Cookie record. Unset attributes are not checked.

    Example:
        CookieMatcher().value('abc').path(starts_with('/api')).http_only(True)
    """

    _ATTRIBUTES = ('value', 'comment', 'domain', 'path', 'version', 'http_only', 'max_age', 'secure')

    def __init__(self):
        self._checks = {}
        super().__init__(self._test, 'any cookie')

    def _set(self, attribute: str, expected: Any) -> 'CookieMatcher':
        self._checks[attribute] = predicate_of(expected)
        self.description = 'Cookie matching (' + ', '.join(
            f"{name}: {check}" for name, check in self._checks.items()
        ) + ')'
        return self

    def value(self, expected: Any) -> 'CookieMatcher':
        return self._set('value', expected)

    def comment(self, expected: Any) -> 'CookieMatcher':
        return self._set('comment', expected)

    def domain(self, expected: Any) -> 'CookieMatcher':
        return self._set('domain', expected)

    def path(self, expected: Any) -> 'CookieMatcher':
        return self._set('path', expected)

    def version(self, expected: Any) -> 'CookieMatcher':
        return self._set('version', expected)

    def http_only(self, expected: Any) -> 'CookieMatcher':
        return self._set('http_only', expected)

    def max_age(self, expected: Any) -> 'CookieMatcher':
        return self._set('max_age', expected)

    def secure(self, expected: Any) -> 'CookieMatcher':
        return self._set('secure', expected)

    def _test(self, cookie: Optional[Cookie]) -> bool:
        if cookie is None:
            return False
        return all(check(getattr(cookie, name)) for name, check in self._checks.items())


def _cookie_predicate(expected: Any) -> Predicate:
    """A plain value compares with the cookie value; predicates see the whole record."""
    if isinstance(expected, Predicate):
        return expected
    if isinstance(expected, Cookie):
        return equal_to(expected)
    return CookieMatcher().value(expected)


def cookie_matching(name: str, expected: Any) -> RequestMatcher:
    predicate = _cookie_predicate(expected)
    return RequestMatcher(
        lambda request: name in request.cookies and predicate(request.cookies[name]),
        f"Cookie {name} matches {predicate}"
    )


def cookie_exists(name: str) -> RequestMatcher:
    return RequestMatcher(lambda request: name in request.cookies, f"Cookie {name} exists")


def cookie_does_not_exist(name: str) -> RequestMatcher:
    return RequestMatcher(lambda request: name not in request.cookies, f"Cookie {name} does not exist")


def has_no_cookies() -> RequestMatcher:
    return RequestMatcher(lambda request: not request.cookies, "No cookies")


def secure_matcher(secure: bool = True) -> RequestMatcher:
    """Match on the request scheme: https when secure, http otherwise."""
    scheme = 'https' if secure else 'http'
    return RequestMatcher(lambda request: request.scheme.lower() == scheme, f"Scheme is {scheme}")


def body_matching(expected: Any, content_type: str, decoders: DecoderChain) -> RequestMatcher:
    """
    Match the decoded request body.

    The body is only decoded when the request Content-Type starts with the
    declared content type. A missing decoder, or a body the decoder
    rejects, is a non-match.

    Args:
        expected: Value or predicate over the decoded body
        content_type: Declared body content type
        decoders: Decoder chain used to resolve the decoder
    """
    predicate = predicate_of(expected)

    def _test(request: ClientRequest) -> bool:
        actual_type = request.content_type
        if actual_type is None or not actual_type.startswith(content_type):
            return False

        decoder = decoders.resolve(content_type)
        if decoder is None:
            logger.debug(f"No decoder for content-type ({content_type}), body does not match")
            return False

        context = DecodingContext(
            content_length=request.content_length,
            content_type=actual_type,
            character_encoding=request.character_encoding,
            decoder_chain=decoders
        )
        try:
            decoded = decoder(request.body or b'', context)
        except (ValueError, UnicodeDecodeError) as e:
            logger.debug(f"Body could not be decoded as {content_type}: {e}")
            return False

        return predicate(decoded)

    return RequestMatcher(_test, f"Body matches {predicate}")


def request_matching(test: Callable[[ClientRequest], bool], description: str = 'a configured predicate') -> RequestMatcher:
    """Wrap a free-form predicate over the whole request."""
    if isinstance(test, RequestMatcher):
        return test
    return RequestMatcher(test, description)


class MultipartRequestMatcher(Predicate):
    """
    Predicate over decoded MultipartRequestContent, field by field.

    A declared field that is missing from the request fails the match.
    Content types compare as 'starts with' to tolerate parameters.

    Example:
        body(MultipartRequestMatcher()
                 .part('alpha', 'one')
                 .part('file', data, content_type='image/png', file_name='photo.png'),
             'multipart/form-data')
    """

    def __init__(self):
        self._fields = {}
        super().__init__(self._test, 'a multipart body')

    def part(
        self,
        field_name: str,
        value: Any = None,
        content_type: Any = None,
        file_name: Any = None
    ) -> 'MultipartRequestMatcher':
        checks = []
        if file_name is not None:
            checks.append(('file_name', predicate_of(file_name)))
        if content_type is not None:
            checks.append((
                'content_type',
                starts_with(content_type) if isinstance(content_type, str) else predicate_of(content_type)
            ))
        if value is not None:
            checks.append(('value', predicate_of(value)))

        self._fields[field_name] = checks
        self.description = 'a multipart body with ' + '; '.join(
            f"{name} (" + ', '.join(f"{attr}: {check}" for attr, check in field_checks) + ')'
            for name, field_checks in self._fields.items()
        )
        return self

    def _test(self, content: Any) -> bool:
        if not isinstance(content, MultipartRequestContent):
            return False

        for field_name, checks in self._fields.items():
            part = content.get(field_name)
            if part is None:
                return False
            if not all(check(getattr(part, attribute)) for attribute, check in checks):
                return False

        return True
