"""
Ersatz Expectations

Expectation registry and the per-request expectation model.

Features:
- Insertion-ordered, first-match lookup
- AND-combined request matchers per expectation
- Multiple responses per expectation with a saturating cursor
- Call-count contracts verified with a bounded wait
- Request listeners and forwarding
- WebSocket expectations keyed by path
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from ..common.utils import WaitFor, is_true_before
from ..encdec.chains import DecoderChain
from ..encdec.decoders import Decoder, RequestDecoders
from ..errors import VerificationError
from .matcher import (
    HttpMethod,
    RequestMatcher,
    body_matching,
    body_param_matching,
    content_type_header,
    cookie_matching,
    header_matching,
    method_matcher,
    path_matcher,
    query_exists,
    query_matching,
    request_matching,
    secure_matcher,
)
from .predicates import Predicate, anything, equal_to, greater_than_or_equal_to
from .request import ClientRequest
from .response import ForwardResponse, HeadResponse, Response
from .websocket import WebSocketExpectation

logger = logging.getLogger("ersatz.mock")

_MISSING = object()


class MatcherSet:
    """
    Builder methods that attach request matchers.

    Shared by expectations and global requirements; every call appends
    one matcher and all matchers must pass.
    """

    matchers: List[RequestMatcher]

    def header(self, name: str, value: Any) -> 'MatcherSet':
        """Require a header value (str), values (list) or a predicate over the values."""
        self.matchers.append(header_matching(name, value))
        return self

    def headers(self, headers: Dict[str, Any]) -> 'MatcherSet':
        for name, value in headers.items():
            self.header(name, value)
        return self

    def query(self, name: str, value: Any = _MISSING) -> 'MatcherSet':
        """
        Require a query parameter.

        With no value the parameter only has to exist. An empty string
        matches a valueless parameter such as `?flag`.
        """
        if value is _MISSING:
            self.matchers.append(query_exists(name))
        else:
            self.matchers.append(query_matching(name, value))
        return self

    def queries(self, queries: Dict[str, Any]) -> 'MatcherSet':
        for name, value in queries.items():
            self.query(name, value)
        return self

    def cookie(self, name: str, value: Any) -> 'MatcherSet':
        """Require a cookie by value, Cookie record or CookieMatcher."""
        self.matchers.append(cookie_matching(name, value))
        return self

    def cookies(self, cookies: Dict[str, Any]) -> 'MatcherSet':
        for name, value in cookies.items():
            self.cookie(name, value)
        return self

    def secure(self, secure: bool = True) -> 'MatcherSet':
        self.matchers.append(secure_matcher(secure))
        return self

    def matcher(self, matcher: Union[RequestMatcher, Callable[[ClientRequest], bool]], description: str = 'a configured predicate') -> 'MatcherSet':
        """Attach a free-form matcher over the whole request."""
        self.matchers.append(request_matching(matcher, description))
        return self

    def matches(self, request: ClientRequest) -> bool:
        return all(matcher(request) for matcher in self.matchers)

    def match_details(self, request: ClientRequest) -> List[Tuple[str, bool]]:
        """Description and outcome of every matcher, for reports."""
        return [(matcher.description, matcher(request)) for matcher in self.matchers]


class Expectation(MatcherSet):
    """
    One expected request and the responses it gets.

    The first two matchers are always the method and path matchers.
    Responses are served in order; once the last response is reached it
    is repeated for every further match. With no responses a match is
    answered with 204.

    Example:
        (expectations.get('/users')
            .header('Accept', 'application/json')
            .called(2)
            .responds()
            .body('[]', 'application/json'))
    """

    def __init__(self, method: Any, path: Any, decoders: Optional[RequestDecoders] = None):
        self.method = HttpMethod.of(method)
        self.path = path
        self.matchers: List[RequestMatcher] = [method_matcher(self.method), path_matcher(path)]
        self._global_decoders = decoders
        self._responses: List[Union[Response, ForwardResponse]] = []
        self._listeners: List[Callable[[ClientRequest], None]] = []
        self._call_verifier: Predicate = anything()
        self._call_count = 0
        self._lock = threading.Lock()

    def called(self, count: Any = None) -> 'Expectation':
        """
        Set the call-count contract.

        Args:
            count: None for 'at least once', an int for an exact count,
                or a predicate over the count
        """
        if count is None:
            self._call_verifier = greater_than_or_equal_to(1)
        elif isinstance(count, Predicate):
            self._call_verifier = count
        else:
            self._call_verifier = equal_to(count)
        return self

    def listener(self, listener: Callable[[ClientRequest], None]) -> 'Expectation':
        """Call `listener(request)` after every match."""
        self._listeners.append(listener)
        return self

    def responds(self) -> Response:
        """Append a new response and return it for configuration."""
        response = HeadResponse() if self.method is HttpMethod.HEAD else Response()
        self._responses.append(response)
        return response

    def responder(self, configure: Callable[[Response], Any]) -> 'Expectation':
        """Append a response configured by a callable."""
        configure(self.responds())
        return self

    def forward(self, url: str) -> 'Expectation':
        """Relay matching requests to another server."""
        self._responses.append(ForwardResponse(url))
        return self

    @property
    def responses(self) -> List[Union[Response, ForwardResponse]]:
        return list(self._responses)

    @property
    def call_count(self) -> int:
        return self._call_count

    def current_response(self) -> Optional[Union[Response, ForwardResponse]]:
        """Response the next match would use, without advancing."""
        with self._lock:
            return self._select(self._call_count)

    def mark(self, request: ClientRequest) -> Optional[Union[Response, ForwardResponse]]:
        """
        Record a match and select its response.

        Selecting the response and incrementing the call count happen in
        one locked step, so concurrent matches each get their own slot.
        Listeners run afterwards, in registration order.

        Returns:
            The response for this match, or None when none are configured
        """
        with self._lock:
            response = self._select(self._call_count)
            self._call_count += 1

        for listener in self._listeners:
            listener(request)

        return response

    def _select(self, count: int) -> Optional[Union[Response, ForwardResponse]]:
        if not self._responses:
            return None
        return self._responses[min(count, len(self._responses) - 1)]

    def is_satisfied(self) -> bool:
        return self._call_verifier(self._call_count)

    def verify(self, wait: WaitFor = WaitFor.ONE_SECOND) -> bool:
        """Wait until the call-count contract holds, or the timeout passes."""
        return is_true_before(self.is_satisfied, wait)

    def __str__(self) -> str:
        return 'Expectation (' + ', '.join(m.description for m in self.matchers) + \
            f", called: {self._call_verifier})"


class ExpectationWithContent(Expectation):
    """
    Expectation for methods that carry a body (POST, PUT, PATCH).

    Example:
        (expectations.post('/form')
            .param('name', 'value')
            .body({'id': 1}, 'application/json')
            .responds().code(201))
    """

    def __init__(self, method: Any, path: Any, decoders: Optional[RequestDecoders] = None):
        super().__init__(method, path, decoders)
        self._local_decoders = RequestDecoders()

    @property
    def decoder_chain(self) -> DecoderChain:
        return DecoderChain(server_level=self._global_decoders, request_level=self._local_decoders)

    def decoder(self, content_type: str, decoder: Decoder) -> 'ExpectationWithContent':
        """Register a decoder used by this expectation before the global ones."""
        self._local_decoders.register(content_type, decoder)
        return self

    def body(self, expected: Any, content_type: str) -> 'ExpectationWithContent':
        """
        Require a body that decodes, for the given content type, to a matching value.

        Args:
            expected: Expected decoded value or a predicate over it
            content_type: Content type the request must declare
        """
        self.matchers.append(content_type_header(content_type))
        self.matchers.append(body_matching(expected, content_type, self.decoder_chain))
        return self

    def param(self, name: str, value: Any = None) -> 'ExpectationWithContent':
        """
        Require a url-encoded body parameter.

        None matches a valueless parameter; a list matches those values in
        any order.
        """
        self.matchers.append(body_param_matching(name, value))
        return self

    def params(self, params: Dict[str, Any]) -> 'ExpectationWithContent':
        for name, value in params.items():
            self.param(name, value)
        return self


_WITH_CONTENT = {HttpMethod.ANY, HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH}


class Expectations:
    """
    Ordered registry of request expectations and WebSocket expectations.

    Lookup returns the first registered expectation that matches, so
    registration order decides between overlapping expectations.

    Example:
        expectations = Expectations(default_decoders())
        expectations.get('/hello').responds().body('hi', 'text/plain')
        expectations.find_match(request)
    """

    def __init__(self, decoders: Optional[RequestDecoders] = None):
        self._decoders = decoders if decoders is not None else RequestDecoders()
        self._requests: List[Expectation] = []
        self._websockets: Dict[str, WebSocketExpectation] = {}

    def register(self, method: Any, path: Any, config: Optional[Callable[[Expectation], Any]] = None) -> Expectation:
        """
        Add an expectation.

        Args:
            method: HttpMethod or method name
            path: Exact path, '*' or a path predicate
            config: Optional callable that configures the new expectation

        Returns:
            The new expectation, for further configuration
        """
        method = HttpMethod.of(method)
        factory = ExpectationWithContent if method in _WITH_CONTENT else Expectation
        expectation = factory(method, path, self._decoders)
        self._requests.append(expectation)

        if config is not None:
            config(expectation)

        return expectation

    def any(self, path: Any, config: Optional[Callable] = None) -> ExpectationWithContent:
        return self.register(HttpMethod.ANY, path, config)

    def get(self, path: Any, config: Optional[Callable] = None) -> Expectation:
        return self.register(HttpMethod.GET, path, config)

    def head(self, path: Any, config: Optional[Callable] = None) -> Expectation:
        return self.register(HttpMethod.HEAD, path, config)

    def post(self, path: Any, config: Optional[Callable] = None) -> ExpectationWithContent:
        return self.register(HttpMethod.POST, path, config)

    def put(self, path: Any, config: Optional[Callable] = None) -> ExpectationWithContent:
        return self.register(HttpMethod.PUT, path, config)

    def delete(self, path: Any, config: Optional[Callable] = None) -> Expectation:
        return self.register(HttpMethod.DELETE, path, config)

    def patch(self, path: Any, config: Optional[Callable] = None) -> ExpectationWithContent:
        return self.register(HttpMethod.PATCH, path, config)

    def options(self, path: Any, config: Optional[Callable] = None) -> Expectation:
        return self.register(HttpMethod.OPTIONS, path, config)

    def trace(self, path: Any, config: Optional[Callable] = None) -> Expectation:
        return self.register(HttpMethod.TRACE, path, config)

    def ws(self, path: str, config: Optional[Callable[[WebSocketExpectation], Any]] = None) -> WebSocketExpectation:
        """Add (or replace) the WebSocket expectation for a path."""
        expectation = WebSocketExpectation(path)
        self._websockets[path] = expectation

        if config is not None:
            config(expectation)

        return expectation

    def find_match(self, request: ClientRequest) -> Optional[Expectation]:
        """Return the first expectation matching the request, or None."""
        for expectation in self._requests:
            if expectation.matches(request):
                return expectation
        return None

    def find_ws(self, path: str) -> Optional[WebSocketExpectation]:
        return self._websockets.get(path)

    @property
    def requests(self) -> List[Expectation]:
        return list(self._requests)

    @property
    def websockets(self) -> Dict[str, WebSocketExpectation]:
        return dict(self._websockets)

    def clear(self) -> None:
        """Remove all request and WebSocket expectations. Codec registries are untouched."""
        self._requests.clear()
        self._websockets.clear()

    def assert_verified(self, wait: Any = None) -> None:
        """
        Verify every expectation, stopping at the first unmet one.

        Args:
            wait: WaitFor, seconds, or None for one second

        Raises:
            VerificationError: An expectation was not satisfied in time
        """
        wait = WaitFor.of(wait, WaitFor.ONE_SECOND)

        for expectation in self._requests:
            if not expectation.verify(wait):
                logger.warning(f"Call count mismatch -> {expectation} (actual calls: {expectation.call_count})")
                raise VerificationError(
                    str(expectation),
                    f"Expectation not satisfied: {expectation} (actual calls: {expectation.call_count})"
                )

        for websocket in self._websockets.values():
            if not websocket.verify(wait):
                logger.warning(f"WebSocket expectation mismatch -> {websocket}")
                raise VerificationError(
                    str(websocket),
                    f"WebSocket expectation not satisfied: {websocket} (connected: {websocket.connected})"
                )

    def verify(self, wait: Any = None) -> bool:
        """Same checks as assert_verified, returning False instead of raising."""
        try:
            self.assert_verified(wait)
        except VerificationError:
            return False
        return True

    def __iter__(self) -> Iterator[Expectation]:
        return iter(list(self._requests))

    def __len__(self) -> int:
        return len(self._requests)
