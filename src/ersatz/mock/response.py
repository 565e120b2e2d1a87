"""
Ersatz Responses

Response builder attached to an expectation, and the rendered form the
server writes to the wire.

Features:
- Status, ordered multi-valued headers and cookies
- Bodies encoded through the response/global encoder chain
- Multipart bodies with boundary-aware content type
- Pre-send delay and chunked delivery
- Forward marker for relaying to another server
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..common.mime import ContentType
from ..encdec.chains import EncoderChain
from ..encdec.cookie import Cookie
from ..encdec.encoders import ResponseEncoders, as_bytes
from ..encdec.encoders import multipart as render_multipart
from ..encdec.multipart import MultipartResponseContent
from ..errors import ConfigurationError, UnsupportedContentTypeError
from .chunker import prepare_chunks


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunked delivery: number of chunks and delay between them (ms)."""

    chunks: int = 2
    delay: int = 0


@dataclass
class RenderedResponse:
    """
    A response ready for the transport.

    `chunks` is set when the body should be streamed; chunk 0 goes out
    immediately and each later chunk after `chunk_delay` milliseconds.
    """

    status: int
    headers: List[Tuple[str, str]]
    cookies: Dict[str, Cookie]
    body: bytes
    content_type: str
    delay: int = 0
    chunks: Optional[List[bytes]] = None
    chunk_delay: int = 0


class Response:
    """
    Configurable response for an expectation.

    Example:
        (expectation.responds()
            .code(201)
            .header('X-Id', '42')
            .cookie('session', 'abc')
            .body({'ok': True}, 'application/json'))
    """

    def __init__(self):
        self._code = 200
        self._headers: Dict[str, List[str]] = {}
        self._cookies: Dict[str, Cookie] = {}
        self._content: Any = None
        self._delay = 0
        self._chunking: Optional[ChunkingConfig] = None
        self._encoders = ResponseEncoders()
        self._lock = threading.Lock()
        self._cached: Optional[bytes] = None
        self._cached_key: Any = None

    def code(self, status: int) -> 'Response':
        self._code = status
        return self

    def header(self, name: str, *values: str) -> 'Response':
        """Add one or more values for a header, keeping earlier values."""
        existing = self._header_key(name)
        self._headers.setdefault(existing or name, []).extend(values)
        return self

    def headers(self, headers: Dict[str, Union[str, List[str]]]) -> 'Response':
        for name, value in headers.items():
            if isinstance(value, (list, tuple)):
                self.header(name, *value)
            else:
                self.header(name, value)
        return self

    def cookie(self, name: str, value: Union[str, Cookie]) -> 'Response':
        self._cookies[name] = value if isinstance(value, Cookie) else Cookie(value=value)
        return self

    def cookies(self, cookies: Dict[str, Union[str, Cookie]]) -> 'Response':
        for name, value in cookies.items():
            self.cookie(name, value)
        return self

    def content_type(self, content_type: str) -> 'Response':
        """Set (replace) the Content-Type header."""
        existing = self._header_key('Content-Type')
        if existing:
            del self._headers[existing]
        self._headers['Content-Type'] = [content_type]
        return self

    def get_content_type(self) -> str:
        key = self._header_key('Content-Type')
        return ','.join(self._headers[key]) if key else ContentType.TEXT_PLAIN

    def body(self, content: Any, content_type: Optional[str] = None) -> 'Response':
        """
        Set the body.

        Bytes are sent as-is; any other value is encoded with the encoder
        resolved for (content type, value type). Multipart content sets a
        multipart content type carrying its boundary.
        """
        self._content = content
        self._cached = None

        if isinstance(content, MultipartResponseContent):
            if content_type is None:
                content_type = content.content_type
            elif 'boundary=' not in content_type:
                content_type = f"{content_type}; boundary={content.get_boundary()}"

        if content_type is not None:
            self.content_type(content_type)
        return self

    def get_body(self) -> Any:
        return self._content

    def delay(self, milliseconds: int) -> 'Response':
        self._delay = int(milliseconds)
        return self

    def get_delay(self) -> int:
        return self._delay

    def chunked(self, chunks: int = 2, delay: int = 0) -> 'Response':
        """Deliver the body in `chunks` pieces, `delay` ms apart."""
        if chunks < 1:
            raise ConfigurationError(f"Chunk count must be at least 1, got {chunks}")
        self._chunking = ChunkingConfig(chunks=chunks, delay=delay)
        return self

    def get_chunking(self) -> Optional[ChunkingConfig]:
        return self._chunking

    def encoder(self, content_type: str, object_type: type, encoder: Callable[[Any], bytes]) -> 'Response':
        """Register an encoder used by this response before the global ones."""
        self._encoders.register(content_type, object_type, encoder)
        self._cached = None
        return self

    def encoders(self, encoders: ResponseEncoders) -> 'Response':
        self._encoders.merge(encoders)
        self._cached = None
        return self

    def allows(self, *methods: Any) -> 'Response':
        """Set the Allow header from HTTP methods."""
        key = self._header_key('Allow')
        if key:
            del self._headers[key]
        self._headers['Allow'] = [', '.join(str(method) for method in methods)]
        return self

    def get_code(self) -> int:
        return self._code

    def get_headers(self) -> Dict[str, List[str]]:
        return {name: list(values) for name, values in self._headers.items()}

    def get_cookies(self) -> Dict[str, Cookie]:
        return dict(self._cookies)

    def content(self, global_encoders: Optional[ResponseEncoders] = None) -> bytes:
        """
        Encode the body, caching the result.

        The cache is dropped when this response's encoders change and is
        not reused once the global encoders gain new registrations.

        Raises:
            UnsupportedContentTypeError: No encoder resolves for the body
        """
        key = None if global_encoders is None else (id(global_encoders), global_encoders.revision)

        with self._lock:
            if self._cached is None or self._cached_key != key:
                self._cached = self._encode(global_encoders)
                self._cached_key = key
            return self._cached

    def _encode(self, global_encoders: Optional[ResponseEncoders]) -> bytes:
        value = self._content
        if value is None:
            return b''
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)

        chain = EncoderChain(server_level=global_encoders, response_level=self._encoders)
        content_type = self.get_content_type()
        encoder = chain.resolve_for(content_type, value)
        if encoder is None:
            raise UnsupportedContentTypeError(content_type, type(value))

        if encoder is render_multipart:
            return value.render(chain)

        return as_bytes(encoder(value))

    def render(self, global_encoders: Optional[ResponseEncoders] = None) -> RenderedResponse:
        """
        Render the response fully in memory.

        Args:
            global_encoders: Server-level encoders used after the response encoders

        Returns:
            RenderedResponse for the transport
        """
        content = self.content(global_encoders)

        headers = [(name, value) for name, values in self._headers.items() for value in values]
        chunks = None
        chunk_delay = 0

        if self._chunking is not None and content:
            chunks = prepare_chunks(content, self._chunking.chunks)
            chunk_delay = self._chunking.delay
            headers.append(('Transfer-Encoding', 'chunked'))

        return RenderedResponse(
            status=self._code,
            headers=headers,
            cookies=dict(self._cookies),
            body=content,
            content_type=self.get_content_type(),
            delay=self._delay,
            chunks=chunks,
            chunk_delay=chunk_delay,
        )

    def _header_key(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key in self._headers:
            if key.lower() == wanted:
                return key
        return None


class HeadResponse(Response):
    """Response for HEAD requests, which never carries a body."""

    def body(self, content: Any, content_type: Optional[str] = None) -> 'Response':
        raise ConfigurationError("A HEAD response cannot have body content.")

    def encoder(self, content_type: str, object_type: type, encoder: Callable[[Any], bytes]) -> 'Response':
        raise ConfigurationError("A HEAD response cannot have encoders.")

    def encoders(self, encoders: ResponseEncoders) -> 'Response':
        raise ConfigurationError("A HEAD response cannot have encoders.")


@dataclass(frozen=True)
class ForwardResponse:
    """Marks an expectation whose requests are relayed to another server."""

    url: str
