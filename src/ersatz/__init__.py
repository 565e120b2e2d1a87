"""
Ersatz

Embeddable mock HTTP/WebSocket server for tests. Test code declares the
requests it expects, scripts the responses, and verifies the call counts
afterwards.

Example:
    from ersatz import ErsatzServer

    server = ErsatzServer()
    server.expectations().get('/hello').called(1).responds().body('hi', 'text/plain')
"""

from .errors import (
    ErsatzError,
    ConfigurationError,
    UnsupportedContentTypeError,
    MalformedMultipartError,
    VerificationError,
)
from .common import ContentType, WaitFor
from .encdec import (
    Cookie,
    MultipartRequestContent,
    MultipartResponseContent,
    RequestDecoders,
    ResponseEncoders,
)
from .mock import (
    ErsatzServer,
    ServerConfig,
    create_server,
    Expectations,
    HttpMethod,
    CookieMatcher,
    MultipartRequestMatcher,
    MessageType,
)
from .mock import predicates

__all__ = [
    'ErsatzError',
    'ConfigurationError',
    'UnsupportedContentTypeError',
    'MalformedMultipartError',
    'VerificationError',
    'ContentType',
    'WaitFor',
    'Cookie',
    'MultipartRequestContent',
    'MultipartResponseContent',
    'RequestDecoders',
    'ResponseEncoders',
    'ErsatzServer',
    'ServerConfig',
    'create_server',
    'Expectations',
    'HttpMethod',
    'CookieMatcher',
    'MultipartRequestMatcher',
    'MessageType',
    'predicates',
]

__version__ = '1.0.0'
