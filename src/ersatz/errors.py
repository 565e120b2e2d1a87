"""
Ersatz Errors

Exception types raised by the expectation engine.

NoMatch is not an error: an unmatched request is answered with a 404 by
the server and never raises.
"""

from typing import Any, Optional


class ErsatzError(Exception):
    """Base class for all Ersatz errors."""


class ConfigurationError(ErsatzError):
    """Raised when an expectation or response is configured incorrectly."""


class UnsupportedContentTypeError(ConfigurationError):
    """
    Raised when no decoder or encoder resolves for a content type.

    Attributes:
        content_type: Content type that was requested
        object_type: Object type that was requested (encoders only)
    """

    def __init__(self, content_type: str, object_type: Optional[Any] = None, message: Optional[str] = None):
        self.content_type = content_type
        self.object_type = object_type

        if message is None:
            if object_type is None:
                message = f"No decoder found for content-type ({content_type})."
            else:
                type_name = getattr(object_type, '__name__', str(object_type))
                message = f"No encoder found for content-type ({content_type}) and object type ({type_name})."

        super().__init__(message)


class MalformedMultipartError(UnsupportedContentTypeError):
    """Raised when a multipart part cannot be encoded."""


class VerificationError(ErsatzError, AssertionError):
    """
    Raised when an expectation contract is not met before the timeout.

    Attributes:
        expectation: Description of the unmet expectation
    """

    def __init__(self, expectation: str, message: Optional[str] = None):
        self.expectation = expectation
        super().__init__(message or f"Expectation not satisfied: {expectation}")
