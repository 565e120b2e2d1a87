"""
Ersatz Codec Chains

Two-level decoder and encoder resolution: a call-scoped registry is
consulted first, then the server-global one.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .decoders import RequestDecoders
    from .encoders import ResponseEncoders


class DecoderChain:
    """Resolves decoders from request-level decoders, then server-level decoders."""

    def __init__(
        self,
        server_level: Optional['RequestDecoders'] = None,
        request_level: Optional['RequestDecoders'] = None
    ):
        self.server_level = server_level
        self.request_level = request_level

    def resolve(self, content_type: Optional[str]) -> Optional[Callable]:
        """
        Find the decoder for a content type.

        Args:
            content_type: Request content type

        Returns:
            Decoder callable, or None when neither level has one
        """
        if content_type is None:
            return None

        for registry in (self.request_level, self.server_level):
            if registry is not None:
                decoder = registry.find_decoder(content_type)
                if decoder is not None:
                    return decoder

        return None


class EncoderChain:
    """Resolves encoders from response-level encoders, then server-level encoders."""

    def __init__(
        self,
        server_level: Optional['ResponseEncoders'] = None,
        response_level: Optional['ResponseEncoders'] = None
    ):
        self.server_level = server_level
        self.response_level = response_level

    def resolve(self, content_type: str, object_type: type) -> Optional[Callable]:
        """
        Find the encoder for a content type and object type.

        Args:
            content_type: Response content type
            object_type: Runtime type of the object being encoded

        Returns:
            Encoder callable, or None when neither level has one
        """
        for registry in (self.response_level, self.server_level):
            if registry is not None:
                encoder = registry.find_encoder(content_type, object_type)
                if encoder is not None:
                    return encoder

        return None

    def resolve_for(self, content_type: str, value: Any) -> Optional[Callable]:
        """Find the encoder for a value, using its runtime type."""
        return self.resolve(content_type, type(value))


@dataclass
class DecodingContext:
    """Request details handed to every decoder call."""

    content_length: int
    content_type: Optional[str]
    character_encoding: Optional[str]
    decoder_chain: DecoderChain
