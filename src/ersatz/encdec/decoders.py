"""
Ersatz Request Decoders

Registry of request body decoders keyed by content type, and the stock
decoders installed on every server.

A decoder is a callable `(content: bytes, context: DecodingContext) -> object`.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs

from ..common.mime import ContentType, mime_matches
from .chains import DecodingContext
from .multipart import parse_multipart

Decoder = Callable[[bytes, DecodingContext], Any]


@dataclass
class DecoderMapping:
    """A content-type pattern bound to a decoder."""

    content_type: str
    decoder: Decoder


class RequestDecoders:
    """
    Ordered collection of request decoders.

    Only one decoder is active per content-type pattern: registering a
    pattern again replaces the earlier decoder.

    Example:
        decoders = RequestDecoders()
        decoders.register('application/json', decode_json)
        decoder = decoders.find_decoder('application/json; charset=utf-8')
    """

    def __init__(self, mappings: Optional[List[DecoderMapping]] = None):
        self._mappings: List[DecoderMapping] = list(mappings or [])

    def register(self, content_type: str, decoder: Decoder) -> 'RequestDecoders':
        """Register a decoder, replacing any decoder for the same pattern."""
        self._mappings = [m for m in self._mappings if m.content_type != content_type]
        self._mappings.append(DecoderMapping(content_type, decoder))
        return self

    def find_decoder(self, content_type: str) -> Optional[Decoder]:
        """
        Find a decoder for a concrete content type.

        An entry whose pattern equals the content type exactly wins over
        wildcard matches; otherwise the first matching entry in
        registration order is returned.

        Args:
            content_type: Request content type

        Returns:
            Decoder, or None if no pattern matches
        """
        first_match = None

        for mapping in self._mappings:
            if mapping.content_type == content_type:
                return mapping.decoder
            if first_match is None and mime_matches(mapping.content_type, content_type):
                first_match = mapping.decoder

        return first_match

    def copy(self) -> 'RequestDecoders':
        return RequestDecoders(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self):
        return iter(self._mappings)


def passthrough(content: bytes, context: DecodingContext) -> bytes:
    """Return the raw body bytes."""
    return content if content is not None else b''


def string(charset: Optional[str] = None) -> Decoder:
    """
    Build a decoder producing text.

    The explicit charset wins, then the request charset, then UTF-8.
    """
    def _decode(content: bytes, context: DecodingContext) -> str:
        if not content:
            return ''
        encoding = charset or context.character_encoding or 'utf-8'
        return content.decode(encoding)

    return _decode


def utf8_string(content: bytes, context: DecodingContext) -> str:
    """Decode the body as UTF-8 text."""
    return content.decode('utf-8') if content else ''


def url_encoded(content: bytes, context: DecodingContext) -> Dict[str, List[str]]:
    """Decode a form body into a name to values mapping, keeping blank values."""
    if not content:
        return {}
    text = content.decode(context.character_encoding or 'utf-8')
    return parse_qs(text, keep_blank_values=True)


def decode_json(content: bytes, context: DecodingContext) -> Any:
    """Decode a JSON body."""
    if not content:
        return None
    return json.loads(content.decode(context.character_encoding or 'utf-8'))


def multipart(content: bytes, context: DecodingContext):
    """
    Decode a multipart body into MultipartRequestContent.

    Each part value is decoded through the same decoder chain using the
    part content type (text/plain for plain form fields).
    """
    return parse_multipart(content, context)


def default_decoders() -> RequestDecoders:
    """Create the decoders registered on every new server."""
    decoders = RequestDecoders()
    decoders.register(ContentType.TEXT_PLAIN, string())
    decoders.register(ContentType.APPLICATION_JSON, decode_json)
    decoders.register(ContentType.APPLICATION_URLENCODED, url_encoded)
    decoders.register(ContentType.MULTIPART_FORMDATA, multipart)
    decoders.register(ContentType.MULTIPART_MIXED, multipart)
    return decoders
