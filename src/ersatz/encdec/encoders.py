"""
Ersatz Response Encoders

Registry of response encoders keyed by content type and object type, and
the stock encoders installed on every server.

An encoder is a callable `(value: object) -> bytes`.
"""

import base64
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..common.mime import ContentType, mime_matches

Encoder = Callable[[Any], bytes]


@dataclass
class EncoderMapping:
    """A content-type pattern and object type bound to an encoder."""

    content_type: str
    object_type: type
    encoder: Encoder


class ResponseEncoders:
    """
    Ordered collection of response encoders.

    Resolution considers every entry whose content-type pattern matches and
    whose object type is assignable from the requested type. Among those,
    an exact content-type string match beats a wildcard match, then the
    most specific object type wins, then registration order.

    Example:
        encoders = ResponseEncoders()
        encoders.register('text/*', str, text())
        encoders.register('text/plain', str, shout)
        encoders.find_encoder('text/plain', str)  # shout
    """

    def __init__(self, mappings: Optional[List[EncoderMapping]] = None):
        self._mappings: List[EncoderMapping] = list(mappings or [])
        self.revision = 0

    def register(self, content_type: str, object_type: type, encoder: Encoder) -> 'ResponseEncoders':
        """Register an encoder, replacing one with the same content type and object type."""
        mapping = EncoderMapping(content_type, object_type, encoder)
        self.revision += 1

        for index, existing in enumerate(self._mappings):
            if existing.content_type == content_type and existing.object_type is object_type:
                self._mappings[index] = mapping
                return self

        self._mappings.append(mapping)
        return self

    def find_encoder(self, content_type: str, object_type: type) -> Optional[Encoder]:
        """
        Find an encoder for a content type and object type.

        Args:
            content_type: Response content type
            object_type: Runtime type of the value to encode

        Returns:
            Encoder, or None if nothing is assignable
        """
        best = None
        best_rank = None

        for order, mapping in enumerate(self._mappings):
            if not mime_matches(mapping.content_type, content_type):
                continue
            if not _assignable(mapping.object_type, object_type):
                continue

            rank = (
                0 if mapping.content_type == content_type else 1,
                _distance(mapping.object_type, object_type),
                order,
            )
            if best_rank is None or rank < best_rank:
                best, best_rank = mapping.encoder, rank

        return best

    def merge(self, other: Optional['ResponseEncoders']) -> 'ResponseEncoders':
        """Register every encoder of another collection into this one."""
        if other is not None:
            for mapping in other:
                self.register(mapping.content_type, mapping.object_type, mapping.encoder)
        return self

    def copy(self) -> 'ResponseEncoders':
        return ResponseEncoders(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self):
        return iter(self._mappings)


def _assignable(registered: type, requested: type) -> bool:
    try:
        return issubclass(requested, registered)
    except TypeError:
        return False


def _distance(registered: type, requested: type) -> int:
    """Position of the registered type in the requested type's MRO (0 = same type)."""
    mro = getattr(requested, '__mro__', (requested,))
    return mro.index(registered) if registered in mro else len(mro)


def as_bytes(value: Any, charset: str = 'utf-8') -> bytes:
    """Coerce an encoder result to bytes."""
    if value is None:
        return b''
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return str(value).encode(charset)


def text(charset: str = 'utf-8') -> Encoder:
    """Build an encoder writing a value as text in the given charset."""
    def _encode(value: Any) -> bytes:
        return as_bytes(value, charset)

    return _encode


def binary_base64(value: bytes) -> bytes:
    """Encode binary content as base64 text."""
    return base64.b64encode(as_bytes(value))


def content(value: Any) -> bytes:
    """Read the bytes of a file path, or pass bytes through."""
    if isinstance(value, Path):
        return value.read_bytes()
    return as_bytes(value)


def encode_json(value: Any) -> bytes:
    """Serialize a value as compact JSON."""
    return json.dumps(value).encode('utf-8')


def multipart(value: Any) -> bytes:
    """Render MultipartResponseContent; responses pass their own encoder chain instead."""
    return value.render()


def default_encoders() -> ResponseEncoders:
    """Create the encoders registered on every new server."""
    from .multipart import MultipartResponseContent

    encoders = ResponseEncoders()
    encoders.register('text/*', str, text())
    encoders.register(ContentType.APPLICATION_JSON, str, text())
    encoders.register(ContentType.APPLICATION_JSON, dict, encode_json)
    encoders.register(ContentType.APPLICATION_JSON, list, encode_json)
    encoders.register(ContentType.APPLICATION_XML, str, text())
    encoders.register(ContentType.APPLICATION_JAVASCRIPT, str, text())
    encoders.register(ContentType.APPLICATION_URLENCODED, str, text())
    encoders.register('*/*', Path, content)
    encoders.register('multipart/*', MultipartResponseContent, multipart)
    return encoders
