"""
Ersatz Multipart Content

In-memory multipart content for requests and responses, plus the
boundary-delimited wire codec.

Features:
- Request content keyed by field name (one part per field)
- Ordered response parts with duplicate field names preserved
- Per-response local encoders consulted before injected encoders
- Full in-memory rendering, so a failed part never emits partial output
"""

import logging
from dataclasses import dataclass
from email.parser import BytesParser
from email import policy
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..common.mime import ContentType, charset_of
from ..common.utils import random_boundary
from ..errors import MalformedMultipartError
from .chains import DecodingContext, EncoderChain
from .encoders import ResponseEncoders, as_bytes

logger = logging.getLogger("ersatz.encdec")

CRLF = b'\r\n'


@dataclass
class MultipartPart:
    """One part of a multipart message. The value is not yet encoded."""

    field_name: str
    content_type: str
    value: Any
    file_name: Optional[str] = None
    transfer_encoding: Optional[str] = None


class MultipartRequestContent:
    """
    Multipart request content, one part per field name.

    Used both as the result of decoding a multipart request body and as
    the expected value in body matchers.

    Example:
        expected = MultipartRequestContent()
        expected.part('alpha', 'text/plain', 'one')
        expected.part('file', 'image/png', data, file_name='photo.png')
    """

    def __init__(self):
        self._parts: Dict[str, MultipartPart] = {}

    def part(
        self,
        field_name: str,
        content_type: str,
        value: Any,
        file_name: Optional[str] = None,
        transfer_encoding: Optional[str] = None
    ) -> 'MultipartRequestContent':
        """Store a part, replacing any earlier part with the same field name."""
        self._parts[field_name] = MultipartPart(field_name, content_type, value, file_name, transfer_encoding)
        return self

    def field(self, field_name: str, value: str) -> 'MultipartRequestContent':
        """Store a plain text form field."""
        return self.part(field_name, ContentType.TEXT_PLAIN, value)

    def get(self, field_name: str) -> Optional[MultipartPart]:
        return self._parts.get(field_name)

    def __getitem__(self, field_name: str) -> MultipartPart:
        return self._parts[field_name]

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._parts

    def __iter__(self) -> Iterator[MultipartPart]:
        return iter(self._parts.values())

    def __len__(self) -> int:
        return len(self._parts)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, MultipartRequestContent):
            return NotImplemented
        return self._parts == other._parts

    def __repr__(self) -> str:
        return f"MultipartRequestContent({list(self._parts.values())!r})"


class MultipartResponseContent:
    """
    Builder for a multipart response body.

    Parts render in the order they were added. Encoders registered with
    `encoder()` are consulted before the encoder chain injected by the
    response that carries this content.

    Example:
        content = (MultipartResponseContent()
            .boundary('abc123')
            .field('alpha', 'some data')
            .part('file', 'text/plain', 'file contents', file_name='data.txt'))
    """

    def __init__(self):
        self._boundary = random_boundary()
        self._encoders = ResponseEncoders()
        self._injected: Optional[EncoderChain] = None
        self.parts: List[MultipartPart] = []

    def boundary(self, value: str) -> 'MultipartResponseContent':
        """Override the generated boundary."""
        self._boundary = value
        return self

    def get_boundary(self) -> str:
        return self._boundary

    @property
    def content_type(self) -> str:
        return f"{ContentType.MULTIPART_MIXED}; boundary={self._boundary}"

    def encoder(self, content_type: str, object_type: type, encoder: Callable[[Any], bytes]) -> 'MultipartResponseContent':
        """Register a part encoder local to this content."""
        self._encoders.register(content_type, object_type, encoder)
        return self

    def encoders(self, chain: Optional[EncoderChain]) -> 'MultipartResponseContent':
        """Inject the encoder chain used when no local encoder applies."""
        self._injected = chain
        return self

    def field(self, field_name: str, value: str) -> 'MultipartResponseContent':
        """Append a plain text form field."""
        return self.part(field_name, ContentType.TEXT_PLAIN, value)

    def part(
        self,
        field_name: str,
        content_type: str,
        value: Any,
        file_name: Optional[str] = None,
        transfer_encoding: Optional[str] = None
    ) -> 'MultipartResponseContent':
        """Append a part."""
        self.parts.append(MultipartPart(field_name, content_type, value, file_name, transfer_encoding))
        return self

    def render(self, chain: Optional[EncoderChain] = None) -> bytes:
        """
        Render the parts to wire bytes.

        Args:
            chain: Encoder chain to use instead of the injected one

        Returns:
            The complete multipart body

        Raises:
            MalformedMultipartError: No encoder resolves for a part
        """
        resolver = EncoderChain(server_level=None, response_level=self._encoders)
        fallback = chain or self._injected
        return encode_multipart(self.parts, self._boundary, resolver, fallback)


def encode_multipart(
    parts: List[MultipartPart],
    boundary: str,
    local: EncoderChain,
    fallback: Optional[EncoderChain] = None
) -> bytes:
    """
    Encode parts with the given boundary.

    Every part is encoded before anything is joined, so a missing encoder
    raises without producing output.
    """
    out: List[bytes] = []
    dash_boundary = f"--{boundary}".encode('ascii')

    for part in parts:
        encoder = local.resolve_for(part.content_type, part.value)
        if encoder is None and fallback is not None:
            encoder = fallback.resolve_for(part.content_type, part.value)
        if encoder is None:
            raise MalformedMultipartError(part.content_type, type(part.value))

        disposition = f'Content-Disposition: form-data; name="{part.field_name}"'
        if part.file_name:
            disposition += f'; filename="{part.file_name}"'

        out.append(dash_boundary + CRLF)
        out.append(disposition.encode('utf-8') + CRLF)
        if part.transfer_encoding:
            out.append(f"Content-Transfer-Encoding: {part.transfer_encoding}".encode('ascii') + CRLF)
        out.append(f"Content-Type: {part.content_type}".encode('ascii') + CRLF)
        out.append(CRLF)
        out.append(as_bytes(encoder(part.value)) + CRLF)

    out.append(dash_boundary + b'--' + CRLF)
    return b''.join(out)


def parse_multipart(content: bytes, context: DecodingContext) -> MultipartRequestContent:
    """
    Parse a multipart request body.

    Part values are decoded with the decoder chain from the context. A part
    whose content type has no decoder keeps its raw bytes.

    Args:
        content: Raw request body
        context: Decoding context carrying the multipart content type

    Returns:
        Parsed MultipartRequestContent
    """
    result = MultipartRequestContent()
    if not content or not context.content_type:
        return result

    header = f"Content-Type: {context.content_type}\r\n\r\n".encode('latin-1')
    message = BytesParser(policy=policy.HTTP).parsebytes(header + content)

    if not message.is_multipart():
        logger.debug(f"Body is not multipart for content type {context.content_type}")
        return result

    for part in message.iter_parts():
        field_name = part.get_param('name', header='content-disposition')
        if field_name is None:
            continue

        part_type = str(part['Content-Type']) if part['Content-Type'] else ContentType.TEXT_PLAIN
        raw = part.get_payload(decode=True) or b''

        value: Any = raw
        decoder = context.decoder_chain.resolve(part_type)
        if decoder is not None:
            value = decoder(raw, DecodingContext(
                content_length=len(raw),
                content_type=part_type,
                character_encoding=charset_of(part_type),
                decoder_chain=context.decoder_chain
            ))

        result.part(
            str(field_name),
            part_type,
            value,
            file_name=part.get_filename(),
            transfer_encoding=_optional_str(part['Content-Transfer-Encoding'])
        )

    return result


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None
