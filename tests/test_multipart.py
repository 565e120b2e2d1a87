"""
Tests for Ersatz multipart content

Tests the request and response content models, the wire format and
request body parsing.
"""

import pytest

from ersatz.encdec import (
    DecoderChain,
    DecodingContext,
    EncoderChain,
    MultipartRequestContent,
    MultipartResponseContent,
    default_decoders,
    default_encoders,
)
from ersatz.errors import MalformedMultipartError, UnsupportedContentTypeError


EXPECTED_WIRE = (
    b'--FIXED\r\n'
    b'Content-Disposition: form-data; name="alpha"\r\n'
    b'Content-Type: text/plain\r\n'
    b'\r\n'
    b'one\r\n'
    b'--FIXED\r\n'
    b'Content-Disposition: form-data; name="file"; filename="a.txt"\r\n'
    b'Content-Transfer-Encoding: 8bit\r\n'
    b'Content-Type: text/plain\r\n'
    b'\r\n'
    b'data\r\n'
    b'--FIXED--\r\n'
)


@pytest.fixture
def global_chain():
    """Encoder chain over the default server encoders."""
    return EncoderChain(server_level=default_encoders())


@pytest.fixture
def fixed_content():
    """Response content with a fixed boundary."""
    return (MultipartResponseContent()
            .boundary('FIXED')
            .field('alpha', 'one')
            .part('file', 'text/plain', 'data', file_name='a.txt', transfer_encoding='8bit'))


class TestMultipartResponseContent:
    """Test multipart response rendering."""

    def test_wire_format(self, fixed_content, global_chain):
        """Test the rendered bytes follow the multipart layout."""
        assert fixed_content.render(global_chain) == EXPECTED_WIRE

    def test_render_is_deterministic(self, fixed_content, global_chain):
        """Test two renders with a fixed boundary are identical."""
        assert fixed_content.render(global_chain) == fixed_content.render(global_chain)

    def test_content_type_carries_boundary(self, fixed_content):
        """Test the content type includes the boundary."""
        assert fixed_content.content_type == 'multipart/mixed; boundary=FIXED'

    def test_generated_boundary(self):
        """Test a random boundary is generated by default."""
        boundary = MultipartResponseContent().get_boundary()

        assert len(boundary) == 18
        assert boundary.isalnum()

    def test_duplicate_field_names_preserved(self, global_chain):
        """Test parts with the same field name are all rendered in order."""
        content = (MultipartResponseContent()
                   .boundary('B')
                   .field('tag', 'first')
                   .field('tag', 'second'))

        rendered = content.render(global_chain)

        assert len(content.parts) == 2
        assert rendered.index(b'first') < rendered.index(b'second')

    def test_local_encoder_wins(self, global_chain):
        """Test encoders registered on the content are consulted first."""
        content = (MultipartResponseContent()
                   .boundary('B')
                   .encoder('text/plain', str, lambda value: value.upper().encode())
                   .field('alpha', 'quiet'))

        assert b'QUIET\r\n' in content.render(global_chain)

    def test_injected_chain(self):
        """Test the injected chain is used when no chain is passed."""
        content = MultipartResponseContent().boundary('B').field('alpha', 'x')
        content.encoders(EncoderChain(server_level=default_encoders()))

        assert content.render().startswith(b'--B\r\n')

    def test_missing_encoder(self, global_chain):
        """Test a part without an encoder fails with both types named."""
        content = MultipartResponseContent().boundary('B').part('img', 'image/png', 42)

        with pytest.raises(MalformedMultipartError) as exc_info:
            content.render(global_chain)

        assert isinstance(exc_info.value, UnsupportedContentTypeError)
        assert 'image/png' in str(exc_info.value)
        assert 'int' in str(exc_info.value)


class TestMultipartRequestContent:
    """Test the request content model."""

    def test_part_replaces_same_field(self):
        """Test a second part for a field replaces the first."""
        content = MultipartRequestContent()
        content.part('alpha', 'text/plain', 'one')
        content.part('alpha', 'text/plain', 'two')

        assert len(content) == 1
        assert content['alpha'].value == 'two'

    def test_equality(self):
        """Test contents with the same parts are equal."""
        left = MultipartRequestContent().field('a', '1').part('f', 'image/png', b'x', file_name='f.png')
        right = MultipartRequestContent().field('a', '1').part('f', 'image/png', b'x', file_name='f.png')

        assert left == right

    def test_parse_body(self):
        """Test a multipart request body decodes part by part."""
        chain = DecoderChain(default_decoders())
        context = DecodingContext(
            content_length=len(EXPECTED_WIRE),
            content_type='multipart/form-data; boundary=FIXED',
            character_encoding=None,
            decoder_chain=chain
        )

        parsed = chain.resolve('multipart/form-data')(EXPECTED_WIRE, context)

        assert parsed['alpha'].value == 'one'
        assert parsed['alpha'].content_type == 'text/plain'
        assert parsed['file'].value == 'data'
        assert parsed['file'].file_name == 'a.txt'
        assert parsed['file'].transfer_encoding == '8bit'
