"""
Tests for Ersatz decoders, encoders and codec chains

Tests registry ordering, exact-over-wildcard resolution, object type
assignability and the two-level chains.
"""

import json
from pathlib import Path

import pytest

from ersatz.encdec import (
    DecoderChain,
    DecodingContext,
    EncoderChain,
    RequestDecoders,
    ResponseEncoders,
    default_decoders,
    default_encoders,
)
from ersatz.encdec import decoders as stock_decoders
from ersatz.encdec import encoders as stock_encoders


def _context(content_type='text/plain', charset=None, chain=None):
    return DecodingContext(
        content_length=0,
        content_type=content_type,
        character_encoding=charset,
        decoder_chain=chain or DecoderChain(default_decoders())
    )


class TestRequestDecoders:
    """Test the decoder registry."""

    def test_register_replaces_same_content_type(self):
        """Test only one decoder is kept per content type."""
        decoders = RequestDecoders()
        decoders.register('text/plain', stock_decoders.passthrough)
        decoders.register('text/plain', stock_decoders.utf8_string)

        assert len(decoders) == 1
        assert decoders.find_decoder('text/plain') is stock_decoders.utf8_string

    def test_exact_match_preferred(self):
        """Test an exact content type beats an earlier wildcard."""
        decoders = RequestDecoders()
        decoders.register('text/*', stock_decoders.passthrough)
        decoders.register('text/plain', stock_decoders.utf8_string)

        assert decoders.find_decoder('text/plain') is stock_decoders.utf8_string
        assert decoders.find_decoder('text/html') is stock_decoders.passthrough

    def test_no_match(self):
        """Test unknown content types resolve to None."""
        decoders = RequestDecoders()
        decoders.register('text/plain', stock_decoders.utf8_string)

        assert decoders.find_decoder('application/json') is None


class TestResponseEncoders:
    """Test the encoder registry."""

    def test_exact_content_type_preferred(self):
        """Test an exact content type beats a wildcard for the same object type."""
        encoders = ResponseEncoders()
        encoders.register('text/*', str, lambda value: b'wildcard')
        encoders.register('text/plain', str, lambda value: b'exact')

        assert encoders.find_encoder('text/plain', str)('x') == b'exact'
        assert encoders.find_encoder('text/html', str)('x') == b'wildcard'

    def test_exact_preferred_regardless_of_order(self):
        """Test registration order does not override the exact match."""
        encoders = ResponseEncoders()
        encoders.register('text/plain', str, lambda value: b'exact')
        encoders.register('text/*', str, lambda value: b'wildcard')

        assert encoders.find_encoder('text/plain', str)('x') == b'exact'

    def test_assignable_object_type(self):
        """Test subclasses resolve to encoders registered for the base type."""
        class Payload(dict):
            pass

        encoders = ResponseEncoders()
        encoders.register('application/json', dict, stock_encoders.encode_json)

        assert encoders.find_encoder('application/json', Payload) is stock_encoders.encode_json
        assert encoders.find_encoder('application/json', list) is None

    def test_most_specific_type_wins(self):
        """Test a more specific registered type beats a general one."""
        encoders = ResponseEncoders()
        encoders.register('application/json', object, lambda value: b'object')
        encoders.register('application/json', dict, lambda value: b'dict')

        assert encoders.find_encoder('application/json', dict)({}) == b'dict'
        assert encoders.find_encoder('application/json', list)([]) == b'object'

    def test_register_replaces_same_pair(self):
        """Test re-registering a content type and type replaces the entry."""
        encoders = ResponseEncoders()
        encoders.register('text/plain', str, lambda value: b'one')
        encoders.register('text/plain', str, lambda value: b'two')

        assert len(encoders) == 1
        assert encoders.find_encoder('text/plain', str)('x') == b'two'


class TestChains:
    """Test two-level resolution."""

    def test_decoder_chain_request_level_first(self):
        """Test request-level decoders shadow server-level ones."""
        server_level = RequestDecoders().register('text/plain', stock_decoders.utf8_string)
        request_level = RequestDecoders().register('text/plain', stock_decoders.passthrough)

        chain = DecoderChain(server_level, request_level)

        assert chain.resolve('text/plain') is stock_decoders.passthrough

    def test_decoder_chain_falls_back(self):
        """Test server-level decoders are used when the request level has none."""
        server_level = RequestDecoders().register('application/json', stock_decoders.decode_json)
        chain = DecoderChain(server_level, RequestDecoders())

        assert chain.resolve('application/json') is stock_decoders.decode_json
        assert chain.resolve('image/png') is None
        assert chain.resolve(None) is None

    def test_encoder_chain_response_level_first(self):
        """Test response-level encoders shadow server-level ones."""
        server_level = ResponseEncoders().register('text/plain', str, lambda value: b'global')
        response_level = ResponseEncoders().register('text/plain', str, lambda value: b'local')

        chain = EncoderChain(server_level, response_level)

        assert chain.resolve('text/plain', str)('x') == b'local'
        assert EncoderChain(server_level).resolve('text/plain', str)('x') == b'global'


class TestStockDecoders:
    """Test the decoders installed by default."""

    def test_string_uses_request_charset(self):
        """Test text decoding honours the request charset."""
        decoder = stock_decoders.string()

        assert decoder('café'.encode('latin-1'), _context(charset='latin-1')) == 'café'

    def test_url_encoded_keeps_blank_values(self):
        """Test form decoding keeps repeated and blank values."""
        decoded = stock_decoders.url_encoded(b'a=1&b=&a=2', _context())

        assert decoded == {'a': ['1', '2'], 'b': ['']}

    def test_json(self):
        """Test JSON decoding."""
        assert stock_decoders.decode_json(b'{"id": 7}', _context('application/json')) == {'id': 7}

    def test_json_empty_body(self):
        """Test an empty JSON body decodes to None."""
        assert stock_decoders.decode_json(b'', _context('application/json')) is None


class TestStockEncoders:
    """Test the encoders installed by default."""

    def test_text(self):
        """Test text encoding with a charset."""
        assert stock_encoders.text('latin-1')('café') == 'café'.encode('latin-1')

    def test_binary_base64(self):
        """Test base64 encoding of bytes."""
        assert stock_encoders.binary_base64(b'\x00\x01') == b'AAE='

    def test_content_reads_path(self, tmp_path):
        """Test file paths are read as bytes."""
        path = tmp_path / 'data.bin'
        path.write_bytes(b'\x01\x02')

        assert stock_encoders.content(path) == b'\x01\x02'

    def test_default_json_encoders(self):
        """Test default registrations for JSON objects and strings."""
        encoders = default_encoders()

        assert json.loads(encoders.find_encoder('application/json', dict)({'a': 1})) == {'a': 1}
        assert encoders.find_encoder('application/json', str)('{"a": 1}') == b'{"a": 1}'
        assert encoders.find_encoder('image/png', Path) is stock_encoders.content
