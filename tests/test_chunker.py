"""
Tests for Ersatz response chunking
"""

import pytest

from ersatz.mock import prepare_chunks


class TestPrepareChunks:
    """Test splitting content into chunks."""

    def test_remainder_goes_to_first_chunks(self):
        """Test earlier chunks carry the extra bytes."""
        assert prepare_chunks(b'abcdefg', 3) == [b'abc', b'de', b'fg']

    def test_even_split(self):
        """Test content that divides evenly."""
        assert prepare_chunks(b'abcdef', 2) == [b'abc', b'def']

    @pytest.mark.parametrize('length,chunks', [(10, 3), (100, 7), (5, 5), (64, 1)])
    def test_properties(self, length, chunks):
        """Test chunk count, reassembly and size spread."""
        content = bytes(range(length))

        pieces = prepare_chunks(content, chunks)
        sizes = [len(piece) for piece in pieces]

        assert len(pieces) == chunks
        assert all(sizes)
        assert b''.join(pieces) == content
        assert max(sizes) - min(sizes) <= 1
        assert sizes == sorted(sizes, reverse=True)

    def test_invalid_count(self):
        """Test a chunk count below one is rejected."""
        with pytest.raises(ValueError):
            prepare_chunks(b'abc', 0)
