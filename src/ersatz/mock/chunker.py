"""
Ersatz Response Chunker

Splits a response body into nearly equal pieces for delayed delivery.
"""

from typing import List


def prepare_chunks(content: bytes, chunks: int) -> List[bytes]:
    """
    Split content into `chunks` pieces.

    Each piece is `len // chunks` bytes long; the first `len % chunks`
    pieces get one extra byte, so earlier pieces are never shorter than
    later ones.

    Args:
        content: Body bytes
        chunks: Number of pieces (at least 1)

    Returns:
        The pieces in order; their concatenation equals `content`

    Example:
        prepare_chunks(b'abcdefg', 3)  # [b'abc', b'de', b'fg']
    """
    if chunks < 1:
        raise ValueError(f"Chunk count must be at least 1, got {chunks}")

    size, remainder = divmod(len(content), chunks)

    pieces = []
    start = 0
    for index in range(chunks):
        end = start + size + (1 if index < remainder else 0)
        pieces.append(content[start:end])
        start = end

    return pieces
