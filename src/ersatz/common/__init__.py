"""
Ersatz Common Module

Shared helpers for content types, timeouts and polling.
"""

from .mime import ContentType, mime_matches, parse_mime, charset_of, is_textual
from .utils import (
    WaitFor,
    is_true_before,
    random_boundary,
    group_headers,
    POLL_INTERVAL,
)

__all__ = [
    'ContentType',
    'mime_matches',
    'parse_mime',
    'charset_of',
    'is_textual',
    'WaitFor',
    'is_true_before',
    'random_boundary',
    'group_headers',
    'POLL_INTERVAL',
]
