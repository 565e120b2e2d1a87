"""
Ersatz Encoding/Decoding Module

Request decoders, response encoders, their two-level chains and the
multipart content model.
"""

from .cookie import Cookie
from .chains import DecoderChain, EncoderChain, DecodingContext
from .decoders import RequestDecoders, DecoderMapping, default_decoders
from .encoders import ResponseEncoders, EncoderMapping, default_encoders
from .multipart import (
    MultipartPart,
    MultipartRequestContent,
    MultipartResponseContent,
    encode_multipart,
    parse_multipart,
)
from . import decoders
from . import encoders

__all__ = [
    'Cookie',
    'DecoderChain',
    'EncoderChain',
    'DecodingContext',
    'RequestDecoders',
    'DecoderMapping',
    'default_decoders',
    'ResponseEncoders',
    'EncoderMapping',
    'default_encoders',
    'MultipartPart',
    'MultipartRequestContent',
    'MultipartResponseContent',
    'encode_multipart',
    'parse_multipart',
    'decoders',
    'encoders',
]
