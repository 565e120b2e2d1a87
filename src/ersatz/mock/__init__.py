"""
Ersatz Mock Module

Expectation-driven mock HTTP and WebSocket server.

This module provides:
- FastAPI-based mock server
- Expectation registry and request matchers
- Scripted responses with delays and chunking
- WebSocket expectations with reactions
- Unmatched-request reports
"""

from .server import ErsatzServer, ServerConfig, create_server
from .expectations import Expectation, ExpectationWithContent, Expectations, MatcherSet
from .matcher import (
    HttpMethod,
    RequestMatcher,
    CookieMatcher,
    MultipartRequestMatcher,
    method_matcher,
    path_matcher,
    header_matching,
    header_exists,
    header_does_not_exist,
    content_type_header,
    query_matching,
    query_exists,
    query_does_not_exist,
    body_param_matching,
    body_param_exists,
    body_param_does_not_exist,
    cookie_matching,
    cookie_exists,
    cookie_does_not_exist,
    has_no_cookies,
    secure_matcher,
    body_matching,
    request_matching,
)
from .request import ClientRequest
from .response import Response, HeadResponse, ForwardResponse, RenderedResponse, ChunkingConfig
from .chunker import prepare_chunks
from .websocket import (
    MessageType,
    Reaction,
    InboundMessage,
    WebSocketExpectation,
    WebSocketSnapshot,
    MessageState,
)
from .requirements import Requirement, Requirements
from .report import UnmatchedRequestReport, UnmatchedWsReport

__all__ = [
    # Server
    'ErsatzServer',
    'ServerConfig',
    'create_server',

    # Expectations
    'Expectation',
    'ExpectationWithContent',
    'Expectations',
    'MatcherSet',
    'Requirement',
    'Requirements',

    # Matchers
    'HttpMethod',
    'RequestMatcher',
    'CookieMatcher',
    'MultipartRequestMatcher',
    'method_matcher',
    'path_matcher',
    'header_matching',
    'header_exists',
    'header_does_not_exist',
    'content_type_header',
    'query_matching',
    'query_exists',
    'query_does_not_exist',
    'body_param_matching',
    'body_param_exists',
    'body_param_does_not_exist',
    'cookie_matching',
    'cookie_exists',
    'cookie_does_not_exist',
    'has_no_cookies',
    'secure_matcher',
    'body_matching',
    'request_matching',

    # Requests and responses
    'ClientRequest',
    'Response',
    'HeadResponse',
    'ForwardResponse',
    'RenderedResponse',
    'ChunkingConfig',
    'prepare_chunks',

    # WebSocket
    'MessageType',
    'Reaction',
    'InboundMessage',
    'WebSocketExpectation',
    'WebSocketSnapshot',
    'MessageState',

    # Reports
    'UnmatchedRequestReport',
    'UnmatchedWsReport',
]
