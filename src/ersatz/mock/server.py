"""
Ersatz Mock Server

FastAPI-based HTTP and WebSocket server that answers requests from the
configured expectations.

Features:
- First-match expectation lookup with scripted responses
- Global request requirements
- Pre-send delays and chunked delivery
- Forwarding to another server over httpx
- WebSocket expectations with reactions
- Unmatched-request reports in the log (and optionally the console)
- In-process use through get_app() or a background uvicorn server
"""

from __future__ import annotations  # Enable forward references for type hints

import asyncio
import logging
import threading
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Optional

import httpx
import uvicorn
import yaml
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import Response as HttpResponse, StreamingResponse

from ..common.mime import is_textual
from ..common.utils import WaitFor, is_true_before
from ..encdec.decoders import Decoder, default_decoders
from ..encdec.encoders import Encoder, default_encoders
from ..errors import ConfigurationError, ErsatzError
from .expectations import Expectations
from .report import UnmatchedRequestReport, UnmatchedWsReport
from .request import ClientRequest
from .requirements import Requirements
from .response import ForwardResponse, RenderedResponse
from .websocket import MessageType, Reaction, WebSocketExpectation

# Headers the transport computes itself
MANAGED_HEADERS = {'content-length', 'connection'}

HOP_BY_HOP_HEADERS = {
    'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
    'te', 'trailers', 'transfer-encoding', 'upgrade', 'host', 'content-length',
}

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE"]


@dataclass
class ServerConfig:
    """Configuration for the mock server."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 0  # 0 picks a free port on start()
    log_level: str = "info"
    access_log: bool = False

    # Reporting
    report_to_console: bool = False  # Print unmatched-request reports to stdout
    log_response_content: bool = False  # Log text response bodies

    # Timeouts in seconds
    timeout: float = 1.0  # Default verification wait
    start_timeout: float = 5.0
    forward_timeout: float = 10.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServerConfig':
        """Create config from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown server config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ServerConfig':
        """
        Load config from a YAML file.

        The settings may sit at the top level or under a `server:` key.
        """
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if 'server' in data and isinstance(data['server'], dict):
            data = data['server']

        return cls.from_dict(data)


class ErsatzServer:
    """
    Embeddable mock server driven by expectations.

    Example:
        server = ErsatzServer()
        server.expectations().get('/hello').called(1).responds().body('hi', 'text/plain')

        client = TestClient(server.get_app())
        assert client.get('/hello').text == 'hi'
        server.assert_verified()

        # Or on a real socket
        with ErsatzServer() as server:
            server.expectations().get('/ping').responds().code(200)
            httpx.get(server.http_url('/ping'))
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        forward_transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize mock server.

        Args:
            config: Optional ServerConfig
            forward_transport: Optional httpx transport used when forwarding
        """
        self.config = config or ServerConfig()

        self.logger = logging.getLogger("ersatz.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self._decoders = default_decoders()
        self._encoders = default_encoders()
        self._expectations = Expectations(self._decoders)
        self._requirements = Requirements()
        self._forward_transport = forward_transport

        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._port: Optional[int] = None

        self.app = self._create_app()

    def decoder(self, content_type: str, decoder: Decoder) -> 'ErsatzServer':
        """Register a global request decoder."""
        self._decoders.register(content_type, decoder)
        return self

    def encoder(self, content_type: str, object_type: type, encoder: Encoder) -> 'ErsatzServer':
        """Register a global response encoder."""
        self._encoders.register(content_type, object_type, encoder)
        return self

    def expectations(self, config: Optional[Callable[[Expectations], Any]] = None) -> Expectations:
        """Return the expectation registry, optionally configuring it first."""
        if config is not None:
            config(self._expectations)
        return self._expectations

    def requirements(self) -> Requirements:
        return self._requirements

    def clear_expectations(self) -> None:
        """Remove all expectations; codecs and requirements stay."""
        self._expectations.clear()

    def verify(self, timeout: Any = None) -> bool:
        """Verify all expectations, returning False on the first unmet one."""
        return self._expectations.verify(WaitFor.of(timeout, WaitFor(self.config.timeout)))

    def assert_verified(self, timeout: Any = None) -> None:
        """Verify all expectations, raising VerificationError on the first unmet one."""
        self._expectations.assert_verified(WaitFor.of(timeout, WaitFor(self.config.timeout)))

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with catch-all routes."""
        app = FastAPI(
            title="Ersatz Mock Server",
            description="Expectation-driven mock HTTP and WebSocket server",
            version="1.0.0",
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )

        @app.api_route("/{path:path}", methods=ALL_METHODS)
        async def mock_request(request: Request, path: str):
            """Handle incoming requests from the expectations."""
            return await self._handle_request(request)

        @app.websocket("/{path:path}")
        async def mock_websocket(websocket: WebSocket, path: str):
            """Handle WebSocket connections from the expectations."""
            await self._handle_websocket(websocket)

        return app

    async def _handle_request(self, request: Request) -> HttpResponse:
        """
        Find the matching expectation and send its response.

        Args:
            request: FastAPI Request object

        Returns:
            404 when unmatched, 204 when matched without responses, 500 on errors
        """
        body = await request.body()
        client_request = self._client_request(request, body)

        self.logger.debug(f"Incoming: {client_request}")

        try:
            failed = self._requirements.failures(client_request)
            if failed:
                return self._unmatched(client_request, failed)

            expectation = self._expectations.find_match(client_request)
            if expectation is None:
                return self._unmatched(client_request)

            self.logger.debug(f"Matched: {expectation}")
            response = expectation.mark(client_request)

            if response is None:
                return HttpResponse(status_code=204)

            if isinstance(response, ForwardResponse):
                return await self._forward(request, body, response.url)

            rendered = response.render(self._encoders)
            if rendered.delay > 0:
                await asyncio.sleep(rendered.delay / 1000)

            return self._send(rendered)

        except Exception:
            self.logger.exception(f"Error handling request: {client_request}")
            return HttpResponse(status_code=500)

    def _client_request(self, request: Request, body: bytes) -> ClientRequest:
        http_version = request.scope.get('http_version', '1.1')
        return ClientRequest.build(
            method=request.method,
            path=request.url.path,
            scheme=request.url.scheme,
            protocol=f"HTTP/{http_version}",
            headers=[(k.decode('latin-1'), v.decode('latin-1')) for k, v in request.headers.raw],
            query_string=request.url.query,
            cookies=dict(request.cookies),
            body=body
        )

    def _unmatched(self, client_request: ClientRequest, failed_requirements=None) -> HttpResponse:
        report = UnmatchedRequestReport.build(client_request, self._expectations.requests, failed_requirements)
        text = report.render()

        self.logger.warning(text)
        if self.config.report_to_console:
            print(text)

        return HttpResponse(status_code=404)

    def _send(self, rendered: RenderedResponse) -> HttpResponse:
        """Convert a rendered response to a FastAPI response."""
        if self.config.log_response_content and rendered.body and is_textual(rendered.content_type):
            self.logger.info(f"Response content ({rendered.content_type}): {rendered.body.decode('utf-8', errors='replace')}")

        if rendered.chunks:
            response = StreamingResponse(
                self._stream_chunks(rendered),
                status_code=rendered.status
            )
        else:
            response = HttpResponse(content=rendered.body, status_code=rendered.status)

        has_content_type = False
        for name, value in rendered.headers:
            lowered = name.lower()
            if lowered in MANAGED_HEADERS:
                continue
            if lowered == 'transfer-encoding' and not rendered.chunks:
                continue
            if lowered == 'content-type':
                has_content_type = True
            response.headers.append(name, value)

        if rendered.body and not has_content_type:
            response.headers.append('Content-Type', rendered.content_type)

        for name, cookie in rendered.cookies.items():
            response.headers.append('Set-Cookie', cookie.to_header(name))

        return response

    async def _stream_chunks(self, rendered: RenderedResponse):
        for index, chunk in enumerate(rendered.chunks):
            if index > 0 and rendered.chunk_delay > 0:
                await asyncio.sleep(rendered.chunk_delay / 1000)
            yield chunk

    async def _forward(self, request: Request, body: bytes, url: str) -> HttpResponse:
        """Relay the request to another server and return its response verbatim."""
        target = url.rstrip('/') + request.url.path
        if request.url.query:
            target += f"?{request.url.query}"

        headers = [
            (k.decode('latin-1'), v.decode('latin-1'))
            for k, v in request.headers.raw
            if k.decode('latin-1').lower() not in HOP_BY_HOP_HEADERS
        ]

        self.logger.debug(f"Forwarding {request.method} {request.url.path} -> {target}")

        async with httpx.AsyncClient(transport=self._forward_transport, timeout=self.config.forward_timeout) as client:
            upstream = await client.request(request.method, target, headers=headers, content=body)

        response = HttpResponse(content=upstream.content, status_code=upstream.status_code)
        for name, value in upstream.headers.multi_items():
            if name.lower() in HOP_BY_HOP_HEADERS or name.lower() == 'content-encoding':
                continue
            response.headers.append(name, value)

        return response

    async def _handle_websocket(self, websocket: WebSocket):
        """Accept a WebSocket connection and answer inbound messages with reactions."""
        path = websocket.url.path
        expectation = self._expectations.find_ws(path)

        if expectation is None:
            self.logger.warning(f"No WebSocket expectation for {path}")
            await websocket.close(code=1008)
            return

        await websocket.accept()
        expectation.connect()
        self.logger.debug(f"WebSocket connected: {path}")

        for reaction in expectation.on_connect:
            await self._send_ws(websocket, reaction)

        try:
            while True:
                message = await websocket.receive()
                if message['type'] == 'websocket.disconnect':
                    break

                if message.get('bytes') is not None:
                    payload, message_type = message['bytes'], MessageType.BINARY
                else:
                    payload, message_type = message.get('text') or '', MessageType.TEXT

                await self._on_ws_message(websocket, expectation, payload, message_type)

        except WebSocketDisconnect as e:
            self.logger.debug(f"WebSocket disconnected: {path} (code {e.code})")
            return

        self.logger.debug(f"WebSocket closed: {path}")

    async def _on_ws_message(
        self,
        websocket: WebSocket,
        expectation: WebSocketExpectation,
        payload: Any,
        message_type: MessageType
    ):
        matched = expectation.find_match(payload, message_type)

        if matched is None:
            text = UnmatchedWsReport(expectation.snapshot(payload, message_type)).render()
            self.logger.warning(text)
            if self.config.report_to_console:
                print(text)
            return

        for reaction in matched.reactions:
            await self._send_ws(websocket, reaction)

    async def _send_ws(self, websocket: WebSocket, reaction: Reaction):
        if reaction.message_type is MessageType.BINARY:
            await websocket.send_bytes(reaction.payload)
        else:
            await websocket.send_text(reaction.payload)

    def start(self) -> 'ErsatzServer':
        """
        Start serving on a background thread.

        Returns once the server accepts connections.

        Raises:
            ErsatzError: The server did not start in time
        """
        if self._server is not None:
            return self

        uvicorn_config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
            access_log=self.config.access_log
        )
        self._server = uvicorn.Server(uvicorn_config)
        self._thread = threading.Thread(target=self._server.run, name="ersatz-server", daemon=True)
        self._thread.start()

        if not is_true_before(lambda: self._server.started, WaitFor(self.config.start_timeout)):
            self.stop()
            raise ErsatzError(f"Server did not start within {self.config.start_timeout} seconds")

        self._port = self._server.servers[0].sockets[0].getsockname()[1]
        self.logger.info(f"Ersatz server started on {self.http_url()}")
        return self

    def stop(self) -> None:
        """Stop the background server, if running."""
        if self._server is None:
            return

        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=self.config.start_timeout)

        self.logger.info("Ersatz server stopped")
        self._server = None
        self._thread = None
        self._port = None

    @property
    def port(self) -> Optional[int]:
        """Bound port while running, else the configured port."""
        return self._port if self._port is not None else self.config.port

    def http_url(self, path: str = '') -> str:
        return f"http://{self.config.host}:{self.port}{path}"

    def ws_url(self, path: str = '') -> str:
        return f"ws://{self.config.host}:{self.port}{path}"

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app

    def __enter__(self) -> 'ErsatzServer':
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()


def create_server(
    host: str = "127.0.0.1",
    port: int = 0,
    log_level: str = "info",
    report_to_console: bool = False,
    log_response_content: bool = False,
    timeout: float = 1.0,
    expectations: Optional[Callable[[Expectations], Any]] = None
) -> ErsatzServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        host: Host to bind to
        port: Port to bind to (0 for any free port)
        log_level: Logging level name
        report_to_console: Print unmatched-request reports to stdout
        log_response_content: Log text response bodies
        timeout: Default verification wait in seconds
        expectations: Optional callable configuring the expectations

    Returns:
        Configured ErsatzServer instance

    Example:
        server = create_server(
            report_to_console=True,
            expectations=lambda e: e.get('/hello').responds().body('hi', 'text/plain')
        )
        server.start()
    """
    config = ServerConfig(
        host=host,
        port=port,
        log_level=log_level,
        report_to_console=report_to_console,
        log_response_content=log_response_content,
        timeout=timeout
    )

    server = ErsatzServer(config=config)
    if expectations is not None:
        server.expectations(expectations)

    return server
