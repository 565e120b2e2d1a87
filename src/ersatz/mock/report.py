"""
Ersatz Unmatched Reports

Diagnostic snapshots built when a request or WebSocket message matches
nothing. Building a report performs no I/O; `render()` returns text the
caller may log or print.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from ..common.mime import is_textual
from .request import ClientRequest
from .websocket import WebSocketSnapshot

CHECK = '✓'
CROSS = 'X'


@dataclass
class ExpectationResult:
    """Matcher outcomes of one expectation against the unmatched request."""

    description: str
    matchers: List[Tuple[str, bool]] = field(default_factory=list)

    @property
    def matched(self) -> int:
        return sum(1 for _, ok in self.matchers if ok)

    @property
    def failed(self) -> int:
        return len(self.matchers) - self.matched


@dataclass
class UnmatchedRequestReport:
    """
    Request details plus how each expectation fared against it.

    Example:
        report = UnmatchedRequestReport.build(request, expectations)
        logger.warning(report.render())
    """

    request: ClientRequest
    expectations: List[ExpectationResult] = field(default_factory=list)
    failed_requirements: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, request: ClientRequest, expectations, failed_requirements=None) -> 'UnmatchedRequestReport':
        results = [
            ExpectationResult(str(expectation), expectation.match_details(request))
            for expectation in expectations
        ]
        return cls(
            request=request,
            expectations=results,
            failed_requirements=[str(r) for r in (failed_requirements or [])]
        )

    def render(self) -> str:
        request = self.request
        lines = ['# Unmatched Request', '']

        query = f" ? {request.query_string}" if request.query_string else ''
        lines.append(f"{request.scheme.upper()} {request.method} {request.path}{query}")
        lines.append('')

        lines.append('# Headers')
        for name, values in request.headers.items():
            lines.append(f"  - {name}: {values}")
        lines.append('')

        lines.append('# Cookies')
        for name, cookie in request.cookies.items():
            lines.append(f"  - {name}: {cookie.value}")
        lines.append('')

        lines.append(f"# Character-Encoding: {request.character_encoding}")
        lines.append(f"# Content-Type: {request.content_type}")
        lines.append(f"# Content-Length: {request.content_length}")

        if request.body:
            lines.append('# Content:')
            if is_textual(request.content_type):
                lines.append(f"  {request.body.decode(request.character_encoding or 'utf-8', errors='replace')}")
            else:
                lines.append(f"  <{len(request.body)} bytes of binary content>")
        lines.append('')

        if self.failed_requirements:
            lines.append('# Requirements')
            lines.append('')
            for requirement in self.failed_requirements:
                lines.append(f"  {CROSS} {requirement}")
            lines.append('')

        lines.append('# Expectations')
        lines.append('')
        for index, result in enumerate(self.expectations):
            lines.append(f"Expectation {index} ({len(result.matchers)} matchers):")
            for description, ok in result.matchers:
                lines.append(f"  {CHECK if ok else CROSS} {description}")
            lines.append(
                f"  ({len(result.matchers)} matchers: {result.matched} matched, {result.failed} failed)"
            )
            lines.append('')

        return '\n'.join(lines)


@dataclass
class UnmatchedWsReport:
    """WebSocket state at the time an inbound message matched nothing."""

    snapshot: WebSocketSnapshot

    def render(self) -> str:
        snapshot = self.snapshot
        lines = ['# Unmatched WebSocket Message', '']
        lines.append(f"Path: {snapshot.path}")
        lines.append(f"  {CHECK if snapshot.connected else CROSS} connected")
        lines.append('')

        if snapshot.unmatched is not None:
            lines.append(f"Received ({snapshot.unmatched.message_type.value}): {_payload(snapshot.unmatched.payload)}")
            lines.append('')

        lines.append(f"# Expected Messages ({len(snapshot.messages)})")
        for state in snapshot.messages:
            mark = CHECK if state.satisfied else CROSS
            lines.append(
                f"  {mark} {state.message_type.value}: {_payload(state.payload)} (received {state.count} times)"
            )

        satisfied = sum(1 for state in snapshot.messages if state.satisfied)
        lines.append(f"  ({len(snapshot.messages)} messages: {satisfied} satisfied, "
                     f"{len(snapshot.messages) - satisfied} unsatisfied)")
        return '\n'.join(lines)


def _payload(payload) -> str:
    if isinstance(payload, (bytes, bytearray)):
        return f"<{len(payload)} bytes> {bytes(payload)[:64].hex()}"
    return repr(payload)
