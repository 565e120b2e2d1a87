"""
Ersatz Client Request

Read-only view of one inbound request, built once by the server and
queried repeatedly by matchers, listeners and reports.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs

from ..common.mime import charset_of
from ..common.utils import group_headers
from ..encdec.cookie import Cookie


@dataclass(frozen=True)
class ClientRequest:
    """
    Normalized inbound request.

    Headers are kept as raw (name, value) pairs; lookups by name are
    case-insensitive. Query parameters keep valueless names with an
    empty string value.
    """

    method: str
    path: str
    scheme: str = 'http'
    protocol: str = 'HTTP/1.1'
    raw_headers: Tuple[Tuple[str, str], ...] = ()
    query: Dict[str, List[str]] = field(default_factory=dict)
    query_string: str = ''
    cookies: Dict[str, Cookie] = field(default_factory=dict)
    body: Optional[bytes] = None

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        scheme: str = 'http',
        protocol: str = 'HTTP/1.1',
        headers: Optional[List[Tuple[str, str]]] = None,
        query_string: str = '',
        cookies: Optional[Dict[str, object]] = None,
        body: Optional[bytes] = None
    ) -> 'ClientRequest':
        """
        Build a request view from transport-level pieces.

        Args:
            method: HTTP method
            path: Request path, starting with '/'
            scheme: 'http' or 'https'
            protocol: Protocol string
            headers: Raw header pairs in arrival order
            query_string: Undecoded query string
            cookies: Cookie name to value (str) or Cookie
            body: Raw body bytes

        Returns:
            ClientRequest instance
        """
        parsed_cookies = {}
        for name, value in (cookies or {}).items():
            parsed_cookies[name] = value if isinstance(value, Cookie) else Cookie(value=value)

        return cls(
            method=method.upper(),
            path=path or '/',
            scheme=scheme,
            protocol=protocol,
            raw_headers=tuple(headers or ()),
            query=parse_qs(query_string, keep_blank_values=True) if query_string else {},
            query_string=query_string or '',
            cookies=parsed_cookies,
            body=body,
        )

    @property
    def headers(self) -> Dict[str, List[str]]:
        """Header name to values, names in their first received spelling."""
        return group_headers(self.raw_headers)

    def header(self, name: str) -> Optional[str]:
        """First raw value of a header, or None."""
        wanted = name.lower()
        for key, value in self.raw_headers:
            if key.lower() == wanted:
                return value
        return None

    @property
    def content_type(self) -> Optional[str]:
        return self.header('content-type')

    @property
    def character_encoding(self) -> Optional[str]:
        return charset_of(self.content_type)

    @property
    def content_length(self) -> int:
        value = self.header('content-length')
        if value is not None and value.strip().isdigit():
            return int(value)
        return len(self.body) if self.body else 0

    @property
    def body_parameters(self) -> Dict[str, List[str]]:
        """Body parsed as a url-encoded form, empty when there is no body."""
        if not self.body:
            return {}
        text = self.body.decode(self.character_encoding or 'utf-8', errors='replace')
        return parse_qs(text, keep_blank_values=True)

    def __str__(self) -> str:
        query = f"?{self.query_string}" if self.query_string else ''
        return f"{self.scheme} {self.method} {self.path}{query}"
