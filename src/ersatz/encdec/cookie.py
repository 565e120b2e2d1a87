"""
Ersatz Cookies

Cookie record shared by request matching and response rendering.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Cookie:
    """A cookie with its optional attributes."""

    value: Optional[str] = None
    comment: Optional[str] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    version: int = 0
    http_only: bool = False
    max_age: Optional[int] = None
    secure: bool = False

    def to_header(self, name: str) -> str:
        """
        Render the cookie as a Set-Cookie header value.

        Example:
            Cookie('abc', path='/', http_only=True).to_header('session')
            # 'session=abc; Path=/; HttpOnly'
        """
        parts = [f"{name}={self.value or ''}"]

        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.comment:
            parts.append(f"Comment={self.comment}")
        if self.version:
            parts.append(f"Version={self.version}")
        if self.secure:
            parts.append("Secure")
        if self.http_only:
            parts.append("HttpOnly")

        return '; '.join(parts)
