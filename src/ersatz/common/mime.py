"""
Ersatz Content Types

Content-type constants and wildcard mime matching used by the codec chains.
"""

from typing import Optional, Tuple


class ContentType:
    """Commonly used content-type values."""

    APPLICATION_JSON = 'application/json'
    APPLICATION_JAVASCRIPT = 'application/javascript'
    APPLICATION_XML = 'application/xml'
    APPLICATION_URLENCODED = 'application/x-www-form-urlencoded'
    APPLICATION_OCTET_STREAM = 'application/octet-stream'
    TEXT_PLAIN = 'text/plain'
    TEXT_HTML = 'text/html'
    TEXT_XML = 'text/xml'
    TEXT_JSON = 'text/json'
    TEXT_CSV = 'text/csv'
    TEXT_JAVASCRIPT = 'text/javascript'
    IMAGE_PNG = 'image/png'
    IMAGE_JPG = 'image/jpeg'
    IMAGE_GIF = 'image/gif'
    MULTIPART_FORMDATA = 'multipart/form-data'
    MULTIPART_MIXED = 'multipart/mixed'

    @staticmethod
    def with_charset(content_type: str, charset: str) -> str:
        """
        Append a charset parameter to a content type.

        Example:
            ContentType.with_charset('text/plain', 'utf-8')  # 'text/plain; charset=utf-8'
        """
        return f"{content_type}; charset={charset}"


def parse_mime(value: str) -> Tuple[str, str]:
    """
    Split a content-type string into (primary, sub) type.

    Parameters such as charset are dropped and both parts are lowercased.
    A value with no slash is treated as `value/*`.
    """
    base = value.split(';', 1)[0].strip().lower()
    if '/' not in base:
        return base or '*', '*'

    primary, sub = base.split('/', 1)
    return primary.strip() or '*', sub.strip() or '*'


def mime_matches(pattern: str, content_type: Optional[str]) -> bool:
    """
    Check whether a content-type pattern matches a concrete content type.

    A `*` primary or subtype on either side is a wildcard, so `text/*`
    matches `text/plain; charset=utf-8`.

    Args:
        pattern: Declared content-type pattern
        content_type: Concrete content type (None never matches)

    Returns:
        True if the pattern matches
    """
    if content_type is None:
        return False

    pattern_primary, pattern_sub = parse_mime(pattern)
    primary, sub = parse_mime(content_type)

    if pattern_primary != '*' and primary != '*' and pattern_primary != primary:
        return False

    return pattern_sub == '*' or sub == '*' or pattern_sub == sub


def charset_of(content_type: Optional[str]) -> Optional[str]:
    """Extract the charset parameter of a content type, if any."""
    if not content_type:
        return None

    for param in content_type.split(';')[1:]:
        name, _, value = param.partition('=')
        if name.strip().lower() == 'charset' and value.strip():
            return value.strip().strip('"')

    return None


def is_textual(content_type: Optional[str]) -> bool:
    """Check whether a content type carries human-readable text."""
    if not content_type:
        return False

    lowered = content_type.lower()
    return (
        'text/' in lowered
        or '/json' in lowered
        or '+json' in lowered
        or 'javascript' in lowered
        or 'xml' in lowered
        or 'urlencoded' in lowered
    )
