"""Short path generation and input validation helpers."""

from urllib.parse import urlsplit, urlunsplit

import validators
from nanoid import generate

from shortlinks.exceptions import InvalidInputError

__all__ = [
    "DEFAULT_ALPHABET",
    "DEFAULT_LENGTH",
    "generate_short_path",
    "is_well_formed_short_path",
    "normalize_url",
    "validate_original_url",
]

DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
DEFAULT_LENGTH = 4

ALLOWED_SCHEMES = ("http", "https")


def generate_short_path(length: int = DEFAULT_LENGTH, alphabet: str = DEFAULT_ALPHABET) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(alphabet, length)


def is_well_formed_short_path(short_path: str | None, length: int = DEFAULT_LENGTH) -> bool:
    return isinstance(short_path, str) and len(short_path) == length


def validate_original_url(url: str | None) -> str:
    """Return the trimmed URL, or raise InvalidInputError.

    The URL must be absolute and use the http or https scheme.
    """
    candidate = url.strip() if isinstance(url, str) else ""
    if not candidate:
        raise InvalidInputError("Missing url")

    scheme = urlsplit(candidate).scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidInputError("Only http and https URLs are supported")

    if not validators.url(candidate, simple_host=True) and not _has_valid_authority(candidate):
        raise InvalidInputError("Invalid URL format")

    return candidate


def _has_valid_authority(url: str) -> bool:
    """Accept hosts that validators refuses but WHATWG URL parsing allows, e.g. ``my_host``."""
    if any(c.isspace() for c in url):
        return False
    parts = urlsplit(url)
    try:
        parts.port
    except ValueError:
        return False
    return bool(parts.hostname)


def normalize_url(url: str) -> str:
    """Lowercase scheme and host, and give a bare host an explicit root path."""
    parts = urlsplit(url)
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment)
    )
