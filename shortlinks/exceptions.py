"""Exceptions raised by the link lifecycle and its stores.

Classes:
    ShortLinkError:
        Generic base class for every error raised by this package.

    InvalidInputError:
        Malformed URL, wrong-length short path or unknown expiration.

    ConflictError:
        A caller-supplied short path is occupied by a live record.

    ExhaustedRetriesError:
        Random generation could not find a free short path within the attempt bound.

    StoreUnavailableError:
        The durable store or the cache is unreachable or erroring.

    DuplicateKeyError:
        The durable store refused an insert because the short path already exists.

Example:
    >>> from shortlinks.exceptions import ConflictError
    >>> raise ConflictError("Short path already in use")
    Traceback (most recent call last):
        ...
    shortlinks.exceptions.ConflictError: Short path already in use
"""

__all__ = [
    "ShortLinkError",
    "InvalidInputError",
    "ConflictError",
    "ExhaustedRetriesError",
    "StoreUnavailableError",
    "DuplicateKeyError",
]


class ShortLinkError(Exception):
    """Generic base class for short-links exceptions."""

    pass


class InvalidInputError(ShortLinkError):
    """Exception raised when a request carries a malformed URL, path or expiration."""

    pass


class ConflictError(ShortLinkError):
    """Exception raised when an explicitly requested short path is taken by a live record."""

    pass


class ExhaustedRetriesError(ShortLinkError):
    """Exception raised when no free random short path was found within the attempt bound."""

    pass


class StoreUnavailableError(ShortLinkError):
    """Exception raised when there is an error in the durable store or cache.

    e.g. connection issues, timeouts, OOM, etc.
    """

    pass


class DuplicateKeyError(ShortLinkError):
    """Exception raised by the durable store when the short path key already exists."""

    pass
