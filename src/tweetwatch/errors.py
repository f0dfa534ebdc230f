"""Error types surfaced by the X API client and the stream pipeline.

Errors are returned inside :class:`~tweetwatch.result.Err` rather than raised,
so each one keeps its upstream cause on ``__cause__`` explicitly.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TypeVar

from tweetwatch.models import InlineError

E = TypeVar("E", bound=Exception)


class XClientError(Exception):
    """Raised when the X API returns an unexpected response."""


class RequestFailedError(XClientError):
    """The HTTP request could not be completed (transport error or timeout)."""


class HTTPStatusError(XClientError):
    """The server answered with a non-2xx status that will not be retried."""

    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        super().__init__(f"Failed to fetch {url}: HTTP error {status_code} {reason}".rstrip())
        self.url = url
        self.status_code = status_code
        self.reason = reason


class SchemaValidationError(XClientError):
    """A response body was not valid JSON or did not match its schema."""


class InlineApiError(XClientError):
    """A 200 response body carried one or more inline problem objects."""

    def __init__(self, errors: list[InlineError]) -> None:
        super().__init__(format_inline_errors(errors))
        self.errors = errors


class StreamConnectError(XClientError):
    """The filtered-stream connection could not be opened."""


class NoStreamBodyError(XClientError):
    """The stream endpoint answered 2xx without a response body."""


class StreamLineError(XClientError):
    """One stream line failed to parse or validate; the stream carries on."""


class StreamReadError(XClientError):
    """Reading from the live stream failed; the connection is unusable."""


class ReconnectExhaustedError(XClientError):
    """The reconnect budget was used up without a lasting connection."""


def wrap_error(error_type: type[E], message: str, cause: BaseException) -> E:
    """Build an *error_type* with *message* whose ``__cause__`` is *cause*."""
    error = error_type(message)
    error.__cause__ = cause
    return error


def format_inline_errors(errors: Iterable[InlineError]) -> str:
    return "\n".join(f"{e.title}: {e.detail or e.type}" for e in errors)


def iter_causes(error: BaseException) -> Iterator[BaseException]:
    """Yield *error* followed by each error on its ``__cause__`` chain."""
    current: BaseException | None = error
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def describe_error(error: BaseException) -> str:
    """Render the whole cause chain on one line, outermost first."""
    return " <- ".join(str(e) or type(e).__name__ for e in iter_causes(error))
