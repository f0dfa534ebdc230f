"""Shared fakes for requests sessions, streaming responses and sleep."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

import pytest


class FakeResponse:
    """Stands in for ``requests.Response``, with control over read chunks."""

    def __init__(
        self,
        status_code: int = 200,
        *,
        chunks: list[bytes] | None = None,
        body: Any = None,
        reason: str = "OK",
        headers: dict[str, str] | None = None,
        read_error: Exception | None = None,
        has_body: bool = True,
    ) -> None:
        if body is not None:
            chunks = [json.dumps(body).encode()]
        self.status_code = status_code
        self.reason = reason
        self.headers = headers or {}
        self.url = "https://api.x.com/fake"
        self.raw = object() if has_body else None
        self._chunks = chunks or []
        self._read_error = read_error
        self.close_calls = 0
        self.chunks_read = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    @property
    def content(self) -> bytes:
        return b"".join(self._chunks)

    def iter_content(self, chunk_size: int | None = None, decode_unicode: bool = False) -> Iterator[bytes]:
        for chunk in self._chunks:
            self.chunks_read += 1
            yield chunk
        if self._read_error is not None:
            raise self._read_error

    def close(self) -> None:
        self.close_calls += 1


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, outcomes: list[FakeResponse | Exception]) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, Any]] = []
        self._outcomes = list(outcomes)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
