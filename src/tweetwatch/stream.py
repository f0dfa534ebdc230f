"""Reconnecting filtered-stream supervisor and the public stream entry point.

The supervisor runs one loop per instance::

    CONNECTING -> STREAMING -> RECONNECT_WAIT -> CONNECTING ...
                            \\-> TERMINATED

A failed connect or a failed stream read ends the loop with that error as
the last item. Inline problems that X documents as recoverable disconnects
send it through RECONNECT_WAIT, which sleeps with exponential backoff and
gives up after ``max_attempts`` reconnects.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Generator, Iterator
from contextlib import closing

import requests

from tweetwatch.errors import (
    ReconnectExhaustedError,
    StreamLineError,
    describe_error,
    format_inline_errors,
)
from tweetwatch.models import EnhancedTweet, InlineError
from tweetwatch.ndjson import iter_stream_records
from tweetwatch.result import Err, Ok, Result
from tweetwatch.x_client import XClient

logger = logging.getLogger(__name__)

BASE_RECONNECT_DELAY = 1.0
MAX_RECONNECT_DELAY = 300.0
MAX_RECONNECT_ATTEMPTS = 10

# Problem slugs (last path segment of the problem ``type`` URL).
RECONNECTABLE_PROBLEMS: frozenset[str] = frozenset({
    "client-disconnected",
    "operational-disconnect",
    "usage-capped",
    "streaming-connection",
})


class StreamState(enum.Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECT_WAIT = "reconnect_wait"
    TERMINATED = "terminated"


def problem_slug(problem_type: str) -> str:
    """``https://api.x.com/2/problems/usage-capped`` -> ``usage-capped``."""
    return problem_type.rstrip("/").rsplit("/", 1)[-1].lower()


def is_reconnectable(error: InlineError) -> bool:
    return problem_slug(error.type) in RECONNECTABLE_PROBLEMS


def reconnect_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    return min(base_delay * 2**attempt, max_delay)


class ReconnectingStream:
    """Iterate enhanced tweets from the filtered stream, reconnecting on
    provider-signalled disconnects.

    Items are ``Ok(EnhancedTweet)`` until, at most once, a final ``Err``.
    The attempt counter is never reset within one instance, so the whole
    run shares a single reconnect budget. An instance can be iterated once;
    build a new one to start over.
    """

    def __init__(
        self,
        client: XClient,
        *,
        base_delay: float = BASE_RECONNECT_DELAY,
        max_delay: float = MAX_RECONNECT_DELAY,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._max_attempts = max_attempts
        self._sleep = sleep
        self.attempt = 0
        self.state = StreamState.CONNECTING
        self._started = False

    def __iter__(self) -> Iterator[Result[EnhancedTweet]]:
        if self._started:
            raise RuntimeError("ReconnectingStream can only be iterated once")
        self._started = True
        return self._run()

    # ── private ─────────────────────────────────────────────────────────

    def _run(self) -> Iterator[Result[EnhancedTweet]]:
        try:
            while True:
                self.state = StreamState.CONNECTING
                connected = self._client.connect_filtered_stream()
                if isinstance(connected, Err):
                    logger.error("Filtered stream connect failed: %s", describe_error(connected.error))
                    yield connected
                    return

                self.state = StreamState.STREAMING
                reconnect = yield from self._consume(connected.value)
                if not reconnect:
                    return

                self.state = StreamState.RECONNECT_WAIT
                if self.attempt >= self._max_attempts:
                    logger.error("Giving up after %d reconnect attempts", self.attempt)
                    yield Err(ReconnectExhaustedError(
                        f"Max filtered stream reconnect attempts ({self._max_attempts}) reached"
                    ))
                    return

                delay = reconnect_delay(self.attempt, self._base_delay, self._max_delay)
                self.attempt += 1
                logger.warning(
                    "Reconnecting to filtered stream in %.1fs (attempt %d/%d)",
                    delay, self.attempt, self._max_attempts,
                )
                self._sleep(delay)
        finally:
            self.state = StreamState.TERMINATED

    def _consume(
        self, response: requests.Response
    ) -> Generator[Result[EnhancedTweet], None, bool]:
        """Yield events from one connection; return whether to reconnect."""
        with closing(iter_stream_records(response)) as records:
            for result in records:
                if isinstance(result, Err):
                    if isinstance(result.error, StreamLineError):
                        logger.warning("Skipping stream line: %s", describe_error(result.error))
                        continue
                    yield result
                    return False

                record = result.value
                errors = record.errors or []
                disconnect = next((e for e in errors if is_reconnectable(e)), None)
                if disconnect is not None:
                    logger.warning(
                        "Reconnectable inline stream error: %s (%s)",
                        disconnect.title, disconnect.type,
                    )
                    return True

                tweet = record.to_enhanced()
                if tweet is not None:
                    yield Ok(tweet)
                elif errors:
                    logger.warning("Ignoring inline stream error:\n%s", format_inline_errors(errors))

        return True


def enhanced_tweet_stream(
    client: XClient,
    *,
    base_delay: float = BASE_RECONNECT_DELAY,
    max_delay: float = MAX_RECONNECT_DELAY,
    max_attempts: int = MAX_RECONNECT_ATTEMPTS,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[Result[EnhancedTweet]]:
    """Yield enhanced tweets from the filtered stream until a fatal error.

    Any ``Err`` item is the last one. Closing this generator closes the
    underlying HTTP response.
    """
    yield from ReconnectingStream(
        client,
        base_delay=base_delay,
        max_delay=max_delay,
        max_attempts=max_attempts,
        sleep=sleep,
    )
