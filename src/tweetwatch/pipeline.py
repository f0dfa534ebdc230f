"""Stream orchestration: wires config → client → reconnecting stream → log output."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Generator
from contextlib import closing

from tweetwatch import config
from tweetwatch.errors import describe_error
from tweetwatch.models import EnhancedTweet
from tweetwatch.result import Err, Result
from tweetwatch.stream import enhanced_tweet_stream
from tweetwatch.x_client import XClient

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_client() -> XClient:
    return XClient(
        bearer_token=config.X_BEARER_TOKEN,
        base_url=config.X_API_BASE_URL,
        request_timeout=config.REQUEST_TIMEOUT,
        connect_timeout=config.CONNECT_TIMEOUT,
        max_retries=config.MAX_RETRIES,
        retry_delay=config.RETRY_DELAY,
    )


def log_tweet(tweet: EnhancedTweet) -> None:
    tags = ",".join(rule.tag for rule in tweet.matching_rules)
    logger.info("@%s [%s] %s: %s", tweet.author.username, tags, tweet.id, tweet.text.replace("\n", " "))


def consume_stream(
    events: Generator[Result[EnhancedTweet], None, None],
    on_tweet: Callable[[EnhancedTweet], None] = log_tweet,
) -> int:
    """Drain *events*, handing each tweet to *on_tweet*.

    Returns a process exit code: 1 on the first error item (the stream does
    not resume after one), 0 when the stream ends or is interrupted.
    """
    received = 0
    with closing(events):
        try:
            for result in events:
                if isinstance(result, Err):
                    logger.error("Fatal stream error, shutting down: %s", describe_error(result.error))
                    return 1
                received += 1
                on_tweet(result.value)
        except KeyboardInterrupt:
            logger.info("Interrupted, closing stream after %d tweets", received)
    return 0


def run_stream() -> int:
    """Connect to the filtered stream and log tweets until a fatal error."""
    setup_logging()
    logger.info("=== tweetwatch stream start ===")

    client = build_client()
    events = enhanced_tweet_stream(
        client,
        base_delay=config.RECONNECT_BASE_DELAY,
        max_delay=config.RECONNECT_MAX_DELAY,
        max_attempts=config.MAX_RECONNECT_ATTEMPTS,
    )
    code = consume_stream(events)

    logger.info("=== tweetwatch stream done [exit=%d] ===", code)
    return code
