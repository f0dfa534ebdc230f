"""Incremental decoder for newline-delimited JSON streaming bodies.

The filtered stream delivers one JSON object per line over a response that
never ends under normal operation. Reads arrive in arbitrary chunks, so a
line (or a multi-byte character) may be split across two reads.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Iterator

import requests
from pydantic import ValidationError

from tweetwatch.errors import StreamLineError, StreamReadError, wrap_error
from tweetwatch.models import RawStreamRecord
from tweetwatch.result import Err, Ok, Result

logger = logging.getLogger(__name__)


def split_lines(buffer: str, text: str) -> tuple[list[str], str]:
    """Append *text* to *buffer*; return the complete lines and the remainder."""
    pieces = (buffer + text).split("\n")
    return pieces[:-1], pieces[-1]


def parse_line(line: str) -> Result[RawStreamRecord]:
    try:
        return Ok(RawStreamRecord.model_validate_json(line))
    except ValidationError as exc:
        return Err(wrap_error(StreamLineError, "Error parsing filtered stream line", exc))


def iter_stream_records(
    response: requests.Response,
    chunk_size: int | None = None,
) -> Iterator[Result[RawStreamRecord]]:
    """Yield one result per non-blank line of a streaming *response*.

    A line that fails to parse yields an ``Err`` and decoding continues. A
    failed read yields a single :class:`StreamReadError` and stops. The
    response is closed on every exit, including when the consumer closes
    this generator early.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    chunks = response.iter_content(chunk_size=chunk_size)
    try:
        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                if buffer.strip():
                    logger.debug("Discarding %d chars of unterminated line", len(buffer))
                logger.info("Filtered stream closed by the server")
                return
            except (requests.RequestException, OSError) as exc:
                logger.error("Fatal stream read error: %s", exc)
                response.close()
                yield Err(wrap_error(StreamReadError, "Error reading filtered stream", exc))
                return

            lines, buffer = split_lines(buffer, decoder.decode(chunk))
            for line in lines:
                # Keep-alive heartbeats arrive as blank lines.
                if not line.strip():
                    continue
                yield parse_line(line)
    finally:
        response.close()
