"""Unit tests for the newline-delimited JSON stream decoder."""

import requests

from conftest import FakeResponse
from tweetwatch.errors import StreamLineError, StreamReadError
from tweetwatch.models import RawStreamRecord
from tweetwatch.ndjson import iter_stream_records, split_lines
from tweetwatch.result import Err, Ok

PAYLOAD = (
    b'{"data":{"id":"1","text":"hi"}}\n'
    b"\r\n"
    b'{"errors":[{"title":"t","type":"https://api.x.com/2/problems/client-disconnected"}]}\n'
    b'{"data":{"id":"2","text":"caf\xc3\xa9 \xe2\x98\x95"},"matching_rules":[{"id":"9","tag":"crypto"}]}\n'
)


def _decode(chunks: list[bytes]) -> list:
    return list(iter_stream_records(FakeResponse(chunks=chunks)))  # type: ignore[arg-type]


class TestSplitLines:
    def test_keeps_partial_line_in_buffer(self) -> None:
        lines, rest = split_lines('{"a"', ':1}\n{"b"')
        assert lines == ['{"a":1}']
        assert rest == '{"b"'

    def test_trailing_newline_leaves_empty_buffer(self) -> None:
        assert split_lines("", "x\ny\n") == (["x", "y"], "")


class TestIterStreamRecords:
    def test_decodes_each_line(self) -> None:
        results = _decode([PAYLOAD])

        assert len(results) == 3
        assert all(isinstance(r, Ok) for r in results)
        first, second, third = (r.value for r in results)
        assert first.data is not None and first.data.text == "hi"
        assert second.errors is not None and second.errors[0].title == "t"
        assert third.data is not None and third.data.text == "café ☕"

    def test_chunk_boundaries_do_not_matter(self) -> None:
        expected = _decode([PAYLOAD])
        for split in range(1, len(PAYLOAD)):
            chunks = [PAYLOAD[:split], PAYLOAD[split:]]
            assert _decode(chunks) == expected, f"split at byte {split}"

    def test_one_byte_reads(self) -> None:
        chunks = [PAYLOAD[i : i + 1] for i in range(len(PAYLOAD))]
        assert _decode(chunks) == _decode([PAYLOAD])

    def test_invalid_json_only_affects_its_line(self) -> None:
        results = _decode([b'{"data": {"id": \n', b'{"data":{"id":"3","text":"ok"}}\n'])

        assert isinstance(results[0], Err)
        assert isinstance(results[0].error, StreamLineError)
        assert results[0].error.__cause__ is not None
        assert isinstance(results[1], Ok)
        assert results[1].value.data.id == "3"

    def test_schema_mismatch_is_a_line_error(self) -> None:
        results = _decode([b'{"data":{"id":"1","text":""}}\n{}\n'])

        assert isinstance(results[0], Err)
        assert isinstance(results[0].error, StreamLineError)
        assert results[1] == Ok(RawStreamRecord())

    def test_blank_lines_are_dropped(self) -> None:
        assert _decode([b"\n\r\n   \n\t\n"]) == []

    def test_unterminated_tail_is_not_yielded(self) -> None:
        results = _decode([b'{"data":{"id":"1","text":"hi"}}\n{"data":'])
        assert len(results) == 1

    def test_natural_close_releases_response(self) -> None:
        response = FakeResponse(chunks=[b"{}\n"])

        results = list(iter_stream_records(response))  # type: ignore[arg-type]

        assert results == [Ok(RawStreamRecord())]
        assert response.closed

    def test_read_error_is_final_and_releases_response(self) -> None:
        cause = requests.exceptions.ChunkedEncodingError("connection broken")
        response = FakeResponse(chunks=[b"{}\n{", b"}\n"], read_error=cause)

        results = list(iter_stream_records(response))  # type: ignore[arg-type]

        assert results[:2] == [Ok(RawStreamRecord()), Ok(RawStreamRecord())]
        assert isinstance(results[2], Err)
        assert isinstance(results[2].error, StreamReadError)
        assert results[2].error.__cause__ is cause
        assert len(results) == 3
        assert response.closed

    def test_read_error_releases_response_before_error_is_seen(self) -> None:
        response = FakeResponse(chunks=[], read_error=requests.exceptions.ReadTimeout("stalled"))
        records = iter_stream_records(response)  # type: ignore[arg-type]

        result = next(records)

        # The consumer may never resume the generator after a fatal error.
        assert isinstance(result, Err)
        assert response.closed

    def test_abandoning_iteration_releases_response(self) -> None:
        response = FakeResponse(chunks=[b"{}\n", b"{}\n", b"{}\n"])
        records = iter_stream_records(response)  # type: ignore[arg-type]

        assert next(records) == Ok(RawStreamRecord())
        assert not response.closed
        records.close()

        assert response.closed
        assert response.chunks_read == 1
