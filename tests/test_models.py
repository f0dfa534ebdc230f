"""Unit tests for stream record models."""

import pytest
from pydantic import ValidationError

from tweetwatch.models import (
    EnhancedTweet,
    MatchingRule,
    NewStreamRule,
    RawStreamRecord,
    StreamIncludes,
    StreamRule,
    Tweet,
    XUser,
)

USER = XUser(id="42", name="Alice", username="alice")
RULE = MatchingRule(id="r1", tag="influencer")


def _record(**kwargs: object) -> RawStreamRecord:
    defaults: dict[str, object] = {
        "data": Tweet(id="1", text="hi"),
        "includes": StreamIncludes(users=[USER]),
        "matching_rules": [RULE],
    }
    defaults.update(kwargs)
    return RawStreamRecord(**defaults)  # type: ignore[arg-type]


class TestToEnhanced:
    def test_complete_record(self) -> None:
        assert _record().to_enhanced() == EnhancedTweet(
            id="1", text="hi", author=USER, matching_rules=[RULE]
        )

    def test_first_user_is_the_author(self) -> None:
        other = XUser(id="7", name="Bob", username="bob")
        tweet = _record(includes=StreamIncludes(users=[USER, other])).to_enhanced()
        assert tweet is not None
        assert tweet.author == USER

    @pytest.mark.parametrize("missing", ["data", "includes", "matching_rules"])
    def test_missing_part_yields_none(self, missing: str) -> None:
        assert _record(**{missing: None}).to_enhanced() is None

    def test_no_users_yields_none(self) -> None:
        assert _record(includes=StreamIncludes(users=[])).to_enhanced() is None


class TestStreamRule:
    def test_for_user_builds_from_value(self) -> None:
        rule = NewStreamRule.for_user("12345", "crypto")
        assert rule.value == "from:12345"

    def test_value_must_be_a_numeric_author(self) -> None:
        with pytest.raises(ValidationError):
            StreamRule(id="1", value="from:alice", tag="crypto")

    def test_unknown_tag_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StreamRule(id="1", value="from:1", tag="sports")  # type: ignore[arg-type]

    def test_rules_are_immutable(self) -> None:
        rule = StreamRule(id="1", value="from:1", tag="celeb")
        with pytest.raises(ValidationError):
            rule.tag = "crypto"  # type: ignore[misc]


class TestRawStreamRecord:
    def test_empty_object_is_valid(self) -> None:
        record = RawStreamRecord.model_validate_json("{}")
        assert record.data is None and record.errors is None

    def test_unknown_tweet_fields_are_ignored(self) -> None:
        record = RawStreamRecord.model_validate_json(
            '{"data":{"id":"1","text":"hi","edit_history_tweet_ids":["1"],"author_id":"42"}}'
        )
        assert record.data == Tweet(id="1", text="hi", author_id="42")
