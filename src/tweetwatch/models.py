"""Domain models for X API v2 filtered-stream and rule payloads."""

from __future__ import annotations

from typing import Annotated, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

StreamRuleTag = Literal["crypto", "influencer", "politics", "celeb"]
STREAM_RULE_TAGS: tuple[str, ...] = get_args(StreamRuleTag)

# Rules only ever track a single author by numeric id.
FROM_USER_ID_PATTERN = r"^from:[0-9]+$"

NonEmptyStr = Annotated[str, Field(min_length=1)]


class InlineError(BaseModel):
    title: NonEmptyStr
    type: NonEmptyStr
    detail: str | None = None
    status: int | None = None


class XUser(BaseModel):
    id: NonEmptyStr
    name: NonEmptyStr
    username: NonEmptyStr


class NewStreamRule(BaseModel):
    """Body of a single ``add`` entry; the id is assigned upstream."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(pattern=FROM_USER_ID_PATTERN)
    tag: StreamRuleTag

    @classmethod
    def for_user(cls, user_id: str, tag: StreamRuleTag) -> NewStreamRule:
        return cls(value=f"from:{user_id}", tag=tag)


class StreamRule(NewStreamRule):
    id: NonEmptyStr


# ── Filtered stream ───────────────────────────────────────────────────────


class Tweet(BaseModel):
    id: NonEmptyStr
    text: NonEmptyStr
    author_id: str | None = None


class MatchingRule(BaseModel):
    id: NonEmptyStr
    tag: StreamRuleTag


class StreamIncludes(BaseModel):
    users: list[XUser]


class EnhancedTweet(Tweet):
    """A streamed tweet joined with its author and the rules it matched."""

    author: XUser
    matching_rules: list[MatchingRule]


class RawStreamRecord(BaseModel):
    """One decoded line of the filtered stream. Every field is optional."""

    data: Tweet | None = None
    errors: list[InlineError] | None = None
    includes: StreamIncludes | None = None
    matching_rules: list[MatchingRule] | None = None

    def to_enhanced(self) -> EnhancedTweet | None:
        """Join tweet, author and matching rules, or ``None`` if any is missing."""
        if self.data is None or self.matching_rules is None:
            return None
        if self.includes is None or not self.includes.users:
            return None
        return EnhancedTweet(
            **self.data.model_dump(),
            author=self.includes.users[0],
            matching_rules=self.matching_rules,
        )


# ── REST envelopes ────────────────────────────────────────────────────────


class UserLookupResponse(BaseModel):
    data: XUser | None = None
    errors: list[InlineError] | None = None


class RulesResponse(BaseModel):
    data: list[StreamRule] | None = None
    errors: list[InlineError] | None = None


class RulesSummary(BaseModel):
    created: int | None = None
    deleted: int | None = None


class RulesMeta(BaseModel):
    summary: RulesSummary | None = None


class RulesMutationResponse(BaseModel):
    meta: RulesMeta
    errors: list[InlineError] | None = None
