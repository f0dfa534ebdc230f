"""X API v2 client: stream rules, user lookup and the filtered-stream connection."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from tweetwatch.errors import (
    InlineApiError,
    NoStreamBodyError,
    SchemaValidationError,
    StreamConnectError,
    XClientError,
    wrap_error,
)
from tweetwatch.fetch import request_with_retry
from tweetwatch.models import (
    NewStreamRule,
    RulesMutationResponse,
    RulesResponse,
    StreamRule,
    StreamRuleTag,
    UserLookupResponse,
)
from tweetwatch.result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.x.com"

_STREAM_RULES_PATH = "2/tweets/search/stream/rules"
_FILTERED_STREAM_PATH = "2/tweets/search/stream"
_USER_BY_USERNAME_PATH = "2/users/by/username/{username}"

# Author objects are only included when expanded.
_STREAM_EXPANSIONS = "author_id"

_NO_BODY_STATUSES = frozenset({204, 205})

M = TypeVar("M", bound=BaseModel)


def _fail(message: str, cause: BaseException) -> Err:
    return Err(wrap_error(XClientError, message, cause))


class XClient:
    """Thin wrapper around the filtered-stream endpoints of the X API."""

    def __init__(
        self,
        bearer_token: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        request_timeout: float = 5.0,
        connect_timeout: float = 10.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not bearer_token:
            raise ValueError("X_BEARER_TOKEN is required but was empty.")
        self._base_url = base_url.rstrip("/")
        self._request_timeout = request_timeout
        self._connect_timeout = connect_timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {bearer_token}"})

    # ── users ───────────────────────────────────────────────────────────

    def get_user_id(self, username: str) -> Result[str]:
        """Resolve a ``@username`` (with or without the ``@``) to its user id."""
        username = username.lstrip("@")
        context = f"Error getting X user id for {username}"

        result = self._send("GET", _USER_BY_USERNAME_PATH.format(username=username), UserLookupResponse)
        if isinstance(result, Err):
            return _fail(context, result.error)

        body = result.value
        if body.data is None:
            if body.errors:
                return _fail(context, InlineApiError(body.errors))
            return _fail(context, XClientError("No X user found"))
        return Ok(body.data.id)

    # ── stream rules ────────────────────────────────────────────────────

    def list_rules(self) -> Result[list[StreamRule]]:
        context = "Error getting stream rules"

        result = self._send("GET", _STREAM_RULES_PATH, RulesResponse)
        if isinstance(result, Err):
            return _fail(context, result.error)

        body = result.value
        if body.data:
            return Ok(list(body.data))
        if body.errors:
            return _fail(context, InlineApiError(body.errors))
        return Ok([])

    def add_rule(self, rule: NewStreamRule) -> Result[None]:
        context = f"Error adding stream rule {rule.value}"
        payload = {"add": [rule.model_dump()]}

        result = self._send("POST", _STREAM_RULES_PATH, RulesMutationResponse, payload)
        if isinstance(result, Err):
            return _fail(context, result.error)
        return self._check_summary(result.value, "created", context)

    def delete_rule(self, rule_id: str) -> Result[None]:
        context = f"Error deleting stream rule {rule_id}"
        payload = {"delete": {"ids": [rule_id]}}

        result = self._send("POST", _STREAM_RULES_PATH, RulesMutationResponse, payload)
        if isinstance(result, Err):
            return _fail(context, result.error)
        return self._check_summary(result.value, "deleted", context)

    def track_user(self, username: str, tag: StreamRuleTag) -> Result[None]:
        """Add a ``from:<id>`` rule for *username* unless one already exists."""
        context = f"Error adding user {username} to tweet stream"

        user_id = self.get_user_id(username)
        if isinstance(user_id, Err):
            return _fail(context, user_id.error)
        rules = self.list_rules()
        if isinstance(rules, Err):
            return _fail(context, rules.error)

        rule = NewStreamRule.for_user(user_id.value, tag)
        duplicate = next((r for r in rules.value if r.value == rule.value), None)
        if duplicate is not None:
            return Err(XClientError(
                f"User {username} is already being tracked with tag {duplicate.tag}"
            ))

        added = self.add_rule(rule)
        if isinstance(added, Err):
            return _fail(context, added.error)
        logger.info("Tracking @%s as %s (%s)", username.lstrip("@"), tag, rule.value)
        return added

    def untrack_user(self, username: str) -> Result[None]:
        context = f"Error removing user {username} from tweet stream"

        user_id = self.get_user_id(username)
        if isinstance(user_id, Err):
            return _fail(context, user_id.error)
        rules = self.list_rules()
        if isinstance(rules, Err):
            return _fail(context, rules.error)

        value = f"from:{user_id.value}"
        rule = next((r for r in rules.value if r.value == value), None)
        if rule is None:
            return Err(XClientError(f"User {username} is not being tracked"))

        deleted = self.delete_rule(rule.id)
        if isinstance(deleted, Err):
            return _fail(context, deleted.error)
        logger.info("Stopped tracking @%s (rule %s)", username.lstrip("@"), rule.id)
        return deleted

    # ── filtered stream ─────────────────────────────────────────────────

    def connect_filtered_stream(self) -> Result[requests.Response]:
        """Open the long-lived filtered stream.

        Only the connect phase is bounded by a timeout; a healthy stream
        stays open for hours. The returned response must be closed by the
        caller (the stream decoder does this).
        """
        result = request_with_retry(
            self._session,
            self._url(_FILTERED_STREAM_PATH),
            params={"expansions": _STREAM_EXPANSIONS},
            timeout=(self._connect_timeout, None),
            max_retries=self._max_retries,
            retry_delay=self._retry_delay,
            stream=True,
            sleep=self._sleep,
        )
        if isinstance(result, Err):
            return Err(wrap_error(StreamConnectError, "Error connecting to filtered stream", result.error))

        resp = result.value
        # 204/205 never carry a body, whatever the transport layer exposes.
        if (
            resp.status_code in _NO_BODY_STATUSES
            or resp.raw is None
            or resp.headers.get("Content-Length") == "0"
        ):
            resp.close()
            return Err(wrap_error(
                StreamConnectError,
                "Error connecting to filtered stream",
                NoStreamBodyError("No stream body found"),
            ))

        logger.info("Connected to filtered stream (HTTP %d)", resp.status_code)
        return Ok(resp)

    # ── private ─────────────────────────────────────────────────────────

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path}"

    def _send(
        self,
        method: str,
        path: str,
        model: type[M],
        payload: dict[str, Any] | None = None,
    ) -> Result[M]:
        url = self._url(path)
        result = request_with_retry(
            self._session,
            url,
            method=method,
            json=payload,
            timeout=self._request_timeout,
            max_retries=self._max_retries,
            retry_delay=self._retry_delay,
            sleep=self._sleep,
        )
        if isinstance(result, Err):
            return result

        try:
            return Ok(model.model_validate_json(result.value.content))
        except ValidationError as exc:
            return Err(wrap_error(SchemaValidationError, f"Invalid response body from {url}", exc))

    @staticmethod
    def _check_summary(body: RulesMutationResponse, field: str, context: str) -> Result[None]:
        summary = body.meta.summary
        if summary is not None and getattr(summary, field):
            return Ok(None)
        if body.errors:
            return _fail(context, InlineApiError(body.errors))
        return Err(XClientError(f"{context}: no rule was {field}"))
