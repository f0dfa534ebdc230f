"""Load the tracked-accounts watchlist and sync it into stream rules."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from tweetwatch.errors import describe_error
from tweetwatch.models import STREAM_RULE_TAGS, NewStreamRule
from tweetwatch.result import Err, Ok, Result
from tweetwatch.x_client import XClient

logger = logging.getLogger(__name__)


def _clean_handle(raw: str) -> str:
    stripped = str(raw).strip()
    # Allow @handles; the user lookup wants the bare username.
    if stripped.startswith("@"):
        stripped = stripped[1:].strip()
    return stripped


def _load_lines(path: Path) -> list[str]:
    """Read an accounts file and return non-empty, non-comment handles."""
    if not path.exists():
        logger.warning("File not found, skipping: %s", path)
        return []
    handles: list[str] = []
    for raw in path.read_text().splitlines():
        stripped = raw.strip()
        if stripped and not stripped.startswith("#"):
            handles.append(_clean_handle(stripped))
    return handles


def load_watchlist(path: Path) -> dict[str, list[str]]:
    """Parse ``watchlist.yml`` into a mapping of rule tag → usernames.

    Each entry under ``tags`` is either a list of usernames or a mapping with
    ``accounts`` (a list) and/or ``accounts_file`` (a path relative to the
    watchlist). A username listed under several tags keeps its first tag.
    """
    if not path.exists():
        logger.warning("Watchlist not found: %s", path)
        return {}

    with open(path) as fh:
        cfg: Any = yaml.safe_load(fh) or {}
    if not isinstance(cfg, dict):
        logger.warning("Watchlist %s must be a mapping, got %s", path, type(cfg).__name__)
        return {}

    base_dir = path.resolve().parent
    seen: dict[str, str] = {}
    watchlist: dict[str, list[str]] = {}

    for tag, entry in (cfg.get("tags") or {}).items():
        if tag not in STREAM_RULE_TAGS:
            logger.warning("Skipping unknown tag '%s' (expected one of %s)", tag, ", ".join(STREAM_RULE_TAGS))
            continue

        if isinstance(entry, dict):
            handles = [_clean_handle(h) for h in entry.get("accounts") or []]
            accounts_file: str | None = entry.get("accounts_file")
            if accounts_file:
                handles.extend(_load_lines(base_dir / accounts_file))
        else:
            handles = [_clean_handle(h) for h in entry or []]

        usernames: list[str] = []
        for handle in handles:
            if not handle:
                continue
            key = handle.lower()
            if key in seen:
                logger.warning("@%s already listed under '%s'; ignoring it under '%s'", handle, seen[key], tag)
                continue
            seen[key] = tag
            usernames.append(handle)

        if usernames:
            watchlist[tag] = usernames
            logger.debug("Watchlist [%s]: %s", tag, ", ".join(usernames))

    return watchlist


def sync_watchlist(client: XClient, watchlist: dict[str, list[str]]) -> Result[dict[str, int]]:
    """Add a stream rule for every watchlist user not already tracked.

    Returns counts keyed ``added``, ``skipped`` (already tracked) and
    ``failed``. Only the initial rule listing failing is an ``Err``.
    """
    listed = client.list_rules()
    if isinstance(listed, Err):
        return listed
    existing = {rule.value for rule in listed.value}

    counts = {"added": 0, "skipped": 0, "failed": 0}
    for tag, usernames in watchlist.items():
        for username in usernames:
            user_id = client.get_user_id(username)
            if isinstance(user_id, Err):
                logger.warning("Could not resolve @%s: %s", username, describe_error(user_id.error))
                counts["failed"] += 1
                continue

            rule = NewStreamRule.for_user(user_id.value, tag)  # type: ignore[arg-type]
            if rule.value in existing:
                counts["skipped"] += 1
                continue

            added = client.add_rule(rule)
            if isinstance(added, Err):
                logger.warning("Could not track @%s: %s", username, describe_error(added.error))
                counts["failed"] += 1
                continue
            existing.add(rule.value)
            counts["added"] += 1

    logger.info(
        "Watchlist sync: %d added, %d already tracked, %d failed",
        counts["added"], counts["skipped"], counts["failed"],
    )
    return Ok(counts)
