"""CLI entry-point: ``python -m tweetwatch stream`` / ``python -m tweetwatch rules ...``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tweetwatch import config
from tweetwatch.errors import describe_error
from tweetwatch.models import STREAM_RULE_TAGS
from tweetwatch.pipeline import build_client, run_stream, setup_logging
from tweetwatch.result import Err
from tweetwatch.watchlist import load_watchlist, sync_watchlist

logger = logging.getLogger(__name__)


def _rules_command(args: argparse.Namespace) -> int:
    """Run one ``rules`` sub-command; return the process exit code."""
    setup_logging()
    client = build_client()

    if args.rules_command == "list":
        result = client.list_rules()
        if isinstance(result, Err):
            logger.error("%s", describe_error(result.error))
            return 1
        if not result.value:
            print("No stream rules.")
        for rule in result.value:
            print(f"{rule.id}\t{rule.tag}\t{rule.value}")
        return 0

    if args.rules_command == "add":
        result = client.track_user(args.username, args.tag)
    elif args.rules_command == "remove":
        result = client.untrack_user(args.username)
    else:
        watchlist = load_watchlist(args.file)
        if not watchlist:
            logger.error("No accounts loaded from %s; nothing to do.", args.file)
            return 1
        result = sync_watchlist(client, watchlist)

    if isinstance(result, Err):
        logger.error("%s", describe_error(result.error))
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="tweetwatch",
        description="Follow tracked X accounts through the filtered stream.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── stream ─────────────────────────────────────────────────────────
    sub.add_parser("stream", help="Connect to the filtered stream and log tweets.")

    # ── rules ──────────────────────────────────────────────────────────
    rules_parser = sub.add_parser("rules", help="Manage filtered-stream rules.")
    rules_sub = rules_parser.add_subparsers(dest="rules_command")

    rules_sub.add_parser("list", help="Show the current stream rules.")

    add_parser = rules_sub.add_parser("add", help="Track a user's tweets.")
    add_parser.add_argument("username", help="X username, with or without '@'.")
    add_parser.add_argument(
        "--tag",
        choices=STREAM_RULE_TAGS,
        required=True,
        help="Category tag stored on the rule.",
    )

    remove_parser = rules_sub.add_parser("remove", help="Stop tracking a user.")
    remove_parser.add_argument("username", help="X username, with or without '@'.")

    sync_parser = rules_sub.add_parser(
        "sync",
        help="Track every account listed in the watchlist file.",
    )
    sync_parser.add_argument(
        "--file",
        type=Path,
        default=config.WATCHLIST_PATH,
        help=f"Watchlist YAML (default: {config.WATCHLIST_PATH}).",
    )

    args = parser.parse_args(argv)

    if args.command == "stream":
        sys.exit(run_stream())
    elif args.command == "rules" and args.rules_command:
        sys.exit(_rules_command(args))
    elif args.command == "rules":
        rules_parser.print_help()
        sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
