import argparse
import asyncio
import logging
import sys
from typing import Sequence

from snippet_vault.config import STORAGE_BACKENDS, VaultSettings
from snippet_vault.errors import PartialTransferFailure, VaultError
from snippet_vault.logging_setup import configure_logging
from snippet_vault.search import RequestTokens
from snippet_vault.session import VaultSession
from snippet_vault.snippet import MANUAL_SOURCE, Snippet, SnippetRepository
from snippet_vault.tier import Tier


logger = logging.getLogger("snippet_vault")

TIER_CHOICES = [tier.value for tier in Tier]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Browse, search and manage saved text snippets"
    )
    parser.add_argument(
        "--backend",
        choices=STORAGE_BACKENDS,
        default=None,
        help="Storage backend (defaults to VAULT_STORAGE_BACKEND or 'file')",
    )
    parser.add_argument(
        "--data-dir",
        dest="data_dir",
        default=None,
        help="Directory for file storage (defaults to VAULT_DATA_DIR or ~/.snippet_vault)",
    )
    parser.add_argument(
        "--redis-url",
        dest="redis_url",
        default=None,
        help="Redis URL for redis storage (defaults to REDIS_URL env variable)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List snippets in a tier, most recent first")
    list_parser.add_argument("--tier", choices=TIER_CHOICES, default=Tier.LOCAL.value)

    search_parser = subparsers.add_parser("search", help="Fuzzy-search snippets across both tiers")
    search_parser.add_argument("query", help="Free-text query")
    search_parser.add_argument(
        "--tier",
        choices=TIER_CHOICES,
        default=Tier.LOCAL.value,
        help="Tier listed instead when the query is blank",
    )
    search_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of results to show (default: 10)",
    )

    add_parser = subparsers.add_parser("add", help="Save a hand-entered snippet")
    add_parser.add_argument("text", help="Snippet text")
    add_parser.add_argument("--tier", choices=TIER_CHOICES, default=Tier.LOCAL.value)

    move_parser = subparsers.add_parser("move", help="Move a snippet to the other tier")
    move_parser.add_argument("id", help="Snippet id")
    move_parser.add_argument("--tier", choices=TIER_CHOICES, required=True, help="Tier holding the snippet")

    delete_parser = subparsers.add_parser("delete", help="Delete a snippet")
    delete_parser.add_argument("id", help="Snippet id")
    delete_parser.add_argument("--tier", choices=TIER_CHOICES, required=True, help="Tier holding the snippet")

    clear_parser = subparsers.add_parser("clear", help="Delete every snippet in a tier")
    clear_parser.add_argument("--tier", choices=TIER_CHOICES, required=True)
    clear_parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    usage_parser = subparsers.add_parser("usage", help="Show storage usage for a tier")
    usage_parser.add_argument("--tier", choices=TIER_CHOICES, default=Tier.LOCAL.value)

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> VaultSettings:
    settings = VaultSettings.from_env()
    if args.backend:
        settings.storage_backend = args.backend
    if args.data_dir:
        settings.data_dir = args.data_dir
    if args.redis_url:
        settings.redis_url = args.redis_url
    if args.verbose:
        settings.log_level = "DEBUG"
    return settings


def format_snippet(snippet: Snippet, tier: Tier) -> str:
    source = "manual entry" if snippet.source == MANUAL_SOURCE else snippet.source
    created = snippet.created_at.strftime("%Y-%m-%d %H:%M")
    return f"[{tier.label}] {snippet.id}  {created}  ({source})\n    {snippet.text}"


def print_tier(repository: SnippetRepository, tier: Tier) -> None:
    snippets = repository.sorted_snippets(tier)
    if not snippets:
        print(f"No {tier.label.lower()} snippets yet.")
        return
    for snippet in snippets:
        print(format_snippet(snippet, tier))


async def run(args: argparse.Namespace, session: VaultSession) -> int:
    repository = session.repository
    await session.open()

    if args.command == "list":
        print_tier(repository, Tier(args.tier))
        return 0

    if args.command == "search":
        if not args.query.strip():
            print_tier(repository, Tier(args.tier))
            return 0
        hits = await session.engine.search(args.query, RequestTokens().issue())
        if not hits:
            print("No matches in local or synced snippets.")
            return 0
        for hit in hits[: max(1, args.limit)]:
            print(f"{hit.score:.3f}  {format_snippet(hit.snippet, hit.tier)}")
        return 0

    if args.command == "add":
        tier = Tier(args.tier)
        snippet = repository.create_snippet(args.text, MANUAL_SOURCE)
        await repository.append(tier, snippet)
        print(f"✅ Saved snippet {snippet.id} to {tier.label.lower()} storage")
        return 0

    if args.command == "move":
        tier = Tier(args.tier)
        snippet = await repository.transfer(tier, args.id, tier.other)
        print(f"✅ Moved snippet {snippet.id} to {tier.other.label.lower()} storage")
        return 0

    if args.command == "delete":
        tier = Tier(args.tier)
        await repository.remove(tier, args.id)
        print(f"✅ Deleted snippet {args.id}")
        return 0

    if args.command == "clear":
        tier = Tier(args.tier)
        if not args.yes:
            answer = input(f"Are you sure you want to delete all {tier.label.lower()} snippets? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Aborted")
                return 1
        await repository.clear(tier)
        print(f"✅ Cleared {tier.label.lower()} storage")
        return 0

    if args.command == "usage":
        usage = await repository.storage_usage(Tier(args.tier))
        print(f"{usage.tier.label} storage: {usage.used_kb:.2f} KB of {usage.limit_kb:.2f} KB")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def run_session(args: argparse.Namespace, settings: VaultSettings) -> int:
    session = VaultSession.from_settings(settings)
    try:
        return await run(args, session)
    finally:
        await session.close()


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    settings = build_settings(args)
    configure_logging(settings.log_level)

    try:
        exit_code = asyncio.run(run_session(args, settings))
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted", file=sys.stderr)
        sys.exit(1)
    except PartialTransferFailure as exc:
        print(f"❌ {exc}. Storage may be out of step; re-run to reload both tiers.", file=sys.stderr)
        sys.exit(2)
    except VaultError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception:
        logger.exception("Fatal error while running snippet vault command")
        print("\n❌ Fatal error occurred. See log for details.", file=sys.stderr)
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
