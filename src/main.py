# src/main.py — v3
"""CLI entry point — load, cache-key, cleanup commands.

Usage:
    recordloader load <ref> [<ref> ...] [--user-id ID] [--context NAME]
    recordloader cache-key <id> [--source S] [--user-id ID] [--policy NAME]
    recordloader cleanup --user-id ID
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from recordloader.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="recordloader",
        description=f"recordloader v{__version__} - record resolution and caching",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- load ---
    p_load = subparsers.add_parser(
        "load", help="Resolve records and print them as JSON lines",
    )
    p_load.add_argument(
        "refs", nargs="+", help="References as source|id (bare ids use the default source)",
    )
    p_load.add_argument("--user-id", default=None, help="User for user-scoped cache keys")
    p_load.add_argument("--context", default=None, help="Cache context (Default, Favorite, Disabled)")
    p_load.set_defaults(func=_cmd_load)

    # --- cache-key ---
    p_key = subparsers.add_parser(
        "cache-key", help="Print the cache key for a record under a policy",
    )
    p_key.add_argument("record_id", help="Record identifier")
    p_key.add_argument("--source", default=None, help="Record source (default: configured default)")
    p_key.add_argument("--user-id", default=None, help="User id")
    p_key.add_argument("--policy", default="default", help="Policy name (default: default)")
    p_key.set_defaults(func=_cmd_cache_key)

    # --- cleanup ---
    p_cleanup = subparsers.add_parser(
        "cleanup", help="Delete all cached records owned by a user",
    )
    p_cleanup.add_argument("--user-id", required=True, help="User whose cache rows are removed")
    p_cleanup.set_defaults(func=_cmd_cleanup)

    return parser


async def _cmd_load(args: argparse.Namespace) -> int:
    """Resolve references and print one JSON object per record."""
    import httpx

    from recordloader.api.facade import create_record_service
    from recordloader.config.settings import Settings

    settings = Settings()
    async with httpx.AsyncClient(timeout=settings.retrieval_timeout_s) as client:
        service = create_record_service(settings, http_client=client)
        if args.context:
            service.set_cache_context(args.context)
        records = await service.load_batch(args.refs, user_id=args.user_id)

    missing = 0
    for ref, record in zip(args.refs, records):
        missing += record.is_missing
        print(json.dumps({
            "ref": ref,
            "driver": record.driver,
            "source": record.source,
            "id": record.unique_id,
            "title": record.title,
            "cached": bool(record.extra_details.get("cached_record")),
        }))
    logger.info("Resolved %d/%d records", len(records) - missing, len(records))
    return 0 if missing == 0 else 2


async def _cmd_cache_key(args: argparse.Namespace) -> int:
    """Print the cache key for the given components."""
    from recordloader.cache.keys import compute_cache_key
    from recordloader.cache.policy import CachePolicy
    from recordloader.config.settings import Settings

    settings = Settings()
    flags = settings.record_cache_policies.get(args.policy)
    if flags is None:
        logger.error("Unknown policy: %s", args.policy)
        return 1
    key = compute_cache_key(
        args.record_id,
        args.source or settings.default_source,
        args.user_id,
        CachePolicy.parse(flags),
        settings.source_aliases,
    )
    print(key)
    return 0


async def _cmd_cleanup(args: argparse.Namespace) -> int:
    """Remove a user's cached records."""
    from recordloader.cache.cache_factory import create_record_store
    from recordloader.config.settings import Settings

    store = create_record_store(Settings())
    try:
        removed = await store.delete_by_user_id(args.user_id)
    finally:
        store.close()
    print(f"{removed} records deleted.")
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from recordloader.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
