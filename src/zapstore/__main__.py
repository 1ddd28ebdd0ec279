"""CLI entry point for the zapstore client.

Runs one catalog, social or zap operation and prints the result as JSON.

Examples:
    ```bash
    python -m zapstore apps --search wallet --limit 5
    python -m zapstore app naddr1...
    python -m zapstore comments naddr1... --log-level DEBUG
    PRIVATE_KEY=nsec1... python -m zapstore zap naddr1... --amount 21 --comment "thanks"
    ```
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from zapstore.core.config import ClientConfig
from zapstore.core.exceptions import ZapstoreError
from zapstore.core.logger import Logger, StructuredFormatter
from zapstore.services import (
    ClientContext,
    ZapOrchestrator,
    fetch_app_and_file_zaps,
    fetch_app_by_slug,
    fetch_app_comments,
    fetch_app_stacks,
    fetch_app_version,
    fetch_apps,
    fetch_latest_release,
    fetch_profile,
    fetch_stack_apps,
)
from zapstore.utils.keys import ENV_PRIVATE_KEY, KeysSigner


DEFAULT_CONFIG = Path("config") / "zapstore.yaml"

logger = Logger("cli")


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


def _print(value: Any) -> None:
    print(json.dumps(_jsonable(value), indent=2, ensure_ascii=False))


# =============================================================================
# Commands
# =============================================================================


async def _require_app(ctx: ClientContext, slug: str) -> Any:
    app = await fetch_app_by_slug(ctx, slug)
    if app is None:
        raise ZapstoreError(f"App not found: {slug}")
    return app


async def cmd_apps(ctx: ClientContext, args: argparse.Namespace) -> Any:
    return await fetch_apps(
        ctx,
        limit=args.limit,
        authors=args.author or None,
        search=args.search,
        until=args.until,
    )


async def cmd_app(ctx: ClientContext, args: argparse.Namespace) -> Any:
    return await _require_app(ctx, args.slug)


async def cmd_stacks(ctx: ClientContext, args: argparse.Namespace) -> Any:
    stacks = await fetch_app_stacks(ctx, limit=args.limit, authors=args.author or None)
    if args.resolve:
        stacks = list(await asyncio.gather(*(fetch_stack_apps(ctx, s) for s in stacks)))
    return stacks


async def cmd_release(ctx: ClientContext, args: argparse.Namespace) -> Any:
    app = await _require_app(ctx, args.slug)
    release = await fetch_latest_release(ctx, app, skip_cache=True)
    return {
        "release": release.to_dict() if release else None,
        "version": await fetch_app_version(ctx, app),
    }


async def cmd_zaps(ctx: ClientContext, args: argparse.Namespace) -> Any:
    app = await _require_app(ctx, args.slug)
    release = await fetch_latest_release(ctx, app)
    file_ids = release.event_refs if release else ()
    return await fetch_app_and_file_zaps(ctx, app.id, app.pubkey, app.d_tag, file_ids)


async def cmd_comments(ctx: ClientContext, args: argparse.Namespace) -> Any:
    app = await _require_app(ctx, args.slug)
    return await fetch_app_comments(ctx, app.pubkey, app.d_tag, limit=args.limit)


async def cmd_profile(ctx: ClientContext, args: argparse.Namespace) -> Any:
    profile = await fetch_profile(ctx, args.pubkey)
    if profile is None:
        raise ZapstoreError(f"Profile not found: {args.pubkey}")
    return profile


async def cmd_zap(ctx: ClientContext, args: argparse.Namespace) -> Any:
    ctx.signer = KeysSigner.from_env(args.keys_env)
    app = await _require_app(ctx, args.slug)
    session = await ZapOrchestrator(ctx).start(app, args.amount, args.comment)
    _print(
        {
            "invoice": session.invoice.invoice,
            "amount_sats": session.amount_sats,
            "zap_request_id": session.zap_request.id,
        }
    )
    if args.no_wait:
        session.watch.cancel()
        return None
    logger.info("waiting_for_receipt", request_id=session.zap_request.id)
    receipt = await session.watch.wait()
    return {"state": session.watch.state, "receipt": receipt.to_dict() if receipt else None}


COMMANDS: dict[str, Callable[[ClientContext, argparse.Namespace], Awaitable[Any]]] = {
    "apps": cmd_apps,
    "app": cmd_app,
    "stacks": cmd_stacks,
    "release": cmd_release,
    "zaps": cmd_zaps,
    "comments": cmd_comments,
    "profile": cmd_profile,
    "zap": cmd_zap,
}


# =============================================================================
# Entry point
# =============================================================================


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="zapstore", description="zapstore Nostr app catalog")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Client config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    apps = sub.add_parser("apps", help="List app listings")
    apps.add_argument("--limit", type=int, default=None)
    apps.add_argument("--search", default=None)
    apps.add_argument("--author", action="append", help="Publisher pubkey (repeatable)")
    apps.add_argument("--until", type=int, default=None, help="Page before this timestamp")

    app = sub.add_parser("app", help="Show one app")
    app.add_argument("slug", help="naddr or <npub>-<d_tag>")

    stacks = sub.add_parser("stacks", help="List app stacks")
    stacks.add_argument("--limit", type=int, default=None)
    stacks.add_argument("--author", action="append", help="Curator pubkey (repeatable)")
    stacks.add_argument("--resolve", action="store_true", help="Fetch the apps of each stack")

    for name, help_text in (
        ("release", "Latest release and version of an app"),
        ("zaps", "Zap receipts of an app and its files"),
    ):
        sub.add_parser(name, help=help_text).add_argument("slug")

    comments = sub.add_parser("comments", help="Comments on an app")
    comments.add_argument("slug")
    comments.add_argument("--limit", type=int, default=None)

    profile = sub.add_parser("profile", help="Show a profile")
    profile.add_argument("pubkey", help="Hex public key")

    zap = sub.add_parser("zap", help="Request a zap invoice and wait for its receipt")
    zap.add_argument("slug")
    zap.add_argument("--amount", type=int, required=True, help="Amount in sats")
    zap.add_argument("--comment", default="")
    zap.add_argument(
        "--keys-env",
        default=ENV_PRIVATE_KEY,
        help=f"Environment variable holding the private key (default: {ENV_PRIVATE_KEY})",
    )
    zap.add_argument("--no-wait", action="store_true", help="Print the invoice and exit")

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install a ``StructuredFormatter`` on the root handler, writing to stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def load_config(path: Path) -> ClientConfig:
    """Load *path*, falling back to defaults when the file does not exist."""
    if not path.exists():
        logger.debug("config_not_found", path=str(path))
        return ClientConfig()
    return ClientConfig.from_yaml(path)


async def main(argv: list[str] | None = None) -> int:
    """Parse args, open a client context and run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        async with ClientContext(config) as ctx:
            result = await COMMANDS[args.command](ctx, args)
    except (ZapstoreError, ValueError) as e:
        logger.error(f"{args.command}_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130

    if result is not None:
        _print(result)
    return 0


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
