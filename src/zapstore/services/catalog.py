"""App catalog queries: listings, stacks, releases, file metadata and profiles.

Every query takes the [ClientContext][zapstore.services.context.ClientContext]
first, runs through the bounded aggregator against the relay set configured
for its purpose, deduplicates and sorts what came back, normalizes it, and
stores the result in the context cache namespaced by event kind.

Relay silence and transport failures never raise here: a query that heard
nothing returns an empty list or ``None``.

Examples:
    ```python
    async with ClientContext() as ctx:
        apps = await fetch_apps(ctx, search="wallet")
        release = await fetch_latest_release(ctx, apps[0])
    ```

See Also:
    [fetch_all()][zapstore.services.aggregator.fetch_all]: The bounded
        relay request used by every query.
    [zapstore.services.social][]: Zaps and comments for a listing.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from zapstore.core.cache import cache_key
from zapstore.models.constants import EventKind
from zapstore.models.filter import Filter
from zapstore.nips.nip19 import parse_app_slug
from zapstore.nips.parsers import (
    parse_app,
    parse_app_stack,
    parse_file_metadata,
    parse_profile,
    parse_release,
)

from .aggregator import fetch_all, fetch_first
from .common.utils import dedup_and_sort


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from zapstore.models.domain import App, AppStack, FileMetadata, Profile, Release
    from zapstore.models.record import RawRecord

    from .context import ClientContext


def _of_kind(records: Iterable[RawRecord], kind: EventKind) -> list[RawRecord]:
    # Relays occasionally ignore the kinds constraint.
    return dedup_and_sort(r for r in records if r.kind == kind)


# =============================================================================
# Apps
# =============================================================================


async def fetch_apps(
    ctx: ClientContext,
    *,
    limit: int | None = None,
    authors: Sequence[str] | None = None,
    d_tags: Sequence[str] | None = None,
    until: int | None = None,
    search: str | None = None,
) -> list[App]:
    """List app listings for the configured platform, newest first.

    Args:
        ctx: Client context.
        limit: Maximum listings to request. Defaults to ``catalog.apps_limit``.
        authors: Restrict to these publisher public keys.
        d_tags: Restrict to these app identifiers.
        until: Only listings created at or before this timestamp (paging).
        search: NIP-50 full-text query; blank queries are dropped.

    Returns:
        Normalized apps with unique ids, sorted by ``created_at`` descending.
    """
    catalog = ctx.config.catalog
    tags: dict[str, tuple[str, ...]] = {"f": (catalog.platform,)}
    if d_tags:
        tags["d"] = tuple(d_tags)
    query = search.strip() if search else ""

    event_filter = Filter(
        kinds=(EventKind.APP,),
        authors=tuple(authors) if authors else None,
        tags=tags,
        until=until,
        limit=limit if limit is not None else catalog.apps_limit,
        search=query or None,
    )
    records = await fetch_all(
        ctx.transport, ctx.config.relays.app, event_filter, ctx.config.timeouts.request
    )

    apps = [parse_app(record, ctx.render) for record in _of_kind(records, EventKind.APP)]
    for app in apps:
        await ctx.cache.set(EventKind.APP, cache_key(app.pubkey, app.d_tag), app)
    ctx.get_logger("catalog").debug("apps_fetched", count=len(apps), search=query or None)
    return apps


async def fetch_app(
    ctx: ClientContext, pubkey: str, d_tag: str, *, use_cache: bool = True
) -> App | None:
    """Fetch one listing by coordinate, cache first.

    The newest version of the addressable listing wins when relays disagree.
    """
    key = cache_key(pubkey, d_tag)
    if use_cache:
        cached = await ctx.cache.get(EventKind.APP, key)
        if cached is not None:
            return cached

    event_filter = Filter(
        kinds=(EventKind.APP,), authors=(pubkey,), tags={"d": (d_tag,)}, limit=1
    )
    records = _of_kind(
        await fetch_all(
            ctx.transport, ctx.config.relays.app, event_filter, ctx.config.timeouts.request
        ),
        EventKind.APP,
    )
    if not records:
        return None
    app = parse_app(records[0], ctx.render)
    await ctx.cache.set(EventKind.APP, key, app)
    return app


async def fetch_app_by_d_tag(ctx: ClientContext, d_tag: str) -> App | None:
    """Fetch the first listing any publisher made under *d_tag*."""
    event_filter = Filter(kinds=(EventKind.APP,), tags={"d": (d_tag,)}, limit=1)
    record = await fetch_first(
        ctx.transport, ctx.config.relays.app, event_filter, ctx.config.timeouts.request
    )
    if record is None or record.kind != EventKind.APP:
        return None
    app = parse_app(record, ctx.render)
    await ctx.cache.set(EventKind.APP, cache_key(app.pubkey, app.d_tag), app)
    return app


async def fetch_app_by_slug(ctx: ClientContext, slug: str) -> App | None:
    """Fetch a listing from its ``naddr`` or ``<npub>-<d_tag>`` slug.

    Raises:
        ValueError: If the slug cannot be decoded.
    """
    pubkey, d_tag = parse_app_slug(slug)
    return await fetch_app(ctx, pubkey, d_tag)


# =============================================================================
# Stacks
# =============================================================================


async def fetch_app_stacks(
    ctx: ClientContext,
    *,
    limit: int | None = None,
    authors: Sequence[str] | None = None,
) -> list[AppStack]:
    """List curated app stacks, newest first. Stack apps are left unresolved."""
    event_filter = Filter(
        kinds=(EventKind.APP_STACK,),
        authors=tuple(authors) if authors else None,
        limit=limit if limit is not None else ctx.config.catalog.stacks_limit,
    )
    records = await fetch_all(
        ctx.transport, ctx.config.relays.app, event_filter, ctx.config.timeouts.request
    )
    return [parse_app_stack(r) for r in _of_kind(records, EventKind.APP_STACK)]


def resolve_stack_apps(stack: AppStack, apps: Iterable[App]) -> AppStack:
    """Attach the listings a stack references, in reference order.

    References with no matching listing in *apps* are skipped.
    """
    by_address = {(app.pubkey, app.d_tag): app for app in apps}
    resolved = tuple(
        by_address[(ref.pubkey, ref.identifier)]
        for ref in stack.app_refs
        if (ref.pubkey, ref.identifier) in by_address
    )
    return dataclasses.replace(stack, apps=resolved)


async def fetch_stack_apps(ctx: ClientContext, stack: AppStack) -> AppStack:
    """Fetch the listings a stack references and attach them."""
    if not stack.app_refs:
        return stack
    authors = tuple(dict.fromkeys(ref.pubkey for ref in stack.app_refs))
    d_tags = tuple(dict.fromkeys(ref.identifier for ref in stack.app_refs))
    apps = await fetch_apps(ctx, authors=authors, d_tags=d_tags, limit=len(stack.app_refs))
    return resolve_stack_apps(stack, apps)


# =============================================================================
# Releases and files
# =============================================================================


async def fetch_latest_release(
    ctx: ClientContext, app: App, *, skip_cache: bool = False
) -> Release | None:
    """Newest release the publisher made for *app*.

    Args:
        ctx: Client context.
        app: The listing; its coordinate selects releases via ``#a``.
        skip_cache: Ignore a cached release and refresh it.
    """
    key = cache_key(app.pubkey, app.d_tag)
    if not skip_cache:
        cached = await ctx.cache.get(EventKind.RELEASE, key)
        if cached is not None:
            return cached

    event_filter = Filter(
        kinds=(EventKind.RELEASE,),
        authors=(app.pubkey,),
        tags={"a": (str(app.address),)},
        limit=5,
    )
    records = _of_kind(
        await fetch_all(
            ctx.transport, ctx.config.relays.app, event_filter, ctx.config.timeouts.request
        ),
        EventKind.RELEASE,
    )
    if not records:
        return None
    release = parse_release(records[0], ctx.render)
    await ctx.cache.set(EventKind.RELEASE, key, release)
    return release


async def fetch_file_metadata(ctx: ClientContext, ids: Sequence[str]) -> list[FileMetadata]:
    """File metadata for the given event ids.

    Cached entries come first, in *ids* order; only the misses are requested
    from relays.
    """
    results: list[FileMetadata] = []
    missing: list[str] = []
    for event_id in dict.fromkeys(ids):
        cached = await ctx.cache.get(EventKind.FILE_METADATA, event_id)
        if cached is not None:
            results.append(cached)
        else:
            missing.append(event_id)
    if not missing:
        return results

    event_filter = Filter(kinds=(EventKind.FILE_METADATA,), ids=tuple(missing))
    records = await fetch_all(
        ctx.transport, ctx.config.relays.app, event_filter, ctx.config.timeouts.request
    )
    wanted = set(missing)
    for record in _of_kind(records, EventKind.FILE_METADATA):
        if record.id not in wanted:
            continue
        metadata = parse_file_metadata(record)
        await ctx.cache.set(EventKind.FILE_METADATA, record.id, metadata)
        results.append(metadata)
    return results


async def fetch_app_version(ctx: ClientContext, app: App) -> str | None:
    """Version string of the latest release's files, if any declares one."""
    release = await fetch_latest_release(ctx, app)
    if release is None or not release.event_refs:
        return None
    for metadata in await fetch_file_metadata(ctx, release.event_refs):
        if metadata.version.strip():
            return metadata.version
    return None


# =============================================================================
# Profiles
# =============================================================================


async def _fetch_profile(ctx: ClientContext, pubkey: str) -> Profile | None:
    event_filter = Filter(kinds=(EventKind.PROFILE,), authors=(pubkey,), limit=1)
    records = _of_kind(
        await fetch_all(
            ctx.transport, ctx.config.relays.profile, event_filter, ctx.config.timeouts.request
        ),
        EventKind.PROFILE,
    )
    if not records:
        return None
    profile = parse_profile(records[0])
    await ctx.cache.set(EventKind.PROFILE, pubkey, profile)
    return profile


async def fetch_profile(ctx: ClientContext, pubkey: str) -> Profile | None:
    """Kind-0 profile of *pubkey*, cache first."""
    cached = await ctx.cache.get(EventKind.PROFILE, pubkey)
    if cached is not None:
        return cached
    return await _fetch_profile(ctx, pubkey)


async def fetch_profile_fresh(ctx: ClientContext, pubkey: str) -> Profile | None:
    """Kind-0 profile of *pubkey* straight from relays; refreshes the cache.

    Used where a stale Lightning address would misdirect a payment.
    """
    return await _fetch_profile(ctx, pubkey)
