"""Social layer of a listing: zap receipts and threaded comments.

Reads go through the bounded aggregator and never raise on relay trouble.
[publish_app_comment()][zapstore.services.social.publish_app_comment] is
the one write: it validates input, signs through the context signer and
publishes to the comment relays.

See Also:
    [zapstore.services.zap][]: Sending a zap and waiting for its receipt.
    [parse_comment()][zapstore.nips.parsers.parse_comment]: Root versus
        parent tag semantics.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from zapstore.core.cache import cache_key
from zapstore.core.exceptions import PublishingError, TransportError, ValidationError
from zapstore.models.constants import APP_RELAY, EventKind
from zapstore.models.domain import AddressPointer, ZapSummary
from zapstore.models.filter import Filter
from zapstore.models.record import UnsignedRecord
from zapstore.nips.parsers import parse_comment, parse_zap_receipt
from zapstore.nips.tags import to_tag_map

from .aggregator import fetch_all
from .common.utils import dedup_and_sort


if TYPE_CHECKING:
    from collections.abc import Sequence

    from zapstore.models.domain import App, Comment, ZapReceipt
    from zapstore.models.record import RawRecord
    from zapstore.utils.keys import Signer

    from .context import ClientContext


def _app_address(pubkey: str, app_id: str) -> str:
    return str(AddressPointer(kind=EventKind.APP, pubkey=pubkey, identifier=app_id))


# =============================================================================
# Zaps
# =============================================================================


async def fetch_app_zaps(ctx: ClientContext, pubkey: str, app_id: str) -> list[ZapReceipt]:
    """Receipts tagged with the app coordinate, newest first."""
    event_filter = Filter(
        kinds=(EventKind.ZAP_RECEIPT,),
        tags={"a": (_app_address(pubkey, app_id),)},
        limit=100,
    )
    records = await fetch_all(
        ctx.transport, ctx.config.relays.social, event_filter, ctx.config.timeouts.request
    )
    return [
        parse_zap_receipt(r) for r in dedup_and_sort(records) if r.kind == EventKind.ZAP_RECEIPT
    ]


async def fetch_app_and_file_zaps(
    ctx: ClientContext,
    app_event_id: str,
    pubkey: str,
    app_id: str,
    file_event_ids: Sequence[str] = (),
    *,
    skip_cache: bool = False,
) -> ZapSummary:
    """Receipts for a listing and its release files, with the total amount.

    Asks for every receipt addressed to the publisher, then keeps those that
    reference the app coordinate or one of the app and file event ids.

    Returns:
        Unique receipts newest first and their summed ``amount_sats``. The
        summary is cached under the app event id, or ``pubkey:app_id`` when
        the id is unknown.
    """
    key = app_event_id or cache_key(pubkey, app_id)
    if not skip_cache:
        cached = await ctx.cache.get(EventKind.ZAP_RECEIPT, key)
        if cached is not None:
            return cached

    address = _app_address(pubkey, app_id)
    event_ids = {i for i in (app_event_id, *file_event_ids) if i}

    event_filter = Filter(kinds=(EventKind.ZAP_RECEIPT,), tags={"p": (pubkey,)}, limit=200)
    records = await fetch_all(
        ctx.transport, ctx.config.relays.social, event_filter, ctx.config.timeouts.request
    )

    relevant: list[RawRecord] = []
    for record in records:
        if record.kind != EventKind.ZAP_RECEIPT:
            continue
        tags = to_tag_map(record)
        if address in tags.get_all("a") or event_ids.intersection(tags.get_all("e")):
            relevant.append(record)

    zaps = tuple(parse_zap_receipt(r) for r in dedup_and_sort(relevant))
    summary = ZapSummary(zaps=zaps, total_sats=sum(z.amount_sats for z in zaps))

    await ctx.cache.set(EventKind.ZAP_RECEIPT, key, summary)
    ctx.get_logger("social").debug(
        "zaps_fetched", count=summary.count, total_sats=summary.total_sats, fetched=len(records)
    )
    return summary


# =============================================================================
# Comments
# =============================================================================


async def fetch_app_comments(
    ctx: ClientContext,
    pubkey: str,
    app_id: str,
    limit: int | None = None,
    *,
    skip_cache: bool = False,
) -> list[Comment]:
    """Comments on a listing, newest first, cache first.

    Queries the root reference (``#A``) first and falls back to the parent
    reference (``#a``) when nothing came back, covering clients that only
    tag the direct parent.
    """
    if not pubkey or not app_id:
        return []
    key = cache_key(pubkey, app_id)
    if not skip_cache:
        cached = await ctx.cache.get(EventKind.COMMENT, key)
        if cached is not None:
            return cached
    address = _app_address(pubkey, app_id)
    limit = limit if limit is not None else ctx.config.catalog.comments_limit
    relays = ctx.config.relays.comment
    deadline = ctx.config.timeouts.comments

    records: list[RawRecord] = []
    for tag_name in ("A", "a"):
        event_filter = Filter(
            kinds=(EventKind.COMMENT,), tags={tag_name: (address,)}, limit=limit
        )
        records = await fetch_all(ctx.transport, relays, event_filter, deadline)
        if records:
            break

    comments = [
        parse_comment(r, ctx.render) for r in dedup_and_sort(records) if r.kind == EventKind.COMMENT
    ]
    await ctx.cache.set(EventKind.COMMENT, key, comments)
    return comments


def comment_tags(app: App, version: str, parent: Comment | None = None) -> list[list[str]]:
    """NIP-22 tags for a comment on *app*, or a reply to *parent*.

    The thread root (``A``/``K``/``P``) is always the listing and ``v`` keys
    the thread to an app version. The lowercase parent tags point at the
    listing for a top-level comment and at *parent* for a reply.
    """
    address = _app_address(app.pubkey, app.d_tag)
    root_kind = str(EventKind.APP.value)
    tags = [
        ["A", address, APP_RELAY],
        ["K", root_kind],
        ["P", app.pubkey, APP_RELAY],
        ["v", version],
    ]
    if parent is not None and parent.id and parent.pubkey:
        tags.append(["e", parent.id, APP_RELAY, parent.pubkey])
        tags.append(["k", str(EventKind.COMMENT.value)])
        tags.append(["p", parent.pubkey, APP_RELAY])
    else:
        tags.append(["a", address, APP_RELAY, app.pubkey])
        if app.id:
            tags.append(["e", app.id, APP_RELAY, app.pubkey])
        tags.append(["k", root_kind])
        tags.append(["p", app.pubkey, APP_RELAY])
    return tags


async def publish_app_comment(
    ctx: ClientContext,
    app: App,
    content: str,
    version: str,
    parent: Comment | None = None,
    signer: Signer | None = None,
) -> RawRecord:
    """Sign and publish a comment on *app*.

    Args:
        ctx: Client context.
        app: The listing commented on.
        content: Comment text; surrounding whitespace is trimmed.
        version: App version the thread is keyed to.
        parent: Comment being replied to, if any.
        signer: Overrides the context signer.

    Returns:
        The signed comment as published.

    Raises:
        ValidationError: On empty content, missing app identity or version.
        SignerUnavailableError: If no signer is available.
        PublishingError: If no relay accepted the comment.
    """
    text = (content or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty.")
    if not app.pubkey or not app.d_tag:
        raise ValidationError("Missing app information for comment.")
    if not version:
        raise ValidationError("Version is required as thread key.")
    resolved_signer = ctx.require_signer(signer)

    unsigned = UnsignedRecord(
        kind=EventKind.COMMENT,
        created_at=int(time.time()),
        tags=comment_tags(app, version, parent),
        content=text,
    )
    record = await resolved_signer.sign_event(unsigned)

    logger = ctx.get_logger("social")
    relays = ctx.config.relays.comment
    try:
        accepted = await ctx.transport.publish(relays, record)
    except TransportError as e:
        raise PublishingError(f"Failed to publish comment: {e}") from e
    if accepted == 0:
        raise PublishingError("No relay accepted the comment.")
    await ctx.cache.delete(EventKind.COMMENT, cache_key(app.pubkey, app.d_tag))
    logger.info("comment_published", id=record.id, accepted=accepted, relays=len(relays))
    return record
