"""
Per-kind event normalizers.

Each ``parse_*`` function maps one [RawRecord][zapstore.models.record.RawRecord]
to a fresh domain record. All of them are pure, deterministic and total: a
record with malformed tags or content still yields a fully populated object
with fallback values, never an exception.

Field precedence, where a field can come from several places: a non-blank
value in the JSON content, then the tag map, then a default.

Markdown rendering is an external concern. Parsers accept an optional
``render`` callable for the ``*_html`` fields; the default
[render_plain()][zapstore.nips.parsers.render_plain] only escapes HTML and
converts newlines.

See Also:
    [zapstore.nips.tags][]: Tag-map and content helpers.
    [zapstore.models.domain][]: The records produced here.
"""

from __future__ import annotations

import html
from collections.abc import Callable
from typing import TYPE_CHECKING

from zapstore.models.constants import LICENSE_NO_ASSERTION, STACK_DESCRIPTION, EventKind
from zapstore.models.domain import (
    AddressPointer,
    App,
    AppStack,
    Comment,
    FileMetadata,
    Profile,
    Release,
    ZapReceipt,
)

from .nip19 import app_slug, to_npub
from .nip57 import embedded_zap_request, invoice_amount_sats
from .tags import parse_content, pick_str_list, pick_text, to_tag_map


if TYPE_CHECKING:
    from zapstore.models.record import RawRecord


Renderer = Callable[[str], str]


def render_plain(text: str) -> str:
    """Minimal markdown stand-in: escape HTML and turn newlines into ``<br>``."""
    return html.escape(text).replace("\n", "<br>\n")


def normalize_license(value: str) -> str:
    """Collapse the SPDX ``NOASSERTION`` sentinel (any case) to an empty string."""
    return "" if value.strip().upper() == LICENSE_NO_ASSERTION else value


# =============================================================================
# Apps
# =============================================================================


def parse_app(record: RawRecord, render: Renderer = render_plain) -> App:
    """Normalize a kind-32267 app listing."""
    tags = to_tag_map(record)
    content = parse_content(record)
    d_tag = tags.first("d")

    images = tags.get_all("image") or pick_str_list(content.get("images"))
    description = pick_text(
        content.get("description"),
        content.get("about"),
        content.get("summary"),
        record.content,
        default="No description available",
    )

    return App(
        id=record.id,
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        d_tag=d_tag,
        slug=app_slug(record.pubkey, d_tag, record.kind),
        name=pick_text(content.get("name"), tags.first("name"), default="Unknown App"),
        description=description,
        description_html=render(description),
        icon=pick_text(tags.first("icon"), content.get("icon"), content.get("picture")),
        images=images,
        url=pick_text(content.get("url"), content.get("website"), tags.first("url")),
        download_url=pick_text(
            content.get("downloadUrl"), content.get("download"), tags.first("download")
        ),
        repository=pick_text(
            content.get("repository"),
            content.get("repo"),
            content.get("source"),
            tags.first("repository"),
        ),
        category=pick_text(content.get("category"), tags.first("category")),
        license=normalize_license(pick_text(content.get("license"), tags.first("license"))),
        developer=pick_text(
            content.get("developer"),
            content.get("publisher"),
            content.get("author"),
            tags.first("developer"),
        ),
        platform=pick_text(content.get("platform"), tags.first("platform")),
        requirements=pick_text(content.get("requirements"), content.get("systemRequirements")),
        changelog=pick_text(content.get("changelog"), content.get("releaseNotes")),
        price=pick_text(content.get("price"), tags.first("price")),
        rating=pick_text(content.get("rating"), tags.first("rating")),
        downloads=pick_text(content.get("downloads"), tags.first("downloads")),
        created_at=record.created_at,
        event=record,
    )


# =============================================================================
# Releases and files
# =============================================================================


def parse_release(record: RawRecord, render: Renderer = render_plain) -> Release:
    """Normalize a kind-30063 release. The content is the release notes."""
    tags = to_tag_map(record)
    return Release(
        id=record.id,
        kind=record.kind,
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        d_tag=tags.first("d"),
        url=tags.first("url"),
        address_refs=tags.get_all("a"),
        event_refs=tags.get_all("e"),
        notes=record.content,
        notes_html=render(record.content),
        created_at=record.created_at,
        event=record,
    )


def parse_file_metadata(record: RawRecord) -> FileMetadata:
    tags = to_tag_map(record)
    return FileMetadata(
        id=record.id,
        kind=record.kind,
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        url=tags.first("url"),
        mime_type=tags.first("m"),
        hash=tags.first("x"),
        size=tags.first("size"),
        version=tags.first("version"),
        created_at=record.created_at,
        event=record,
    )


# =============================================================================
# Zaps
# =============================================================================


def parse_zap_receipt(record: RawRecord) -> ZapReceipt:
    """Normalize a kind-9735 zap receipt.

    The amount is decoded from the ``bolt11`` tag. The sender and the zap
    comment come from the zap request embedded in the ``description`` tag;
    both are empty when that JSON is missing or malformed.
    """
    tags = to_tag_map(record)
    request = embedded_zap_request(tags)
    invoice = tags.first("bolt11")
    sender = pick_text(request.get("pubkey"))
    return ZapReceipt(
        id=record.id,
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        amount_sats=invoice_amount_sats(invoice),
        invoice=invoice,
        preimage=tags.first("preimage"),
        description=pick_text(request.get("content")),
        sender_pubkey=sender,
        sender_npub=to_npub(sender) if sender else "",
        created_at=record.created_at,
        event=record,
    )


# =============================================================================
# Comments
# =============================================================================


def parse_comment(record: RawRecord, render: Renderer = render_plain) -> Comment:
    """Normalize a kind-1111 comment.

    Uppercase ``A``/``K``/``P`` tags reference the thread root, lowercase
    ``a``/``e``/``k``/``p`` tags the direct parent. A comment whose parent
    kind is itself a comment is a reply.
    """
    tags = to_tag_map(record)
    parent_kind = tags.first("k")
    return Comment(
        id=record.id,
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        content=record.content,
        content_html=render(record.content),
        root_address=tags.first("A"),
        root_kind=tags.first("K"),
        root_author=tags.first("P"),
        thread_version=tags.first("v"),
        parent_address=tags.first("a"),
        parent_id=tags.first("e"),
        parent_kind=parent_kind,
        parent_author=tags.first("p"),
        is_reply=parent_kind == str(EventKind.COMMENT.value),
        created_at=record.created_at,
        event=record,
    )


# =============================================================================
# Stacks and profiles
# =============================================================================


def parse_app_stack(record: RawRecord) -> AppStack:
    """Normalize a kind-30267 app stack.

    Only ``a`` tags that are app coordinates (``32267:...``) become app refs.
    """
    tags = to_tag_map(record)
    refs = []
    for value in tags.get_all("a"):
        pointer = AddressPointer.parse(value)
        if pointer is not None and pointer.kind == EventKind.APP:
            refs.append(pointer)
    return AppStack(
        id=record.id,
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        identifier=tags.first("d"),
        name=record.content or None,
        description=STACK_DESCRIPTION,
        app_refs=tuple(refs),
        created_at=record.created_at,
        event=record,
    )


def parse_profile(record: RawRecord) -> Profile:
    """Normalize a kind-0 profile. ``name`` and ``display_name`` fall back to each other."""
    content = parse_content(record)
    name = pick_text(content.get("name"), content.get("display_name"))
    display_name = pick_text(content.get("display_name"), content.get("displayName"), name)
    return Profile(
        pubkey=record.pubkey,
        npub=to_npub(record.pubkey),
        name=name,
        display_name=display_name,
        picture=pick_text(content.get("picture")),
        about=pick_text(content.get("about")),
        nip05=pick_text(content.get("nip05")),
        lud16=pick_text(content.get("lud16")).strip(),
        lud06=pick_text(content.get("lud06")).strip(),
        created_at=record.created_at,
    )
