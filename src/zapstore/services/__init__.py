"""Catalog queries, social features and the zap flow.

Services are the top layer of the diamond DAG, depending on
[zapstore.core][zapstore.core], [zapstore.nips][zapstore.nips],
[zapstore.utils][zapstore.utils] and [zapstore.models][zapstore.models].
Every operation takes a [ClientContext][zapstore.services.context.ClientContext]
as its first argument.

```text
aggregator (bounded relay requests)
    -> catalog (apps, stacks, releases, files, profiles)
    -> social (zaps, comments)
    -> zap (endpoint, invoice, receipt correlation)
```

Attributes:
    aggregator: [fetch_all()][zapstore.services.aggregator.fetch_all] and
        [fetch_first()][zapstore.services.aggregator.fetch_first], which
        always return within the deadline.
    catalog: App listings, stacks, releases, file metadata and profiles.
    social: Zap receipts and NIP-22 comments.
    zap: [ZapOrchestrator][zapstore.services.zap.ZapOrchestrator] and the
        handshake steps it drives.
    context: [ClientContext][zapstore.services.context.ClientContext].

Examples:
    ```python
    from zapstore.services import ClientContext, fetch_apps

    async with ClientContext.from_yaml("config/zapstore.yaml") as ctx:
        apps = await fetch_apps(ctx, limit=10)
    ```
"""

from .aggregator import DEFAULT_DEADLINE, TEARDOWN_GRACE, FetchOutcome, fetch_all, fetch_first
from .catalog import (
    fetch_app,
    fetch_app_by_d_tag,
    fetch_app_by_slug,
    fetch_app_stacks,
    fetch_app_version,
    fetch_apps,
    fetch_file_metadata,
    fetch_latest_release,
    fetch_profile,
    fetch_profile_fresh,
    fetch_stack_apps,
    resolve_stack_apps,
)
from .common import dedup_and_sort
from .context import ClientContext
from .social import (
    comment_tags,
    fetch_app_and_file_zaps,
    fetch_app_comments,
    fetch_app_zaps,
    publish_app_comment,
)
from .zap import (
    ReceiptWatch,
    ZapOrchestrator,
    ZapSession,
    ZapState,
    build_zap_request,
    check_amount_bounds,
    request_zap_invoice,
    resolve_zap_endpoint,
    watch_zap_receipt,
)


__all__ = [
    "DEFAULT_DEADLINE",
    "TEARDOWN_GRACE",
    "ClientContext",
    "FetchOutcome",
    "ReceiptWatch",
    "ZapOrchestrator",
    "ZapSession",
    "ZapState",
    "build_zap_request",
    "check_amount_bounds",
    "comment_tags",
    "dedup_and_sort",
    "fetch_all",
    "fetch_app",
    "fetch_app_and_file_zaps",
    "fetch_app_by_d_tag",
    "fetch_app_by_slug",
    "fetch_app_comments",
    "fetch_app_stacks",
    "fetch_app_version",
    "fetch_app_zaps",
    "fetch_apps",
    "fetch_file_metadata",
    "fetch_first",
    "fetch_latest_release",
    "fetch_profile",
    "fetch_profile_fresh",
    "fetch_stack_apps",
    "publish_app_comment",
    "request_zap_invoice",
    "resolve_stack_apps",
    "resolve_zap_endpoint",
    "watch_zap_receipt",
]
