"""Zap service package.

Re-exports all public symbols::

    from zapstore.services.zap import ZapOrchestrator, ZapState
"""

from .service import ZapOrchestrator, ZapSession
from .utils import (
    build_zap_request,
    check_amount_bounds,
    request_zap_invoice,
    resolve_zap_endpoint,
)
from .watch import ReceiptWatch, ZapState, receipt_filters, watch_zap_receipt


__all__ = [
    "ReceiptWatch",
    "ZapOrchestrator",
    "ZapSession",
    "ZapState",
    "build_zap_request",
    "check_amount_bounds",
    "receipt_filters",
    "request_zap_invoice",
    "resolve_zap_endpoint",
    "watch_zap_receipt",
]
