"""
Triage Domain Layer
===================

Domain layer for support request triage.

Contains:
- Entities: SupportRequest, Guidance, TicketResult
- Extraction: pure text-to-fact functions (versions, products, signatures)

This layer is framework-agnostic and contains pure business logic.
"""

from minion.triage.domain.entities import (
    SupportRequest,
    Guidance,
    GuidanceMessages,
    TicketResult,
    Response,
)
from minion.triage.domain.extraction import (
    get_versions,
    get_error_messages,
    match_products,
    pick_version,
    collect_stack_lines,
    select_signatures,
    is_anchor,
    PRODUCT_FRAME_MARKER,
)

__all__ = [
    "SupportRequest",
    "Guidance",
    "GuidanceMessages",
    "TicketResult",
    "Response",
    "get_versions",
    "get_error_messages",
    "match_products",
    "pick_version",
    "collect_stack_lines",
    "select_signatures",
    "is_anchor",
    "PRODUCT_FRAME_MARKER",
]
