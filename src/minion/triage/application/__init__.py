"""
Triage Application Layer
=========================

Application layer for support request triage.

Contains:
- Services: Analyzer orchestration and collaborator interfaces
- DTOs: Data transfer objects for API serialization
"""

from minion.triage.application.dto import (
    AnalyzeRequest,
    AnalyzeResponse,
    CommunityPost,
    CommunityWebhook,
    CommunityReplyResponse,
)
from minion.triage.application.services import (
    Analyzer,
    ITicketLookup,
    IProductCatalog,
)

__all__ = [
    # DTOs
    "AnalyzeRequest",
    "AnalyzeResponse",
    "CommunityPost",
    "CommunityWebhook",
    "CommunityReplyResponse",
    # Services
    "Analyzer",
    # Collaborator Interfaces
    "ITicketLookup",
    "IProductCatalog",
]
