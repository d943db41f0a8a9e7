"""
Triage Infrastructure Layer
============================

Infrastructure implementations for support request triage.

Contains:
- Jira: ticket lookup and product catalog over the Jira REST API
- Catalog: caching, scheduled refresh and file-based catalog
- Community: Discourse reply client
"""

from minion.triage.infrastructure.jira import (
    JiraClient,
    JiraTicketLookup,
    JiraProductCatalog,
    build_text_query,
    escape_jql_text,
)
from minion.triage.infrastructure.catalog import (
    CachedProductCatalog,
    CatalogRefreshScheduler,
    FileProductCatalog,
)
from minion.triage.infrastructure.community import CommunityClient

__all__ = [
    "JiraClient",
    "JiraTicketLookup",
    "JiraProductCatalog",
    "build_text_query",
    "escape_jql_text",
    "CachedProductCatalog",
    "CatalogRefreshScheduler",
    "FileProductCatalog",
    "CommunityClient",
]
