"""
Jira Collaborators
==================

Adapters implementing the triage collaborator interfaces on top of the
Jira REST API v2:

- JiraTicketLookup: error signatures / free text -> issue keys
- JiraProductCatalog: project names -> versions in release order

No retries: a failed call surfaces as CollaboratorUnavailableException.
"""

import re
from typing import Any, Dict, List, Optional, Set

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter, ValidationError

from minion.core import CollaboratorUnavailableException
from minion.shared.infrastructure.logging import get_logger, log_latency
from minion.shared.infrastructure.resilience import CircuitBreaker
from minion.triage.application import ITicketLookup, IProductCatalog

logger = get_logger(__name__)

_LUCENE_SPECIALS = frozenset('+-&|!(){}[]^~*?:/')
_WHITESPACE = re.compile(r"\s+")


# ========== Response payloads ==========

class JiraIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: StrictStr


class JiraSearchPage(BaseModel):
    """One page of /rest/api/2/search."""
    model_config = ConfigDict(extra="ignore")

    issues: List[JiraIssue] = Field(default_factory=list)
    total: int = 0


class JiraProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: StrictStr
    name: StrictStr


class JiraVersion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr


_SEARCH_PAGE = TypeAdapter(JiraSearchPage)
_PROJECTS = TypeAdapter(List[JiraProject])
_VERSIONS = TypeAdapter(List[JiraVersion])


def escape_jql_text(term: str) -> str:
    """
    Escape a term for use inside a quoted JQL ``text ~`` clause.

    Lucene special characters need a backslash, which itself has to be
    doubled inside the JQL string literal.
    """
    escaped = []
    for ch in term:
        if ch == "\\":
            escaped.append("\\\\\\\\")
        elif ch == '"':
            escaped.append('\\\\\\"')
        elif ch in _LUCENE_SPECIALS:
            escaped.append("\\\\" + ch)
        else:
            escaped.append(ch)
    return "".join(escaped)


def build_text_query(text: str) -> Optional[str]:
    """
    JQL full-text query for a signature or free text, None if nothing is left.

    Stack frame signatures lose their leading ``at`` keyword.
    """
    term = _WHITESPACE.sub(" ", text).strip()
    if term.startswith("at "):
        term = term[3:].lstrip()
    if not term:
        return None
    return f'text ~ "{escape_jql_text(term)}" ORDER BY created DESC'


class JiraClient:
    """
    Thin async Jira REST client.

    Wraps httpx errors, non-2xx statuses and undecodable bodies into
    CollaboratorUnavailableException and feeds a circuit breaker.
    """

    SERVICE_NAME = "Jira"

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        max_results: int = 50,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self._base_url = base_url.rstrip("/")
        self._auth = (username, token) if username and token else None
        self._timeout = timeout_seconds
        self._max_results = max_results
        self._transport = transport
        self._circuit_breaker = circuit_breaker or CircuitBreaker(self.SERVICE_NAME)
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"}
            )
        return self._http_client

    async def _get(
        self,
        path: str,
        payload: TypeAdapter,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """GET path and validate the JSON body against payload."""
        if not self._circuit_breaker.allow_request():
            raise CollaboratorUnavailableException(
                self.SERVICE_NAME,
                "circuit open after repeated failures",
                details={"path": path}
            )

        try:
            client = await self._get_client()
            response = await client.get(path, params=params)
            response.raise_for_status()
            data = payload.validate_json(response.content)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            self._circuit_breaker.record_failure()
            raise CollaboratorUnavailableException(
                self.SERVICE_NAME,
                f"GET {path} failed: {e}",
                details={"path": path, "error_type": type(e).__name__}
            )

        self._circuit_breaker.record_success()
        return data

    async def search_issue_keys(self, jql: str) -> Set[str]:
        """Keys of every issue matching jql, fetched page by page."""
        keys: Set[str] = set()
        start_at = 0
        while True:
            page: JiraSearchPage = await self._get(
                "/rest/api/2/search",
                _SEARCH_PAGE,
                params={
                    "jql": jql,
                    "fields": "summary",
                    "startAt": start_at,
                    "maxResults": self._max_results
                }
            )
            keys |= {issue.key for issue in page.issues}
            start_at += len(page.issues)
            if not page.issues or start_at >= page.total:
                return keys

    async def list_projects(self) -> Dict[str, str]:
        """Project name to project key."""
        projects = await self._get("/rest/api/2/project", _PROJECTS)
        return {project.name: project.key for project in projects}

    async def list_project_versions(self, project_key: str) -> List[str]:
        """Version names of a project, in Jira's own ordering (oldest first)."""
        versions = await self._get(f"/rest/api/2/project/{project_key}/versions", _VERSIONS)
        return [version.name for version in versions]

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class JiraTicketLookup(ITicketLookup):
    """Full-text Jira search over error signatures or a user message."""

    def __init__(self, client: JiraClient):
        self._client = client

    async def resolve_signatures(self, error_messages: Set[str]) -> Set[str]:
        """
        Union of the issues matching each signature.

        Signatures are queried one at a time, in sorted order, so the same
        input always issues the same calls.
        """
        keys: Set[str] = set()
        for signature in sorted(error_messages):
            jql = build_text_query(signature)
            if jql is None:
                continue
            with log_latency(logger, "jira_search", mode="signature"):
                keys |= await self._client.search_issue_keys(jql)
        return keys

    async def resolve_text(self, text: str) -> Set[str]:
        jql = build_text_query(text or "")
        if jql is None:
            return set()
        with log_latency(logger, "jira_search", mode="text"):
            return await self._client.search_issue_keys(jql)


class JiraProductCatalog(IProductCatalog):
    """
    Products are Jira projects, named as in Jira.

    list_products always hits Jira and remembers the name to key map;
    list_sorted_versions reuses that map. Wrap it in CachedProductCatalog
    for serving.
    """

    def __init__(self, client: JiraClient):
        self._client = client
        self._project_keys: Optional[Dict[str, str]] = None

    async def _load_projects(self) -> Dict[str, str]:
        with log_latency(logger, "jira_list_projects"):
            self._project_keys = await self._client.list_projects()
        return self._project_keys

    async def list_products(self) -> Set[str]:
        return set(await self._load_projects())

    async def list_sorted_versions(self, product: str) -> List[str]:
        projects = self._project_keys
        if projects is None:
            projects = await self._load_projects()
        project_key = projects.get(product)
        if project_key is None:
            return []
        with log_latency(logger, "jira_list_versions", product=product):
            return await self._client.list_project_versions(project_key)
