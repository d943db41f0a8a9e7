"""
Jira adapter tests against an httpx mock transport.
"""
import httpx
import pytest

from minion.core import CollaboratorUnavailableException
from minion.shared.infrastructure.resilience import CircuitBreaker
from minion.triage.infrastructure import (
    JiraClient,
    JiraProductCatalog,
    JiraTicketLookup,
    build_text_query,
    escape_jql_text,
)

BASE_URL = "https://jira.example.com"

PROJECTS = [
    {"key": "SONAR", "name": "SonarQube"},
    {"key": "SONARCOBOL", "name": "SonarCOBOL"},
]
VERSIONS = {
    "SONAR": [{"name": "7.0"}, {"name": "7.1"}],
    "SONARCOBOL": [{"name": "3.9"}, {"name": "4.0.2"}, {"name": "4.2"}],
}


class FakeJira:
    """Minimal Jira REST API: search results keyed by JQL."""

    def __init__(self, issues_by_jql=None, status_code=200):
        self.issues_by_jql = issues_by_jql or {}
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"errorMessages": ["boom"]})

        path = request.url.path
        if path == "/rest/api/2/search":
            keys = self.issues_by_jql.get(request.url.params["jql"], [])
            return httpx.Response(200, json={"issues": [{"key": k} for k in keys]})
        if path == "/rest/api/2/project":
            return httpx.Response(200, json=PROJECTS)
        if path.startswith("/rest/api/2/project/") and path.endswith("/versions"):
            return httpx.Response(200, json=VERSIONS[path.split("/")[5]])
        return httpx.Response(404)


def make_client(fake, **kwargs) -> JiraClient:
    return JiraClient(BASE_URL, transport=httpx.MockTransport(fake), **kwargs)


class TestQueryBuilding:

    # Lucene specials get an escaped backslash
    def test_escape_specials(self):
        assert escape_jql_text("a(b):c") == r"a\\(b\\)\\:c"

    # Quotes and backslashes are escaped for the JQL literal
    def test_escape_quotes(self):
        assert escape_jql_text('say "hi"') == r'say \\\"hi\\\"'
        assert escape_jql_text("C:\\dir") == r"C\\:\\\\dir"

    # Frames lose the leading "at" keyword
    def test_frame_query(self):
        query = build_text_query("\tat org.sonar.X.y(X.java:44)")
        assert query == r'text ~ "org.sonar.X.y\\(X.java\\:44\\)" ORDER BY created DESC'

    # Whitespace is collapsed
    def test_whitespace(self):
        assert build_text_query("  NPE   on\nanalysis ") == 'text ~ "NPE on analysis" ORDER BY created DESC'

    # Nothing left to search
    def test_empty(self):
        assert build_text_query("   ") is None


class TestJiraTicketLookup:

    # Union of the issues of every signature
    async def test_union(self):
        fake = FakeJira({
            build_text_query("\tat org.sonar.A.a(A.java:1)"): ["SONAR-1", "SONAR-2"],
            build_text_query("\tat org.sonar.B.b(B.java:2)"): ["SONAR-2", "SONAR-3"],
        })
        lookup = JiraTicketLookup(make_client(fake))
        keys = await lookup.resolve_signatures({
            "\tat org.sonar.A.a(A.java:1)",
            "\tat org.sonar.B.b(B.java:2)",
        })
        assert keys == {"SONAR-1", "SONAR-2", "SONAR-3"}
        assert len(fake.requests) == 2

    # Search parameters sent to Jira
    async def test_search_params(self):
        fake = FakeJira()
        lookup = JiraTicketLookup(make_client(fake, max_results=20))
        await lookup.resolve_text("NPE")
        params = fake.requests[0].url.params
        assert params["jql"] == 'text ~ "NPE" ORDER BY created DESC'
        assert params["maxResults"] == "20"

    # Results spanning several pages are all collected
    async def test_paging(self):
        requests = []

        def paged(request):
            requests.append(request)
            start_at = int(request.url.params["startAt"])
            issues = [{"key": f"SONAR-{start_at + i}"} for i in range(2) if start_at + i < 3]
            return httpx.Response(200, json={"startAt": start_at, "total": 3, "issues": issues})

        client = JiraClient(BASE_URL, max_results=2, transport=httpx.MockTransport(paged))
        assert await client.search_issue_keys("text ~ \"NPE\"") == {"SONAR-0", "SONAR-1", "SONAR-2"}
        assert [r.url.params["startAt"] for r in requests] == ["0", "2"]

    # Empty inputs do not reach Jira
    async def test_empty_input(self):
        fake = FakeJira()
        lookup = JiraTicketLookup(make_client(fake))
        assert await lookup.resolve_signatures(set()) == set()
        assert await lookup.resolve_text("") == set()
        assert fake.requests == []

    # Free text search
    async def test_text(self):
        fake = FakeJira({'text ~ "NPE on analysis" ORDER BY created DESC': ["SONAR-7"]})
        lookup = JiraTicketLookup(make_client(fake))
        assert await lookup.resolve_text("NPE on analysis") == {"SONAR-7"}

    # Server errors become unavailability
    async def test_server_error(self):
        lookup = JiraTicketLookup(make_client(FakeJira(status_code=500)))
        with pytest.raises(CollaboratorUnavailableException) as exc_info:
            await lookup.resolve_text("NPE")
        assert exc_info.value.service_name == "Jira"

    # Transport errors too
    async def test_connect_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = JiraClient(BASE_URL, transport=httpx.MockTransport(refuse))
        with pytest.raises(CollaboratorUnavailableException):
            await JiraTicketLookup(client).resolve_text("NPE")

    # Undecodable bodies too
    async def test_invalid_json(self):
        client = JiraClient(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>")))
        with pytest.raises(CollaboratorUnavailableException):
            await JiraTicketLookup(client).resolve_text("NPE")


    # A search page with null issues is a broken response, not a crash
    async def test_null_issues(self):
        breaker = CircuitBreaker("Jira", failure_threshold=1, clock=lambda: 0.0)
        client = JiraClient(
            BASE_URL,
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"issues": None, "total": 1})),
            circuit_breaker=breaker
        )
        with pytest.raises(CollaboratorUnavailableException):
            await JiraTicketLookup(client).resolve_text("NPE")
        assert breaker.state == "open"

    # Issues without a key are rejected the same way
    async def test_issue_without_key(self):
        client = JiraClient(
            BASE_URL,
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"issues": [{"id": "1"}]}))
        )
        with pytest.raises(CollaboratorUnavailableException):
            await JiraTicketLookup(client).resolve_text("NPE")


class TestJiraProductCatalog:

    # An error object instead of the project list
    async def test_project_list_not_a_list(self):
        client = JiraClient(
            BASE_URL,
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"errorMessages": ["x"]}))
        )
        with pytest.raises(CollaboratorUnavailableException):
            await JiraProductCatalog(client).list_products()

    # Version entries without a name
    async def test_versions_wrong_shape(self):
        def handler(request):
            if request.url.path == "/rest/api/2/project":
                return httpx.Response(200, json=PROJECTS)
            return httpx.Response(200, json=[{"id": 3}])

        catalog = JiraProductCatalog(JiraClient(BASE_URL, transport=httpx.MockTransport(handler)))
        with pytest.raises(CollaboratorUnavailableException):
            await catalog.list_sorted_versions("SonarQube")

    # Versions reuse the projects already listed
    async def test_projects_listed_once(self):
        fake = FakeJira()
        catalog = JiraProductCatalog(make_client(fake))
        await catalog.list_products()
        assert await catalog.list_sorted_versions("SonarQube") == ["7.0", "7.1"]
        assert await catalog.list_sorted_versions("SonarCOBOL") == ["3.9", "4.0.2", "4.2"]
        paths = [r.url.path for r in fake.requests]
        assert paths.count("/rest/api/2/project") == 1

    # Project names are the products
    async def test_products(self):
        catalog = JiraProductCatalog(make_client(FakeJira()))
        assert await catalog.list_products() == {"SonarQube", "SonarCOBOL"}

    # Versions in Jira's order
    async def test_versions(self):
        catalog = JiraProductCatalog(make_client(FakeJira()))
        assert await catalog.list_sorted_versions("SonarCOBOL") == ["3.9", "4.0.2", "4.2"]

    # Unknown product has no versions and no version call
    async def test_unknown_product(self):
        fake = FakeJira()
        catalog = JiraProductCatalog(make_client(fake))
        assert await catalog.list_sorted_versions("SonarPLOP") == []
        assert [r.url.path for r in fake.requests] == ["/rest/api/2/project"]


class TestCircuitBreaker:

    # Repeated failures open the circuit and stop calling Jira
    async def test_opens(self):
        fake = FakeJira(status_code=502)
        breaker = CircuitBreaker("Jira", failure_threshold=2, recovery_timeout=30, clock=lambda: 0.0)
        lookup = JiraTicketLookup(make_client(fake, circuit_breaker=breaker))
        for _ in range(3):
            with pytest.raises(CollaboratorUnavailableException):
                await lookup.resolve_text("NPE")
        assert len(fake.requests) == 2

    # After the timeout one probe is let through and success closes it
    def test_half_open_then_closed(self):
        now = [0.0]
        breaker = CircuitBreaker("Jira", failure_threshold=1, recovery_timeout=10, clock=lambda: now[0])
        breaker.record_failure()
        assert not breaker.allow_request()
        now[0] = 10.0
        assert breaker.state == "half_open"
        assert breaker.allow_request()
        breaker.record_success()
        assert breaker.state == "closed"

    # A failed probe reopens immediately
    def test_half_open_failure(self):
        now = [0.0]
        breaker = CircuitBreaker("Jira", failure_threshold=3, recovery_timeout=10, clock=lambda: now[0])
        for _ in range(3):
            breaker.record_failure()
        now[0] = 11.0
        assert breaker.allow_request()
        breaker.record_failure()
        assert breaker.state == "open"
