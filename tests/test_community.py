"""
Community forum client tests.
"""
from urllib.parse import parse_qs

import httpx
import pytest

from minion.core import CollaboratorUnavailableException, ConfigurationException
from minion.triage.infrastructure import CommunityClient

BASE_URL = "https://community.example.com"


class FakeDiscourse:
    """Fails the first `failures` posts, then accepts them."""

    def __init__(self, failures=0):
        self.failures = failures
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) <= self.failures:
            return httpx.Response(502)
        return httpx.Response(200, json={"id": 1234, "topic_id": 75})


def make_client(fake, **kwargs) -> CommunityClient:
    return CommunityClient(
        BASE_URL,
        api_key="secret",
        api_username="minion",
        backoff_base=0,
        transport=httpx.MockTransport(fake),
        **kwargs
    )


class TestCommunityClient:

    # The reply is posted as a form with the API credentials
    async def test_reply(self):
        fake = FakeDiscourse()
        post = await make_client(fake).reply("75", "No JIRA tickets has been found")
        assert post["id"] == 1234

        request = fake.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/posts.json"
        assert request.headers["Api-Key"] == "secret"
        assert request.headers["Api-Username"] == "minion"
        form = parse_qs(request.content.decode())
        assert form == {"topic_id": ["75"], "raw": ["No JIRA tickets has been found"]}

    # Transient failures are retried
    async def test_retry(self):
        fake = FakeDiscourse(failures=2)
        post = await make_client(fake, max_retries=3).reply("75", "hello")
        assert post["id"] == 1234
        assert len(fake.requests) == 3

    # Giving up raises unavailability
    async def test_gives_up(self):
        fake = FakeDiscourse(failures=10)
        with pytest.raises(CollaboratorUnavailableException) as exc_info:
            await make_client(fake, max_retries=2).reply("75", "hello")
        assert exc_info.value.service_name == "Community"
        assert len(fake.requests) == 2

    # Without an API key nothing is sent
    async def test_not_configured(self):
        fake = FakeDiscourse()
        client = CommunityClient(BASE_URL, api_key=None, transport=httpx.MockTransport(fake))
        assert not client.is_configured
        with pytest.raises(ConfigurationException):
            await client.reply("75", "hello")
        assert fake.requests == []
