"""
Shared fixtures: in-memory collaborators and sample stack traces.
"""
from typing import Dict, Iterable, List, Set

import pytest

from minion.core import CollaboratorUnavailableException
from minion.triage.application import Analyzer, IProductCatalog, ITicketLookup


class FakeTicketLookup(ITicketLookup):
    """Returns a fixed set of tickets and records every call."""

    def __init__(self, tickets: Iterable[str] = ()):
        self.tickets = set(tickets)
        self.signature_calls: List[Set[str]] = []
        self.text_calls: List[str] = []

    async def resolve_signatures(self, error_messages: Set[str]) -> Set[str]:
        self.signature_calls.append(set(error_messages))
        return set(self.tickets) if error_messages else set()

    async def resolve_text(self, text: str) -> Set[str]:
        self.text_calls.append(text)
        return set(self.tickets) if text else set()

    @property
    def call_count(self) -> int:
        return len(self.signature_calls) + len(self.text_calls)


class FailingTicketLookup(ITicketLookup):
    """Behaves like an unreachable Jira."""

    async def resolve_signatures(self, error_messages: Set[str]) -> Set[str]:
        raise CollaboratorUnavailableException("Jira", "connection refused")

    async def resolve_text(self, text: str) -> Set[str]:
        raise CollaboratorUnavailableException("Jira", "connection refused")


class FakeCatalog(IProductCatalog):
    """Catalog backed by a dict of product -> versions (oldest first)."""

    def __init__(self, products: Dict[str, List[str]]):
        self.products = products
        self.product_calls = 0
        self.version_calls: List[str] = []

    async def list_products(self) -> Set[str]:
        self.product_calls += 1
        return set(self.products)

    async def list_sorted_versions(self, product: str) -> List[str]:
        self.version_calls.append(product)
        return list(self.products.get(product, []))


CATALOG = {
    "SonarQube": ["6.7", "6.7.1", "7.0", "7.1"],
    "SonarCOBOL": ["3.9", "4.0.2", "4.2"],
    "SonarJava": ["5.6", "5.9.0.1001"],
}


@pytest.fixture
def catalog():
    return FakeCatalog(CATALOG)


@pytest.fixture
def lookup():
    return FakeTicketLookup({"SONAR-9384"})


@pytest.fixture
def empty_lookup():
    return FakeTicketLookup()


@pytest.fixture
def analyzer(lookup, catalog):
    return Analyzer(lookup, catalog)


# Starts directly with the first cause, as users often paste partial traces.
TWO_CAUSES_TRACE = (
    "Caused by: java.lang.IllegalArgumentException: Fail to add measure\n"
    "\tat com.google.common.base.Preconditions.checkArgument(Preconditions.java:145)\n"
    "\tat org.sonar.server.computation.task.projectanalysis.measure.MeasureRepositoryImpl.add(MeasureRepositoryImpl.java:124)\n"
    "\tat org.sonar.server.computation.task.projectanalysis.step.PersistMeasuresStep.execute(PersistMeasuresStep.java:70)\n"
    "\t... 12 more\n"
    "Caused by: java.lang.NullPointerException: null\n"
    "\tat java.util.Objects.requireNonNull(Objects.java:203)\n"
    "\tat org.sonar.server.computation.task.projectanalysis.component.VisitException.rethrowOrWrap(VisitException.java:44)\n"
    "\t... 20 more\n"
)

FULL_TRACE = (
    "2018.05.03 10:12:01 ERROR [o.s.c.t.CeWorkerImpl] Failed to execute task AWMk\n"
    "java.lang.IllegalStateException: Fail to execute task\n"
    "\tat org.sonar.ce.taskprocessor.CeWorkerImpl.executeTask(CeWorkerImpl.java:132)\n"
    "\tat java.util.concurrent.FutureTask.run(FutureTask.java:266)\n"
    + TWO_CAUSES_TRACE
)

THIRD_PARTY_TRACE = (
    "java.lang.NullPointerException: boom\n"
    "\tat com.acme.Foo.bar(Foo.java:1)\n"
    "\tat com.acme.Baz.qux(Baz.java:2)\n"
)


@pytest.fixture
def two_causes_trace():
    return TWO_CAUSES_TRACE


@pytest.fixture
def full_trace():
    return FULL_TRACE


@pytest.fixture
def third_party_trace():
    return THIRD_PARTY_TRACE
