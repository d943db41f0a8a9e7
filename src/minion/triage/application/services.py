"""
Triage Application Services
============================

The Analyzer decides which triage path a support request takes, drives
the extraction functions and the two collaborators, and shapes the answer.

Collaborator failures are never caught here: they reach the caller as
CollaboratorUnavailableException, distinct from a guidance answer.
"""

from abc import ABC, abstractmethod
from typing import Collection, Dict, List, Optional, Set, Union

from pydantic import ValidationError

from minion.core import InvalidInputException
from minion.shared.infrastructure.logging import get_logger, log_latency
from minion.triage.application.dto import AnalyzeRequest
from minion.triage.domain import (
    Guidance,
    GuidanceMessages,
    Response,
    SupportRequest,
    TicketResult,
    get_error_messages,
    match_products,
    pick_version,
)

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class ITicketLookup(ABC):
    """Maps error signatures or free text to known ticket ids."""

    @abstractmethod
    async def resolve_signatures(self, error_messages: Set[str]) -> Set[str]:
        """Tickets matching any of the signatures; empty input gives an empty set."""

    @abstractmethod
    async def resolve_text(self, text: str) -> Set[str]:
        """Tickets matching free text; empty input gives an empty set."""


class IProductCatalog(ABC):
    """Known products and their released versions."""

    @abstractmethod
    async def list_products(self) -> Set[str]:
        """All known product names."""

    @abstractmethod
    async def list_sorted_versions(self, product: str) -> List[str]:
        """Versions of product, oldest first; empty for an unknown product."""


# ========== Application Services ==========

class Analyzer:
    """
    Support request classifier and responder.

    Holds no per-request state; one instance serves every request.
    """

    def __init__(self, ticket_lookup: ITicketLookup, catalog: IProductCatalog):
        self._lookup = ticket_lookup
        self._catalog = catalog

    async def analyze_json(self, raw: Union[str, bytes]) -> Response:
        """
        Triage a JSON-encoded support request.

        Raises:
            InvalidInputException: If raw is not a JSON object of string fields
        """
        try:
            payload = AnalyzeRequest.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidInputException(
                "Invalid json message",
                details={"errors": e.errors(include_url=False, include_input=False)}
            )
        return await self.process(payload.to_domain())

    async def analyze(
        self,
        description: Optional[str],
        component: Optional[str],
        component_version: Optional[str],
        message: Optional[str]
    ) -> Response:
        """Triage a request given as individual fields."""
        return await self.process(SupportRequest(
            description=description,
            component=component,
            component_version=component_version,
            message=message
        ))

    async def process(self, request: Optional[SupportRequest]) -> Response:
        if request is None:
            raise InvalidInputException("Invalid json message")
        if not request.has_description:
            return await self._process_message(request)
        return await self._process_error(get_error_messages(request.description))

    async def _process_error(self, error_messages: List[str]) -> Response:
        if not error_messages:
            logger.info("No signature extracted from description")
            return Guidance(GuidanceMessages.UNINTELLIGIBLE_ERROR)

        with log_latency(logger, "resolve_signatures", signatures=len(error_messages)):
            tickets = await self._lookup.resolve_signatures(set(error_messages))
        if not tickets:
            return Guidance(GuidanceMessages.NO_TICKETS)

        return TicketResult(
            ticket_ids=frozenset(tickets),
            error_messages=error_messages
        )

    async def _process_message(self, request: SupportRequest) -> Response:
        if not request.message:
            return Guidance(GuidanceMessages.MISSING_MESSAGE)
        if not request.component_version:
            return Guidance(GuidanceMessages.MISSING_VERSION)
        versions = {request.component_version}
        if not request.component:
            return Guidance(GuidanceMessages.MISSING_COMPONENT)

        products = await self.get_products(request.component)
        products_versions = await self.get_versions_by_product(products, versions)

        with log_latency(logger, "resolve_text", products=len(products_versions)):
            tickets = await self._lookup.resolve_text(request.message)
        if not tickets:
            return Guidance(GuidanceMessages.NO_TICKETS)

        return TicketResult(
            ticket_ids=frozenset(tickets),
            products_versions=products_versions
        )

    # ========== Catalog-backed extraction ==========

    async def get_products(self, text: str) -> Set[str]:
        """Known catalog products mentioned in text."""
        return match_products(text, await self._catalog.list_products())

    async def get_version(self, product: str, versions: Collection[str]) -> Optional[str]:
        """Newest known version of product among the given versions."""
        return pick_version(await self._catalog.list_sorted_versions(product), versions)

    async def get_versions_by_product(
        self,
        products: Set[str],
        versions: Collection[str]
    ) -> Dict[str, str]:
        """Products whose catalog knows one of the versions, with that version."""
        resolved = {}
        for product in products:
            version = await self.get_version(product, versions)
            if version is not None:
                resolved[product] = version
        return resolved
