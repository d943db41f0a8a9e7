"""
Triage Domain Entities
======================

Domain entities for support request triage.

A SupportRequest goes in, exactly one Response comes out: either a
Guidance message or a TicketResult backed by one kind of evidence.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, FrozenSet, Union


@dataclass(frozen=True)
class SupportRequest:
    """
    Support request as submitted by a user.

    Every field is optional; which ones are present decides the triage path.
    """
    description: Optional[str] = None
    component: Optional[str] = None
    component_version: Optional[str] = None
    message: Optional[str] = None

    @property
    def has_description(self) -> bool:
        return bool(self.description)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "description": self.description,
            "component": self.component,
            "component_version": self.component_version,
            "message": self.message,
        }


class GuidanceMessages:
    """Texts returned when a request does not lead to any ticket."""

    UNINTELLIGIBLE_ERROR = "We didn't understand the error, could you please describe the error ?"
    NO_TICKETS = "No JIRA tickets has been found"
    MISSING_MESSAGE = "Please provide your error message"
    MISSING_VERSION = (
        "Seems like there is no product nor version in your question, "
        "could you clarify this information ?"
    )
    MISSING_COMPONENT = (
        "Could you specify which component of the SonarQube ecosystem "
        "your question is about ?"
    )


@dataclass(frozen=True)
class Guidance:
    """Answer asking the user for more, or telling them nothing matched."""
    text: str


@dataclass(frozen=True)
class TicketResult:
    """
    Known tickets matching a request.

    Evidence is either the stack-trace signatures that were looked up, or
    the product to version pairs resolved from the guided fields.
    """
    ticket_ids: FrozenSet[str]
    error_messages: Optional[List[str]] = None
    products_versions: Optional[Dict[str, str]] = None

    def __post_init__(self):
        """Validate that exactly one evidence shape is populated."""
        if not self.ticket_ids:
            raise ValueError("A ticket result needs at least one ticket id")
        if (self.error_messages is None) == (self.products_versions is None):
            raise ValueError("Exactly one of error_messages or products_versions must be set")


Response = Union[Guidance, TicketResult]
