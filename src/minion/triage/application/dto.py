"""
Triage Application DTOs
========================

Data Transfer Objects for the triage API layer.

Pydantic models for request/response validation.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictStr
from typing import Dict, List, Optional

from minion.triage.domain import Guidance, Response, SupportRequest


# ========== Request DTOs ==========

class AnalyzeRequest(BaseModel):
    """
    Support request body.

    Accepts both ``component_version`` and ``componentVersion``; values are
    kept exactly as sent.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: Optional[StrictStr] = Field(None, description="Free text or stack trace")
    component: Optional[StrictStr] = Field(None, description="Product the user asks about")
    component_version: Optional[StrictStr] = Field(
        None,
        validation_alias=AliasChoices("component_version", "componentVersion"),
        description="Version of the component"
    )
    message: Optional[StrictStr] = Field(None, description="Error message when no trace is given")

    def to_domain(self) -> SupportRequest:
        """Convert to domain entity."""
        return SupportRequest(
            description=self.description,
            component=self.component,
            component_version=self.component_version,
            message=self.message
        )

    @classmethod
    def from_domain(cls, request: SupportRequest) -> "AnalyzeRequest":
        return cls(**request.to_dict())


class CommunityPost(BaseModel):
    """The part of a Discourse post webhook we read."""
    model_config = ConfigDict(extra="ignore")

    cooked: StrictStr
    topic_id: int | StrictStr


class CommunityWebhook(BaseModel):
    """Discourse 'post_created' webhook payload."""
    model_config = ConfigDict(extra="ignore")

    post: CommunityPost


# ========== Response DTOs ==========

class AnalyzeResponse(BaseModel):
    """
    Triage outcome as returned over HTTP.

    ``message`` is set for guidance answers; otherwise ``jira_tickets`` is
    populated along with one evidence field.
    """
    message: Optional[str] = None
    jira_tickets: List[str] = Field(default_factory=list)
    products_versions: Dict[str, str] = Field(default_factory=dict)
    error_messages: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: Response) -> "AnalyzeResponse":
        """Create from a domain response."""
        if isinstance(result, Guidance):
            return cls(message=result.text)
        return cls(
            jira_tickets=sorted(result.ticket_ids),
            products_versions=dict(result.products_versions or {}),
            error_messages=list(result.error_messages or [])
        )


class CommunityReplyResponse(BaseModel):
    """Response model for the forum webhook."""
    status: str
    topic_id: str
    reply: str
