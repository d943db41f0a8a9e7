"""
Triage Controllers (API Routes)
================================

FastAPI routes for support request triage.

Controllers delegate to the Analyzer; collaborators are resolved from
application state so tests can override them.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import ValidationError

from minion.config import settings
from minion.core import InvalidInputException
from minion.shared.infrastructure.logging import get_context_logger
from minion.triage.application import (
    Analyzer,
    AnalyzeResponse,
    CommunityWebhook,
    CommunityReplyResponse,
)
from minion.triage.infrastructure import CommunityClient
from minion.triage.interfaces.rendering import render_html, render_text

router = APIRouter(tags=["Triage"])

FIELD_NAMES = ("description", "component", "component_version", "message")
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# ========== Example payloads for Swagger ==========

ANALYZE_REQUEST_EXAMPLE = {
    "description": (
        "java.lang.IllegalStateException: Fail to compute measure\n"
        "\tat org.sonar.server.measure.MeasureRepositoryImpl.add(MeasureRepositoryImpl.java:124)"
    )
}

ANALYZE_RESPONSE_EXAMPLE = {
    "message": None,
    "jira_tickets": ["SONAR-9384"],
    "products_versions": {},
    "error_messages": [
        "\tat org.sonar.server.measure.MeasureRepositoryImpl.add(MeasureRepositoryImpl.java:124)"
    ]
}


# ========== Dependencies ==========

def get_analyzer(request: Request) -> Analyzer:
    """Analyzer built during application startup."""
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        raise HTTPException(status_code=503, detail="Analyzer not initialized")
    return analyzer


def get_community_client(request: Request) -> CommunityClient:
    client = getattr(request.app.state, "community_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Community client not initialized")
    return client


def get_browse_url() -> str:
    return settings.jira_browse_url


async def _read_fields(request: Request, body: bytes) -> Dict[str, Optional[str]]:
    """Individually supplied fields, from the query string and form body."""
    params = dict(request.query_params)
    content_type = request.headers.get("content-type", "")
    if body and content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        params.update({k: v for k, v in form.items() if isinstance(v, str)})
    if "component_version" not in params and "componentVersion" in params:
        params["component_version"] = params["componentVersion"]
    return {name: params.get(name) for name in FIELD_NAMES}


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def _wants_text(request: Request) -> bool:
    return request.headers.get("accept", "").startswith("text/plain")


# ========== Route Handlers ==========

@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Find known tickets for a support request",
    description="""
    Triage a support request.

    Fields can be sent individually (query string or form) or as a JSON
    object body with `description`, `component`, `component_version` and
    `message`.

    - With a `description`, stack-trace signatures are extracted and
      searched in Jira.
    - Otherwise `message`, `component_version` and `component` are
      required; the message is searched in Jira and the component's
      versions are resolved against the catalog.

    When nothing matches, `message` holds guidance for the user.
    Send `Accept: text/html` or `Accept: text/plain` for a rendered answer.
    """,
    responses={
        200: {
            "description": "Triage result",
            "content": {"application/json": {"example": ANALYZE_RESPONSE_EXAMPLE}}
        },
        400: {"description": "Body missing or not a valid JSON request"},
        503: {"description": "Jira or catalog unavailable"}
    },
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"example": ANALYZE_REQUEST_EXAMPLE}}
        }
    }
)
async def analyze(
    request: Request,
    analyzer: Analyzer = Depends(get_analyzer),
    browse_url: str = Depends(get_browse_url)
):
    logger = get_context_logger(__name__, getattr(request.state, "correlation_id", None))
    body = await request.body()
    fields = await _read_fields(request, body)

    if fields["description"] or fields["message"]:
        logger.info("Analyzing individual fields")
        result = await analyzer.analyze(**fields)
    else:
        if not body.strip():
            raise InvalidInputException("Body should not be empty")
        logger.info("Analyzing JSON body", extra={"body_bytes": len(body)})
        result = await analyzer.analyze_json(body)

    logger.info("Request analyzed", extra={"outcome": type(result).__name__})

    if _wants_html(request):
        return HTMLResponse(render_html(result, browse_url))
    if _wants_text(request):
        return PlainTextResponse(render_text(result, browse_url))
    return AnalyzeResponse.from_domain(result)


@router.post(
    "/process_message",
    response_model=CommunityReplyResponse,
    summary="Answer a community forum post",
    description="""
    Discourse webhook: the post content is triaged as a description and
    the rendered answer is posted back to the same topic.
    """,
    responses={
        400: {"description": "Body missing or not a Discourse post payload"},
        503: {"description": "Jira or the forum unavailable"}
    }
)
async def process_message(
    request: Request,
    analyzer: Analyzer = Depends(get_analyzer),
    community: CommunityClient = Depends(get_community_client),
    browse_url: str = Depends(get_browse_url)
):
    body = await request.body()
    if not body.strip():
        raise InvalidInputException("Body should not be empty")

    try:
        webhook = CommunityWebhook.model_validate_json(body)
    except ValidationError:
        raise InvalidInputException("Invalid community post payload")

    raw_post = webhook.post.cooked.replace("\\n", "\n")
    topic_id = str(webhook.post.topic_id)

    result = await analyzer.analyze(raw_post, "", "", "")
    reply = render_html(result, browse_url)
    await community.reply(topic_id, reply)

    return CommunityReplyResponse(status="posted", topic_id=topic_id, reply=reply)
