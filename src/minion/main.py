"""
Minion - Main Application
=========================

Support request triage service.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Analyzer service and DTOs
- Domain: Entities and extraction functions
- Infrastructure: Jira, product catalog, community forum
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from minion.config import Settings, settings
from minion.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    register_exception_handlers,
)
from minion.shared.infrastructure.logging import setup_logging, get_logger
from minion.triage.application import Analyzer, IProductCatalog
from minion.triage.infrastructure import (
    CachedProductCatalog,
    CatalogRefreshScheduler,
    CommunityClient,
    FileProductCatalog,
    JiraClient,
    JiraProductCatalog,
    JiraTicketLookup,
)
from minion.triage.interfaces import triage_router

logger = get_logger(__name__)


def build_catalog(config: Settings, jira_client: JiraClient) -> IProductCatalog:
    """Catalog selected by configuration."""
    if config.catalog_source == "file":
        catalog = FileProductCatalog(config.catalog_path)
        catalog.load()
        catalog.start_watching()
        return catalog
    return CachedProductCatalog(JiraProductCatalog(jira_client))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Create the Jira client
    3. Build the product catalog (cached Jira or YAML file)
    4. Start the catalog refresh scheduler (cached Jira only)
    5. Build the Analyzer and the community client

    SHUTDOWN:
    1. Stop scheduler and file watcher
    2. Close HTTP clients
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Minion", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "catalog_source": settings.catalog_source
    })

    jira_client = JiraClient(
        base_url=settings.jira_url,
        username=settings.jira_username,
        token=settings.jira_token,
        timeout_seconds=settings.jira_timeout_seconds,
        max_results=settings.jira_max_results
    )
    catalog = build_catalog(settings, jira_client)

    scheduler: Optional[CatalogRefreshScheduler] = None
    if isinstance(catalog, CachedProductCatalog) and settings.catalog_refresh_interval > 0:
        scheduler = CatalogRefreshScheduler(interval_seconds=settings.catalog_refresh_interval)
        await scheduler.start(catalog.refresh)

    community_client = CommunityClient(
        base_url=settings.community_url,
        api_key=settings.community_api_key,
        api_username=settings.community_api_username,
        timeout_seconds=settings.community_timeout_seconds
    )
    if not community_client.is_configured:
        logger.warning("Community API key not configured - /process_message will return 503")

    app.state.settings = settings
    app.state.analyzer = Analyzer(JiraTicketLookup(jira_client), catalog)
    app.state.community_client = community_client
    app.state.catalog_scheduler = scheduler

    logger.info("Minion started successfully")

    yield  # Application runs here

    logger.info("Shutting down Minion")

    if scheduler:
        await scheduler.stop()
    if isinstance(catalog, FileProductCatalog):
        catalog.stop_watching()

    await community_client.close()
    await jira_client.close()

    logger.info("Minion shutdown complete")


app = FastAPI(
    title="Minion",
    description="""
    ## Support request triage

    Extracts versions, product names and stack-trace signatures from
    support requests and resolves them into known Jira tickets.

    **Endpoints:**
    - `POST /analyze` - Triage a request (JSON body or individual fields)
    - `POST /process_message` - Answer a community forum post
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last so it runs first and the logging middleware sees the id.
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
register_exception_handlers(app)

app.include_router(triage_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Liveness plus the state of background components."""
    scheduler = getattr(request.app.state, "catalog_scheduler", None)
    community = getattr(request.app.state, "community_client", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {
            "analyzer": "ready" if getattr(request.app.state, "analyzer", None) else "not_initialized",
            "catalog_source": settings.catalog_source,
            "catalog_refresh": "running" if scheduler and scheduler.is_running else "stopped",
            "community": "configured" if community and community.is_configured else "not_configured"
        }
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "endpoints": [
            "POST /analyze - Find known tickets for a support request",
            "POST /process_message - Answer a community forum post"
        ]
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "minion.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
