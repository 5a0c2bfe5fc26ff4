"""
Main FastAPI application for LLM News.
"""
import asyncio
import socket
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from llm_news.api.routes import pages, router, set_services
from llm_news.config import Settings, get_settings
from llm_news.jobs.collection import CollectionPipeline, build_pipelines
from llm_news.models.domain import ContentType
from llm_news.services.data_ingestion.scheduler import CollectionScheduler
from llm_news.services.model_search import ModelRepoSearch
from llm_news.services.scoring import RepositoryScorer

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

FALLBACK_HOST = "0.0.0.0"
# Any non-local address works; connecting a UDP socket sends nothing
ROUTE_TARGET = ("10.255.255.255", 1)


def _routable(address: str) -> bool:
    return not (address.startswith("127.") or address.startswith("169.254.") or address == FALLBACK_HOST)


def _outbound_address() -> Optional[str]:
    """Address of the interface the kernel would route outbound traffic through."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(ROUTE_TARGET)
            address = sock.getsockname()[0]
    except OSError:
        return None
    return address if _routable(address) else None


def _hostname_address() -> Optional[str]:
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        return None

    for info in infos:
        address = info[4][0]
        if _routable(address):
            return address
    return None


def detect_host() -> str:
    """
    First non-loopback, non-link-local IPv4 address of this machine.

    Tries the outbound route interface first, then the addresses the
    hostname resolves to, else 0.0.0.0.
    """
    return _outbound_address() or _hostname_address() or FALLBACK_HOST


def create_app(
    settings: Optional[Settings] = None,
    pipelines: Optional[dict[ContentType, CollectionPipeline]] = None,
    model_search: Optional[ModelRepoSearch] = None,
    collect_on_startup: bool = True,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the application; collaborators default to ones built from settings."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - handles startup and shutdown."""
        active = pipelines or build_pipelines(settings)
        search = model_search or ModelRepoSearch(
            token=settings.github_api_token,
            timeout=settings.enrichment_timeout_seconds,
            user_agent=settings.user_agent,
            scorer=RepositoryScorer(settings.scoring),
        )
        set_services(
            {content_type: p.store for content_type, p in active.items()},
            search,
        )

        scheduler = CollectionScheduler(
            active,
            {
                ContentType.REPOSITORIES: settings.repo_refresh_minutes,
                ContentType.PAPERS: settings.paper_refresh_minutes,
            },
        )
        app.state.pipelines = active
        app.state.scheduler = scheduler

        # Initial collection completes before requests are served
        if collect_on_startup:
            logger.info("Running initial collection")
            reports = await asyncio.gather(*(p.run() for p in active.values()))
            for report in reports:
                logger.info(
                    "Initial collection finished",
                    content_type=report.content_type.value,
                    published=report.published,
                    items=report.items_published,
                    error=str(report.error) if report.error else None,
                )

        if start_scheduler:
            scheduler.start()
            logger.info(
                "Scheduler started",
                repo_refresh_minutes=settings.repo_refresh_minutes,
                paper_refresh_minutes=settings.paper_refresh_minutes,
            )

        yield

        # Shutdown
        logger.info("Shutting down")
        scheduler.stop()

    app = FastAPI(
        title=settings.app_name,
        description="Trending AI repositories and research, refreshed on a schedule.",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api")
    app.include_router(pages)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "llm-news",
            "version": settings.app_version,
        }

    @app.get("/api/status")
    async def collection_status():
        """Pipeline states, last run reports and schedule."""
        scheduler: Optional[CollectionScheduler] = getattr(app.state, "scheduler", None)
        if scheduler is None:
            return {"running": False, "pipelines": {}}
        return scheduler.get_status()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "llm_news.main:app",
        host=settings.host or detect_host(),
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
