"""
FastAPI routes for the LLM News API.

Every endpoint except the model search reads the latest published snapshot
and never triggers collection.
"""

from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional
from urllib.parse import quote_plus

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from llm_news.models.domain import (
    ContentType,
    ModelReposResponse,
    Paper,
    Repository,
    Snapshot,
    StatsResponse,
)
from llm_news.services.model_search import ModelRepoSearch
from llm_news.services.snapshot import SnapshotStore

logger = structlog.get_logger(__name__)
router = APIRouter()
pages = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

ARXIV_SEARCH_URL = "https://arxiv.org/search/?query="

# Set during application startup
_stores: dict[ContentType, SnapshotStore] = {}
_model_search: Optional[ModelRepoSearch] = None


def set_services(
    stores: dict[ContentType, SnapshotStore],
    model_search: Optional[ModelRepoSearch] = None,
) -> None:
    """Wire the snapshot stores and model search used by the routes."""
    global _model_search
    _stores.clear()
    _stores.update(stores)
    _model_search = model_search


def get_store(content_type: ContentType) -> SnapshotStore:
    store = _stores.get(content_type)
    if store is None:
        # Before startup wiring: serve an empty, valid collection
        store = _stores.setdefault(content_type, SnapshotStore())
    return store


def get_repo_snapshot() -> Snapshot[Repository]:
    return get_store(ContentType.REPOSITORIES).current()


def get_paper_snapshot() -> Snapshot[Paper]:
    return get_store(ContentType.PAPERS).current()


def get_model_search() -> ModelRepoSearch:
    if _model_search is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Model search is not configured",
        )
    return _model_search


RepoSnapshotDep = Annotated[Snapshot[Repository], Depends(get_repo_snapshot)]
PaperSnapshotDep = Annotated[Snapshot[Paper], Depends(get_paper_snapshot)]
ModelSearchDep = Annotated[ModelRepoSearch, Depends(get_model_search)]


def sorted_repos(snapshot: Snapshot[Repository]) -> list[Repository]:
    return sorted(snapshot.items, key=lambda r: r.name)


def papers_with_urls(snapshot: Snapshot[Paper]) -> list[Paper]:
    """Papers with empty URLs pointing at an arXiv title search; the snapshot is untouched."""
    return [
        paper if paper.url else paper.model_copy(
            update={"url": ARXIV_SEARCH_URL + quote_plus(paper.title)}
        )
        for paper in snapshot.items
    ]


def latest_update(*snapshots: Snapshot) -> Optional[datetime]:
    stamps = [s.last_updated for s in snapshots if s.last_updated is not None]
    return max(stamps) if stamps else None


# ============================================================================
# Collection Routes
# ============================================================================


@router.get("/repos", response_model=list[Repository])
async def list_repos(snapshot: RepoSnapshotDep):
    """Trending repositories, sorted by name."""
    return sorted_repos(snapshot)


@router.get("/research-articles", response_model=list[Paper])
async def list_research_articles(snapshot: PaperSnapshotDep):
    """Research papers and technical articles."""
    return papers_with_urls(snapshot)


@router.get("/papers", include_in_schema=False)
async def papers_redirect():
    """Legacy path, kept as a permanent redirect."""
    return RedirectResponse(
        url="/api/research-articles",
        status_code=status.HTTP_301_MOVED_PERMANENTLY,
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(repos: RepoSnapshotDep, papers: PaperSnapshotDep):
    return StatsResponse(
        last_updated=latest_update(repos, papers),
        trending_repos_count=len(repos),
        research_papers_count=len(papers),
    )


# ============================================================================
# Model Search Routes
# ============================================================================


@router.get("/model-repos/{model}", response_model=ModelReposResponse)
async def search_model_repos(model: str, search: ModelSearchDep):
    """
    Search GitHub for repositories related to a model.

    Known model names expand to a list of search terms; unknown names are
    searched as-is.
    """
    model = model.strip()
    if not model:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Model name is required",
        )

    repos = await search.search(model)
    logger.info("Model search served", model=model, results=len(repos))
    return ModelReposResponse(model=model, repos=repos)


# ============================================================================
# Pages
# ============================================================================


@pages.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request, repos: RepoSnapshotDep, papers: PaperSnapshotDep):
    """Server-rendered overview of both collections."""
    last_updated = latest_update(repos, papers)
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "LLM News - AI/ML repositories and research",
            "last_updated": last_updated.strftime("%Y-%m-%d %H:%M:%S UTC") if last_updated else None,
            "repos": sorted_repos(repos),
            "papers": papers_with_urls(papers),
        },
    )
