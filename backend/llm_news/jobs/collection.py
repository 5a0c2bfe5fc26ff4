"""
Collection pipeline for one content type.

Each run:
1. Fetches from all enabled sources concurrently
2. Merges records sharing an identity key
3. Enriches merged items that lack key fields
4. Scores every item
5. Drops stale items (subject to the minimum-size floor)
6. Publishes the result as a new immutable snapshot

A run that collects nothing leaves the previous snapshot in place.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Generic, Optional, Protocol

import httpx
import structlog

from llm_news.config import Settings, get_settings
from llm_news.errors import FetchError, PipelineRunError
from llm_news.models.domain import ContentType, ItemT, Paper, Repository, utcnow
from llm_news.services.data_ingestion.aggregator import ItemAggregator
from llm_news.services.data_ingestion.articles import (
    CSDNFetcher,
    DevToFetcher,
    HackerNewsFetcher,
    create_csdn_config,
    create_devto_config,
    create_hackernews_config,
)
from llm_news.services.data_ingestion.base import BaseFetcher, FetchResult
from llm_news.services.data_ingestion.curated import CuratedRepoFetcher
from llm_news.services.data_ingestion.enrichment import (
    BaseEnricher,
    PaperEnricher,
    RepositoryEnricher,
)
from llm_news.services.data_ingestion.github import (
    GitHubSearchFetcher,
    GitHubTrendingFetcher,
    create_search_config,
    create_trending_config,
)
from llm_news.services.data_ingestion.papers_with_code import (
    PapersWithCodePaperFetcher,
    PapersWithCodeRepoFetcher,
    create_papers_with_code_config,
)
from llm_news.services.scoring import PaperScorer, RepositoryScorer
from llm_news.services.snapshot import SnapshotStore

logger = structlog.get_logger()


class Scorer(Protocol[ItemT]):
    def score_all(self, items: list[ItemT], now: Optional[datetime] = None) -> list[ItemT]:
        ...


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class RunReport:
    """What happened during one pipeline run."""

    content_type: ContentType
    started_at: datetime
    finished_at: Optional[datetime] = None
    skipped: bool = False
    published: bool = False
    items_fetched: int = 0
    items_merged: int = 0
    items_published: int = 0
    sources: list[FetchResult] = field(default_factory=list)
    error: Optional[PipelineRunError] = None

    @property
    def source_errors(self) -> list[FetchError]:
        return [r.error for r in self.sources if r.error is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_type": self.content_type.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "skipped": self.skipped,
            "published": self.published,
            "items_fetched": self.items_fetched,
            "items_merged": self.items_merged,
            "items_published": self.items_published,
            "sources": [
                {
                    "name": r.source_name,
                    "items": len(r.items),
                    "error": str(r.error) if r.error else None,
                    "duration_seconds": round(r.duration_seconds, 3),
                }
                for r in self.sources
            ],
            "error": str(self.error) if self.error else None,
        }


class CollectionPipeline(Generic[ItemT]):
    """
    Orchestrates fetch, merge, enrich, score, select and publish.

    State machine: IDLE -> RUNNING -> IDLE. A run requested while another is
    in progress is skipped, never queued.
    """

    def __init__(
        self,
        content_type: ContentType,
        aggregator: ItemAggregator[ItemT],
        scorer: Scorer[ItemT],
        store: Optional[SnapshotStore[ItemT]] = None,
        enricher: Optional[BaseEnricher[ItemT]] = None,
        enrichment_limit: int = 100,
        enrichment_concurrency: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.content_type = content_type
        self.aggregator = aggregator
        self.scorer = scorer
        self.store = store or SnapshotStore()
        self.enricher = enricher
        self.enrichment_limit = enrichment_limit
        self.enrichment_concurrency = enrichment_concurrency
        self.clock = clock

        self.state = PipelineState.IDLE
        self.last_report: Optional[RunReport] = None

    async def run(self) -> RunReport:
        """Execute one collection run."""
        if self.state is PipelineState.RUNNING:
            logger.warning("Collection already running, skipping", content_type=self.content_type.value)
            return RunReport(
                content_type=self.content_type,
                started_at=self.clock(),
                finished_at=self.clock(),
                skipped=True,
            )

        self.state = PipelineState.RUNNING
        try:
            report = await self._run()
        finally:
            self.state = PipelineState.IDLE

        self.last_report = report
        return report

    async def _run(self) -> RunReport:
        report = RunReport(content_type=self.content_type, started_at=self.clock())
        logger.info("Starting collection", content_type=self.content_type.value)

        # Stage 1: Fetch
        report.sources = await self.aggregator.fetch_all()
        report.items_fetched = sum(len(r.items) for r in report.sources)

        # Stage 2: Merge
        merged = self.aggregator.merge(r.items for r in report.sources)
        report.items_merged = len(merged)
        if not merged:
            return self._fail(report)

        # Stage 3: Enrich
        if self.enricher is not None:
            merged = await self.enricher.enrich_all(
                merged,
                limit=self.enrichment_limit,
                concurrency=self.enrichment_concurrency,
            )

        # Stage 4-5: Score and select against one clock reading
        now = self.clock()
        scored = self.scorer.score_all(merged, now)
        selected = self.aggregator.select(scored, now)
        if not selected:
            return self._fail(report)

        # Stage 6: Publish
        self.store.publish(selected, at=now)
        report.published = True
        report.items_published = len(selected)
        report.finished_at = self.clock()

        logger.info(
            "Collection published",
            content_type=self.content_type.value,
            fetched=report.items_fetched,
            merged=report.items_merged,
            published=report.items_published,
            failed_sources=[e.source for e in report.source_errors],
        )
        return report

    def _fail(self, report: RunReport) -> RunReport:
        report.error = PipelineRunError(self.content_type.value, report.source_errors)
        report.finished_at = self.clock()
        logger.error(
            "Collection produced no items, keeping previous snapshot",
            content_type=self.content_type.value,
            error=str(report.error),
        )
        return report

    def get_status(self) -> dict[str, Any]:
        snapshot = self.store.current()
        return {
            "state": self.state.value,
            "items": len(snapshot),
            "last_updated": snapshot.last_updated.isoformat() if snapshot.last_updated else None,
            "last_run": self.last_report.to_dict() if self.last_report else None,
            "sources": self.aggregator.get_source_stats(),
        }


# ============================================================================
# Factory
# ============================================================================


def build_repository_fetchers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[BaseFetcher[Repository]]:
    timeout = settings.http_timeout_seconds
    fetchers: list[BaseFetcher[Repository]] = []

    if settings.github_trending_enabled:
        fetchers.append(GitHubTrendingFetcher(create_trending_config(timeout), transport))
    if settings.github_search_enabled:
        fetchers.append(
            GitHubSearchFetcher(
                create_search_config(settings.github_api_token, timeout),
                transport,
                count=settings.search_supplement_count,
                user_agent=settings.user_agent,
            )
        )
    if settings.papers_with_code_repos_enabled:
        fetchers.append(PapersWithCodeRepoFetcher(create_papers_with_code_config(timeout), transport))
    if settings.curated_repos_enabled:
        fetchers.append(CuratedRepoFetcher(transport=transport))

    return fetchers


def build_paper_fetchers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    rng: Optional[random.Random] = None,
) -> list[BaseFetcher[Paper]]:
    timeout = settings.http_timeout_seconds
    fetchers: list[BaseFetcher[Paper]] = []

    if settings.papers_with_code_enabled:
        fetchers.append(
            PapersWithCodePaperFetcher(
                create_papers_with_code_config(timeout),
                transport,
                rng=rng or random.Random(settings.placeholder_seed),
            )
        )
    if settings.hackernews_enabled:
        fetchers.append(HackerNewsFetcher(create_hackernews_config(timeout), transport))
    if settings.devto_enabled:
        fetchers.append(DevToFetcher(create_devto_config(timeout), transport))
    if settings.csdn_enabled:
        fetchers.append(CSDNFetcher(create_csdn_config(timeout), transport))

    return fetchers


def build_pipelines(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    rng: Optional[random.Random] = None,
) -> dict[ContentType, CollectionPipeline]:
    """Create the repository and paper pipelines from settings."""
    settings = settings or get_settings()

    repositories = CollectionPipeline(
        ContentType.REPOSITORIES,
        ItemAggregator(
            build_repository_fetchers(settings, transport),
            max_age_days=settings.repo_max_age_days,
            min_items=settings.repo_min_items,
        ),
        RepositoryScorer(settings.scoring),
        enricher=RepositoryEnricher(
            token=settings.github_api_token,
            timeout=settings.enrichment_timeout_seconds,
            transport=transport,
            user_agent=settings.user_agent,
        ),
        enrichment_limit=settings.enrichment_limit,
        enrichment_concurrency=settings.enrichment_concurrency,
    )

    papers = CollectionPipeline(
        ContentType.PAPERS,
        ItemAggregator(
            build_paper_fetchers(settings, transport, rng),
            max_age_days=settings.paper_max_age_days,
            min_items=settings.paper_min_items,
        ),
        PaperScorer(),
        enricher=PaperEnricher(
            api_key=settings.semantic_scholar_api_key,
            timeout=settings.enrichment_timeout_seconds,
            transport=transport,
        ),
        enrichment_limit=settings.enrichment_limit,
        enrichment_concurrency=settings.enrichment_concurrency,
    )

    logger.info(
        "Pipelines built",
        repository_sources=[f.name for f in repositories.aggregator.fetchers],
        paper_sources=[f.name for f in papers.aggregator.fetchers],
    )
    return {ContentType.REPOSITORIES: repositories, ContentType.PAPERS: papers}
