"""
Papers with Code API client.

Docs: https://paperswithcode.com/api/v1/docs/
No authentication required.

The same ``/papers`` endpoint feeds two pipelines: the paper list itself, and
the GitHub repositories linked from those papers.
"""

import logging
import random
import re
from typing import Any, Optional

import httpx

from llm_news.errors import FetchError, FetchErrorKind
from llm_news.models.domain import ContentType, Paper, Repository
from llm_news.services.data_ingestion.base import (
    DEFAULT_TIMEOUT,
    BaseFetcher,
    SourceConfig,
    SourceType,
    normalize_authors,
    parse_timestamp,
    truncate,
)

logger = logging.getLogger(__name__)

PAPERS_WITH_CODE_API = "https://paperswithcode.com/api/v1"

PAPER_TOPICS = "language-modelling,transformer,nlp,llm,gpt,diffusion-models"
REPOSITORY_TOPICS = (
    "language-modelling,transformer,nlp,llm,gpt,diffusion-models,"
    "computer-vision,retrieval,optimization"
)

# Placeholder citation range; the API exposes no citation data
PLACEHOLDER_CITATIONS = (10, 59)

_GITHUB_NAME_RE = re.compile(r"github\.com/([^/]+/[^/?#]+)")


def create_papers_with_code_config(timeout: float = DEFAULT_TIMEOUT) -> SourceConfig:
    return SourceConfig(
        name="Papers with Code",
        source_type=SourceType.JSON_API,
        base_url=PAPERS_WITH_CODE_API,
        timeout=timeout,
        priority=2,
    )


async def fetch_paper_results(
    fetcher: BaseFetcher,
    client: httpx.AsyncClient,
    params: dict[str, Any],
) -> list[dict[str, Any]]:
    """GET ``/papers/`` and return the ``results`` array."""
    data = await fetcher._get_json(
        client, f"{fetcher.config.base_url}/papers/", params=params
    )
    if not isinstance(data, dict):
        raise FetchError(fetcher.name, FetchErrorKind.DECODE, "payload is not an object")

    results = data.get("results")
    if not isinstance(results, list):
        raise FetchError(fetcher.name, FetchErrorKind.DECODE, "missing results array")
    return [r for r in results if isinstance(r, dict)]


def task_names(result: dict[str, Any]) -> list[str]:
    names = []
    for task in result.get("tasks") or []:
        name = task.get("name") if isinstance(task, dict) else task
        if isinstance(name, str) and name:
            names.append(name)
    return names


class PapersWithCodePaperFetcher(BaseFetcher[Paper]):
    """
    Fetches recent papers on language-model topics.

    The API has no citation data, so each paper gets a placeholder count
    drawn from ``rng`` and is flagged ``citations_estimated``; enrichment
    replaces it with real data when it can.
    """

    content_type = ContentType.PAPERS

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(config or create_papers_with_code_config(), transport)
        self.rng = rng or random.Random()

    async def _fetch(self, client: httpx.AsyncClient) -> list[Paper]:
        results = await fetch_paper_results(
            self, client, {"topics": PAPER_TOPICS, "page": 1}
        )

        papers = []
        for result in results:
            paper = self._parse_paper(result)
            if paper is not None:
                papers.append(paper)

        logger.info(f"Papers with Code: {len(papers)} papers")
        return papers

    def _parse_paper(self, result: dict[str, Any]) -> Optional[Paper]:
        title = (result.get("title") or "").strip()
        if not title:
            return None

        published, date_estimated = parse_timestamp(
            result.get("published") or result.get("published_at")
        )
        if date_estimated:
            logger.warning(f"Could not parse date for paper {truncate(title, 20)}, using now")

        low, high = PLACEHOLDER_CITATIONS
        return Paper(
            title=title,
            url=result.get("url_abs") or result.get("url") or "",
            authors=normalize_authors(result.get("authors")),
            published_date=published,
            source=self.name,
            summary=result.get("abstract") or "",
            keywords=task_names(result),
            arxiv_id=result.get("arxiv_id") or "",
            pdf_url=result.get("url_pdf") or "",
            citation_count=self.rng.randint(low, high),
            citations_estimated=True,
            date_estimated=date_estimated,
        )


class PapersWithCodeRepoFetcher(BaseFetcher[Repository]):
    """Collects the GitHub implementations linked from recent papers."""

    content_type = ContentType.REPOSITORIES

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        limit: int = 50,
    ):
        super().__init__(config or create_papers_with_code_config(), transport)
        self.limit = limit

    async def _fetch(self, client: httpx.AsyncClient) -> list[Repository]:
        results = await fetch_paper_results(
            self, client, {"topics": REPOSITORY_TOPICS, "limit": self.limit, "page": 1}
        )

        repos = []
        for result in results:
            repos.extend(self._parse_repositories(result))

        logger.info(f"Papers with Code: {len(repos)} linked repositories")
        return repos

    def _parse_repositories(self, result: dict[str, Any]) -> list[Repository]:
        linked = result.get("repositories") or []
        if not linked:
            return []

        authors = normalize_authors(result.get("authors"))
        paper_title = result.get("title") or ""
        published = result.get("published_at") or result.get("published")
        last_commit = None
        timestamp_estimated = False
        if published:
            # Publication date stands in for activity until enrichment
            last_commit, timestamp_estimated = parse_timestamp(published)

        repos = []
        for entry in linked:
            if not isinstance(entry, dict):
                continue
            url = entry.get("url") or ""
            match = _GITHUB_NAME_RE.search(url)
            if not match or "/fork" in url:
                continue

            framework = entry.get("framework") or ""
            repos.append(
                Repository(
                    name=match.group(1),
                    url=url,
                    description=truncate(result.get("abstract") or "", 200),
                    language=framework,
                    stars=int(entry.get("stars") or 0),
                    last_commit=last_commit,
                    tech_stack=[framework] if framework else [],
                    has_docs=True,
                    source=self.name,
                    paper_url=result.get("url_abs") or result.get("url") or "",
                    paper_title=paper_title,
                    authors=authors,
                    timestamp_estimated=timestamp_estimated,
                )
            )
        return repos
