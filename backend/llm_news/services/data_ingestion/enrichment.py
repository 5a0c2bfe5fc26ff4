"""
Best-effort follow-up lookups for merged items.

Repositories are completed from the GitHub REST API, papers from the
Semantic Scholar graph API. An enricher never fails the pipeline: any
lookup error leaves the item as it was.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional

import httpx

from llm_news.models.domain import UNKNOWN_AUTHOR, ItemT, Paper, Repository
from llm_news.services.data_ingestion.base import parse_timestamp
from llm_news.services.data_ingestion.github import (
    GITHUB_API_URL,
    GITHUB_URL,
    github_api_headers,
)

logger = logging.getLogger(__name__)

SEMANTIC_SCHOLAR_API_URL = "https://api.semanticscholar.org/graph/v1"

# Fields requested from the Semantic Scholar title match endpoint
MATCH_FIELDS = [
    "title",
    "authors",
    "citationCount",
    "publicationDate",
    "externalIds",
    "openAccessPdf",
]


class BaseEnricher(ABC, Generic[ItemT]):
    """
    Looks up extra fields for items that lack them.

    At most two outbound calls per item; every call carries ``timeout``.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport

    @abstractmethod
    def needs_enrichment(self, item: ItemT) -> bool:
        """Whether the item is missing fields this enricher can fill."""

    @abstractmethod
    async def _enrich(self, client: httpx.AsyncClient, item: ItemT) -> ItemT:
        """Return an updated copy of ``item``; may raise httpx or decode errors."""

    def _headers(self) -> dict[str, str]:
        return {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers(),
            follow_redirects=True,
            transport=self.transport,
        )

    async def enrich(self, item: ItemT, client: Optional[httpx.AsyncClient] = None) -> ItemT:
        """Enrich one item, returning it unchanged on any lookup failure."""
        if client is None:
            async with self._client() as own_client:
                return await self.enrich(item, own_client)

        try:
            return await self._enrich(client, item)
        except httpx.HTTPError as e:
            logger.debug(f"Enrichment lookup failed for {item.key}: {e}")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Unexpected enrichment payload for {item.key}: {e}")
        return item

    async def enrich_all(
        self,
        items: list[ItemT],
        limit: int = 100,
        concurrency: int = 5,
    ) -> list[ItemT]:
        """
        Enrich up to ``limit`` items needing it, ``concurrency`` at a time.

        Output order matches input order; items not looked up pass through.
        """
        candidates = [i for i, item in enumerate(items) if self.needs_enrichment(item)]
        candidates = candidates[: max(limit, 0)]
        if not candidates:
            return list(items)

        semaphore = asyncio.Semaphore(concurrency)
        result = list(items)

        async with self._client() as client:

            async def run(index: int) -> None:
                async with semaphore:
                    result[index] = await self.enrich(items[index], client)

            await asyncio.gather(*(run(i) for i in candidates))

        enriched = sum(1 for i in candidates if result[i] is not items[i])
        logger.info(f"Enriched {enriched}/{len(candidates)} items")
        return result


class RepositoryEnricher(BaseEnricher[Repository]):
    """Completes repositories from ``/repos/{owner}/{name}`` and its README."""

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = "LLM-News-Agent",
        base_url: str = GITHUB_API_URL,
    ):
        super().__init__(timeout, transport)
        self.token = token
        self.user_agent = user_agent
        self.base_url = base_url

    def _headers(self) -> dict[str, str]:
        return github_api_headers(self.token, self.user_agent)

    def needs_enrichment(self, item: Repository) -> bool:
        return item.owner_and_repo is not None and (
            item.last_commit is None or not item.tech_stack
        )

    async def _enrich(self, client: httpx.AsyncClient, item: Repository) -> Repository:
        parts = item.owner_and_repo
        if parts is None:
            return item
        owner, name = parts
        repo_url = f"{self.base_url}/repos/{owner}/{name}"

        # A failed metadata lookup raises here, skipping the README check
        response = await client.get(repo_url)
        response.raise_for_status()
        update = self._metadata_update(item, response.json())

        if await self._readme_exists(client, f"{repo_url}/readme"):
            update["has_readme"] = True
            update["has_docs"] = True
            if not update.get("docs_url"):
                update["docs_url"] = f"{GITHUB_URL}/{item.name}#readme"

        update["enriched"] = True
        return item.model_copy(update=update)

    def _metadata_update(self, item: Repository, data: dict[str, Any]) -> dict[str, Any]:
        update: dict[str, Any] = {}

        if data.get("description"):
            update["description"] = data["description"]
        if data.get("language"):
            update["language"] = data["language"]

        stars = int(data.get("stargazers_count") or 0) or item.stars
        forks = int(data.get("forks_count") or 0)
        update["stars"] = stars
        update["forks"] = forks

        if data.get("pushed_at"):
            last_commit, estimated = parse_timestamp(data["pushed_at"])
            if not estimated or item.last_commit is None:
                update["last_commit"] = last_commit
                update["timestamp_estimated"] = estimated

        if data.get("topics"):
            update["tech_stack"] = list(data["topics"])

        # Fork growth follows star growth at the repository's fork/star ratio
        if stars > 0:
            ratio = forks / stars
            if not item.gained_forks:
                update["gained_forks"] = int(item.gained_stars * ratio)
            if not item.trend_metrics.forks_24h:
                update["trend_metrics"] = item.trend_metrics.model_copy(
                    update={"forks_24h": int(item.trend_metrics.stars_24h * ratio)}
                )

        has_wiki = bool(data.get("has_wiki"))
        update["has_wiki"] = has_wiki
        update["has_docs"] = has_wiki or bool(data.get("has_pages"))
        if has_wiki:
            update["docs_url"] = f"{GITHUB_URL}/{item.name}/wiki"

        return update

    async def _readme_exists(self, client: httpx.AsyncClient, url: str) -> bool:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            logger.debug(f"README check failed for {url}: {e}")
            return False
        return response.status_code == 200


class PaperEnricher(BaseEnricher[Paper]):
    """
    Replaces placeholder data with Semantic Scholar metadata.

    Looks the paper up by title, then checks that the PDF link resolves.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = SEMANTIC_SCHOLAR_API_URL,
    ):
        super().__init__(timeout, transport)
        self.api_key = api_key
        self.base_url = base_url

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def needs_enrichment(self, item: Paper) -> bool:
        return item.citations_estimated or item.authors == [UNKNOWN_AUTHOR]

    async def _enrich(self, client: httpx.AsyncClient, item: Paper) -> Paper:
        response = await client.get(
            f"{self.base_url}/paper/search/match",
            params={"query": item.title, "fields": ",".join(MATCH_FIELDS)},
        )
        response.raise_for_status()

        matches = response.json().get("data") or []
        if not matches:
            return item
        update = self._match_update(item, matches[0])

        pdf_url = update.get("pdf_url") or item.pdf_url
        if pdf_url and not await self._pdf_exists(client, pdf_url):
            update["pdf_url"] = ""

        update["enriched"] = True
        return item.model_copy(update=update)

    def _match_update(self, item: Paper, match: dict[str, Any]) -> dict[str, Any]:
        update: dict[str, Any] = {}

        authors = [
            a["name"] for a in match.get("authors") or []
            if isinstance(a, dict) and a.get("name")
        ]
        if authors and item.authors == [UNKNOWN_AUTHOR]:
            update["authors"] = authors

        if match.get("citationCount") is not None:
            update["citation_count"] = max(int(match["citationCount"]), 0)
            update["citations_estimated"] = False

        if item.date_estimated and match.get("publicationDate"):
            published, estimated = parse_timestamp(match["publicationDate"])
            if not estimated:
                update["published_date"] = published
                update["date_estimated"] = False

        arxiv_id = (match.get("externalIds") or {}).get("ArXiv")
        if arxiv_id and not item.arxiv_id:
            update["arxiv_id"] = arxiv_id

        pdf_info = match.get("openAccessPdf")
        if isinstance(pdf_info, dict) and pdf_info.get("url"):
            update["pdf_url"] = pdf_info["url"]
        elif arxiv_id and not item.pdf_url:
            update["pdf_url"] = f"https://arxiv.org/pdf/{arxiv_id}"

        return update

    async def _pdf_exists(self, client: httpx.AsyncClient, url: str) -> bool:
        try:
            response = await client.head(url)
        except httpx.HTTPError as e:
            logger.debug(f"PDF check failed for {url}: {e}")
            return False
        return response.is_success
