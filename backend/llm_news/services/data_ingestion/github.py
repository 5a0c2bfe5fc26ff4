"""
GitHub sources: the trending pages (HTML) and the repository search API.

Trending pages carry no timestamps or topics; those are filled later by
the enricher. Search results already carry ``pushed_at`` and topics.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from llm_news.core.taxonomy import AI_KEYWORDS, CORE_AI_KEYWORDS
from llm_news.errors import FetchError, FetchErrorKind
from llm_news.models.domain import ContentType, Repository, TrendMetrics
from llm_news.services.data_ingestion.base import (
    DEFAULT_TIMEOUT,
    BaseFetcher,
    SourceConfig,
    SourceType,
    parse_count,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

GITHUB_URL = "https://github.com"
GITHUB_API_URL = "https://api.github.com"

# Trending pages: (path, period)
TRENDING_PAGES = [
    ("/trending", "daily"),
    ("/trending?since=weekly", "weekly"),
    ("/trending?since=monthly", "monthly"),
    ("/trending/python", "daily"),
    ("/trending/javascript", "daily"),
    ("/trending/typescript", "daily"),
    ("/trending/jupyter-notebook", "daily"),
    ("/trending/cpp", "daily"),
    ("/trending/go", "daily"),
]

# Days covered by each trending period, for per-day growth
PERIOD_DAYS = {"daily": 1, "weekly": 7, "monthly": 30}

SEARCH_QUERIES = [
    "topic:artificial-intelligence sort:stars",
    "topic:ai sort:stars",
    "topic:machine-learning sort:stars",
    "topic:deep-learning sort:stars",
    "topic:llm sort:stars",
    "topic:nlp sort:stars",
    "topic:language-model sort:stars",
    "topic:diffusion-models sort:stars",
    "language:cpp topic:ai sort:stars",
    "language:cpp topic:machine-learning sort:stars",
    "language:cpp topic:neural-network sort:stars",
    "language:cpp topic:deep-learning sort:stars",
    "language:go topic:ai sort:stars",
    "language:go topic:machine-learning sort:stars",
    "language:go topic:llm sort:stars",
    "language:go topic:rag sort:stars",
]


def github_api_headers(token: Optional[str], user_agent: str) -> dict[str, str]:
    """Headers for GitHub REST calls; the token only raises rate limits."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": user_agent,
    }
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


def repository_from_api(item: dict[str, Any], source: str) -> Optional[Repository]:
    """Map a GitHub REST repository object onto a Repository."""
    full_name = item.get("full_name")
    if not full_name:
        return None

    stars = int(item.get("stargazers_count") or 0)
    last_commit = None
    timestamp_estimated = False
    pushed_at = item.get("pushed_at") or item.get("updated_at")
    if pushed_at:
        last_commit, timestamp_estimated = parse_timestamp(pushed_at)

    return Repository(
        name=full_name,
        url=item.get("html_url") or f"{GITHUB_URL}/{full_name}",
        description=item.get("description") or "",
        language=item.get("language") or "",
        stars=stars,
        forks=int(item.get("forks_count") or 0),
        last_commit=last_commit,
        tech_stack=list(item.get("topics") or []),
        # Rough per-day growth estimate; search results carry no trend data
        trend_metrics=TrendMetrics(stars_24h=stars // 1000),
        source=source,
        timestamp_estimated=timestamp_estimated,
    )


def is_ai_repository(repo: Repository, keywords: tuple[str, ...] = AI_KEYWORDS) -> bool:
    name = repo.name.lower()
    description = repo.description.lower()
    return any(kw in name or kw in description for kw in keywords)


def filter_ai_repositories(repos: list[Repository]) -> list[Repository]:
    """
    Keep AI-related repositories.

    Strong matches on the core vocabulary come first, followed by repositories
    that only match the broad keyword list.
    """
    strong: list[Repository] = []
    weak: list[Repository] = []

    for repo in repos:
        if is_ai_repository(repo, CORE_AI_KEYWORDS):
            strong.append(repo)
        elif is_ai_repository(repo, AI_KEYWORDS):
            weak.append(repo)

    return strong + weak


def create_trending_config(timeout: float = DEFAULT_TIMEOUT) -> SourceConfig:
    return SourceConfig(
        name="GitHub",
        source_type=SourceType.HTML_PAGE,
        base_url=GITHUB_URL,
        timeout=timeout,
        priority=3,  # Only source with real trend deltas
    )


def create_search_config(
    token: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> SourceConfig:
    return SourceConfig(
        name="GitHub Search",
        source_type=SourceType.JSON_API,
        base_url=GITHUB_API_URL,
        api_key=token,
        timeout=timeout,
        priority=2,
    )


class GitHubTrendingFetcher(BaseFetcher[Repository]):
    """
    Scrapes the GitHub trending pages.

    Rows are selected structurally and subfields extracted positionally;
    a missing subfield yields a zero value rather than a failed fetch.
    """

    content_type = ContentType.REPOSITORIES

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        pages: Optional[list[tuple[str, str]]] = None,
    ):
        super().__init__(config or create_trending_config(), transport)
        self.pages = pages or TRENDING_PAGES

    async def _fetch(self, client: httpx.AsyncClient) -> list[Repository]:
        pages = await asyncio.gather(
            *(self._fetch_page(client, path) for path, _ in self.pages)
        )

        errors = [page for page in pages if isinstance(page, FetchError)]
        if len(errors) == len(self.pages):
            raise errors[0]

        repos: list[Repository] = []
        seen: set[str] = set()
        for (path, period), html in zip(self.pages, pages):
            if isinstance(html, FetchError):
                continue
            for repo in parse_trending_page(html, period, source=self.name):
                if repo.name in seen:
                    continue
                seen.add(repo.name)
                repos.append(repo)

        filtered = filter_ai_repositories(repos)
        logger.info(
            f"GitHub trending: {len(repos)} repositories, {len(filtered)} AI-related"
        )
        return filtered

    async def _fetch_page(self, client: httpx.AsyncClient, path: str) -> str | FetchError:
        url = f"{self.config.base_url}{path}"
        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.text
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            return FetchError.from_http_error(self.name, e)


def parse_trending_page(html: str, period: str, source: str = "GitHub") -> list[Repository]:
    """Parse the repository rows of one trending page."""
    soup = BeautifulSoup(html, "html.parser")
    period_days = PERIOD_DAYS.get(period, 1)
    repos = []

    for row in soup.select("article.Box-row"):
        repo = _parse_trending_row(row, period_days, source)
        if repo is not None:
            repos.append(repo)

    return repos


def _parse_trending_row(row: Tag, period_days: int, source: str) -> Optional[Repository]:
    link = row.select_one("h2 a")
    if link is None:
        return None

    parts = [part.strip() for part in link.get_text().split("/")]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    name = f"{parts[0]}/{parts[1]}"

    stars = parse_count(_text(row.select_one("a.Link--muted[href$='stargazers']")))
    forks = parse_count(_text(row.select_one("a.Link--muted[href$='forks']")))
    gained = parse_count(_text(row.select_one("span.d-inline-block.float-sm-right")))

    return Repository(
        name=name,
        url=f"{GITHUB_URL}/{name}",
        description=_text(row.select_one("p")),
        language=_text(row.select_one("span[itemprop='programmingLanguage']")),
        stars=stars,
        forks=forks,
        gained_stars=gained,
        trend_metrics=TrendMetrics(stars_24h=gained // period_days),
        source=source,
    )


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return " ".join(element.get_text().split())


class GitHubSearchFetcher(BaseFetcher[Repository]):
    """Supplements trending with top-starred repositories from AI topic searches."""

    content_type = ContentType.REPOSITORIES

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        count: int = 50,
        queries: Optional[list[str]] = None,
        user_agent: str = "LLM-News-Agent",
    ):
        super().__init__(config or create_search_config(), transport)
        self.count = count
        self.queries = queries or SEARCH_QUERIES
        self.user_agent = user_agent

    def _headers(self) -> dict[str, str]:
        return github_api_headers(self.config.api_key, self.user_agent)

    async def _fetch(self, client: httpx.AsyncClient) -> list[Repository]:
        if self.count <= 0:
            return []

        per_query = self.count // len(self.queries) + 1
        repos: list[Repository] = []
        seen: set[str] = set()
        failures: list[FetchError] = []

        for query in self.queries:
            if len(repos) >= self.count:
                break
            try:
                items = await self.search(client, query, per_page=per_query)
            except httpx.HTTPError as e:
                logger.warning(f"GitHub search failed for '{query}': {e}")
                failures.append(FetchError.from_http_error(self.name, e))
                continue

            for repo in items:
                if repo.name in seen:
                    continue
                seen.add(repo.name)
                repos.append(repo)
                if len(repos) >= self.count:
                    break

        if not repos and failures:
            raise failures[0]

        return repos

    async def search(
        self,
        client: httpx.AsyncClient,
        query: str,
        per_page: int = 30,
        sort: Optional[str] = None,
    ) -> list[Repository]:
        """Run one repository search query."""
        params: dict[str, Any] = {"q": query, "per_page": per_page}
        if sort:
            params["sort"] = sort
            params["order"] = "desc"

        data = await self._get_json(
            client, f"{self.config.base_url}/search/repositories", params=params
        )
        if not isinstance(data, dict):
            raise FetchError(self.name, FetchErrorKind.DECODE, "search payload is not an object")

        repos = []
        for item in data.get("items") or []:
            repo = repository_from_api(item, source=self.name)
            if repo is not None:
                repos.append(repo)
        return repos

    async def search_once(self, query: str, sort: Optional[str] = None) -> list[Repository]:
        """Run a single search on a fresh client."""
        async with self._client() as client:
            return await self.search(client, query, sort=sort)
