"""
Technical article sources: Hacker News, Dev.to and CSDN.

These feed the paper pipeline alongside Papers with Code. Engagement
(score, reactions) stands in for the citation count.
"""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from llm_news.core.taxonomy import PAPER_KEYWORD_TERMS, is_ai_article, matching_terms
from llm_news.errors import FetchError, FetchErrorKind
from llm_news.models.domain import ContentType, Paper, utcnow
from llm_news.services.data_ingestion.base import (
    DEFAULT_TIMEOUT,
    BaseFetcher,
    SourceConfig,
    SourceType,
    normalize_authors,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

MAX_ARTICLES = 5


def extract_keywords(text: str) -> list[str]:
    return matching_terms(text, PAPER_KEYWORD_TERMS)


# =============================================================================
# Hacker News
# =============================================================================


def create_hackernews_config(timeout: float = DEFAULT_TIMEOUT) -> SourceConfig:
    return SourceConfig(
        name="HackerNews",
        source_type=SourceType.JSON_API,
        base_url="https://hacker-news.firebaseio.com/v0",
        timeout=timeout,
    )


class HackerNewsFetcher(BaseFetcher[Paper]):
    """
    AI-related stories among the current top stories.

    Only the first ``story_limit`` ids are looked up; a failed story lookup
    is logged and skipped.
    """

    content_type = ContentType.PAPERS

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        story_limit: int = 30,
        max_articles: int = MAX_ARTICLES,
    ):
        super().__init__(config or create_hackernews_config(), transport)
        self.story_limit = story_limit
        self.max_articles = max_articles

    async def _fetch(self, client: httpx.AsyncClient) -> list[Paper]:
        story_ids = await self._get_json(client, f"{self.config.base_url}/topstories.json")
        if not isinstance(story_ids, list):
            raise FetchError(self.name, FetchErrorKind.DECODE, "top stories is not a list")

        stories = await asyncio.gather(
            *(self._fetch_story(client, story_id) for story_id in story_ids[: self.story_limit])
        )

        papers = []
        for story in stories:
            if story is None or not is_ai_article(story.get("title") or ""):
                continue
            papers.append(self._parse_story(story))
            if len(papers) >= self.max_articles:
                break
        return papers

    async def _fetch_story(
        self, client: httpx.AsyncClient, story_id: Any
    ) -> Optional[dict[str, Any]]:
        try:
            story = await self._get_json(client, f"{self.config.base_url}/item/{story_id}.json")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch HackerNews story {story_id}: {e}")
            return None
        return story if isinstance(story, dict) else None

    def _parse_story(self, story: dict[str, Any]) -> Paper:
        title = story.get("title") or ""
        text = BeautifulSoup(story.get("text") or "", "html.parser").get_text(" ", strip=True)
        published, date_estimated = parse_timestamp(story.get("time"))

        return Paper(
            title=title,
            url=story.get("url") or "",
            authors=normalize_authors(story.get("by")),
            published_date=published,
            source=self.name,
            summary=text,
            keywords=extract_keywords(f"{title} {text}"),
            citation_count=max(int(story.get("score") or 0), 0),
            date_estimated=date_estimated,
        )


# =============================================================================
# Dev.to
# =============================================================================


def create_devto_config(timeout: float = DEFAULT_TIMEOUT) -> SourceConfig:
    return SourceConfig(
        name="Dev.to",
        source_type=SourceType.JSON_API,
        base_url="https://dev.to/api",
        timeout=timeout,
    )


def parse_devto_tags(article: dict[str, Any]) -> list[str]:
    """Tags arrive either as a list or as a comma separated string."""
    for field in ("tag_list", "tags"):
        raw = article.get(field)
        if isinstance(raw, list):
            return [tag for tag in raw if isinstance(tag, str) and tag]
        if isinstance(raw, str) and raw.strip():
            return [tag.strip() for tag in raw.split(",") if tag.strip()]
    return []


class DevToFetcher(BaseFetcher[Paper]):
    """Top articles under the ``ai`` tag."""

    content_type = ContentType.PAPERS

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config or create_devto_config(), transport)

    async def _fetch(self, client: httpx.AsyncClient) -> list[Paper]:
        articles = await self._get_json(
            client, f"{self.config.base_url}/articles", params={"tag": "ai", "top": 5}
        )
        if not isinstance(articles, list):
            raise FetchError(self.name, FetchErrorKind.DECODE, "articles is not a list")

        papers = []
        for article in articles:
            if not isinstance(article, dict) or not article.get("title"):
                continue
            user = article.get("user") if isinstance(article.get("user"), dict) else {}
            published, date_estimated = parse_timestamp(article.get("published_at"))

            papers.append(
                Paper(
                    title=article["title"],
                    url=article.get("url") or "",
                    authors=normalize_authors(user.get("name")),
                    published_date=published,
                    source=self.name,
                    summary=article.get("description") or "",
                    keywords=parse_devto_tags(article),
                    citation_count=max(int(article.get("positive_reactions_count") or 0), 0),
                    date_estimated=date_estimated,
                )
            )
        return papers


# =============================================================================
# CSDN
# =============================================================================


def create_csdn_config(timeout: float = DEFAULT_TIMEOUT) -> SourceConfig:
    return SourceConfig(
        name="CSDN",
        source_type=SourceType.HTML_PAGE,
        base_url="https://blog.csdn.net",
        timeout=timeout,
    )


class CSDNFetcher(BaseFetcher[Paper]):
    """
    Article links from the CSDN AI section.

    The page carries no dates, authors or engagement: publication is "now"
    (flagged estimated) and the citation count is a fixed nominal value.
    """

    content_type = ContentType.PAPERS

    NOMINAL_CITATIONS = 5

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_articles: int = MAX_ARTICLES,
    ):
        super().__init__(config or create_csdn_config(), transport)
        self.max_articles = max_articles

    async def _fetch(self, client: httpx.AsyncClient) -> list[Paper]:
        response = await client.get(f"{self.config.base_url}/nav/ai")
        response.raise_for_status()
        return self.parse(response.text)

    def parse(self, html: str) -> list[Paper]:
        soup = BeautifulSoup(html, "html.parser")
        now = utcnow()
        papers = []

        for link in soup.select("a.title"):
            title = " ".join(link.get_text().split())
            href = link.get("href") or ""
            if not title or not href or not is_ai_article(title):
                continue

            papers.append(
                Paper(
                    title=title,
                    url=urljoin(self.config.base_url, href),
                    authors=normalize_authors("CSDN"),
                    published_date=now,
                    source=self.name,
                    summary=title,
                    keywords=extract_keywords(title),
                    citation_count=self.NOMINAL_CITATIONS,
                    date_estimated=True,
                )
            )
            if len(papers) >= self.max_articles:
                break

        return papers
