"""
Shared fixtures: static fetchers and item factories.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import pytest

from llm_news.errors import FetchError
from llm_news.models.domain import ContentType, Paper, Repository
from llm_news.services.data_ingestion.base import BaseFetcher, SourceConfig, SourceType

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class StaticFetcher(BaseFetcher):
    """Returns fixed items, or raises a fixed error, without touching the network."""

    def __init__(
        self,
        name: str,
        items: list,
        priority: int = 1,
        content_type: ContentType = ContentType.REPOSITORIES,
        error: Optional[FetchError] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        super().__init__(
            SourceConfig(
                name=name,
                source_type=SourceType.STATIC,
                base_url="https://example.invalid",
                priority=priority,
            )
        )
        self.content_type = content_type
        self.items = items
        self.error = error
        self.gate = gate
        self.calls = 0

    async def _fetch(self, client: httpx.AsyncClient) -> list:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.items)


def make_repo(name: str, days_old: Optional[float] = None, **fields) -> Repository:
    last_commit = NOW - timedelta(days=days_old) if days_old is not None else None
    fields.setdefault("url", f"https://github.com/{name}")
    fields.setdefault("last_updated", NOW)
    return Repository(name=name, last_commit=last_commit, **fields)


def make_paper(title: str, days_old: float = 1, **fields) -> Paper:
    return Paper(title=title, published_date=NOW - timedelta(days=days_old), **fields)


@pytest.fixture
def now() -> datetime:
    return NOW
