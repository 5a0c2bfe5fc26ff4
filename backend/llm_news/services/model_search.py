"""
On-demand GitHub search for repositories related to a named model.

Unlike the pipelines this runs inside the request: results are not cached
or published to a snapshot.
"""

import logging
from typing import Optional

import httpx

from llm_news.core.taxonomy import model_search_terms
from llm_news.errors import FetchError
from llm_news.models.domain import Repository, utcnow
from llm_news.services.data_ingestion.github import GitHubSearchFetcher, create_search_config
from llm_news.services.scoring import RepositoryScorer

logger = logging.getLogger(__name__)


def build_query(terms: tuple[str, ...]) -> str:
    return " OR ".join(terms) + " AI language model"


def is_relevant(repo: Repository, model: str, terms: tuple[str, ...]) -> bool:
    """A result mentions one of the terms, or its name contains the model name."""
    name = repo.name.lower()
    description = repo.description.lower()
    if model.lower() in name:
        return True
    return any(t.lower() in name or t.lower() in description for t in terms)


class ModelRepoSearch:
    """Searches GitHub for one model's repositories, sorted by stars."""

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = "LLM-News-Agent",
        scorer: Optional[RepositoryScorer] = None,
    ):
        self.fetcher = GitHubSearchFetcher(
            create_search_config(token, timeout),
            transport,
            user_agent=user_agent,
        )
        self.scorer = scorer or RepositoryScorer()

    async def search(self, model: str) -> list[Repository]:
        """
        Search for ``model``'s repositories.

        Unknown model names search for themselves. A failed search yields an
        empty list.
        """
        terms = model_search_terms(model)
        query = build_query(terms)

        try:
            repos = await self.fetcher.search_once(query, sort="stars")
        except (httpx.HTTPError, FetchError, ValueError) as e:
            logger.warning(f"Model search for '{model}' failed: {e}")
            return []

        relevant = [r for r in repos if is_relevant(r, model, terms)]
        logger.info(f"Model search '{model}': {len(relevant)}/{len(repos)} relevant")
        return self.scorer.score_all(relevant, utcnow())
