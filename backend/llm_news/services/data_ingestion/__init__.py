"""
Data Ingestion Services for LLM News.

This module provides connectors to fetch AI content from various sources:
- Repositories (GitHub trending and search, Papers with Code, curated list)
- Papers and articles (Papers with Code, Hacker News, Dev.to, CSDN)
- Follow-up enrichment (GitHub REST, Semantic Scholar)
- Order-independent merging and staleness selection
"""

from llm_news.services.data_ingestion.base import (
    BaseFetcher,
    FetchResult,
    SourceConfig,
    SourceType,
)
from llm_news.services.data_ingestion.github import GitHubSearchFetcher, GitHubTrendingFetcher
from llm_news.services.data_ingestion.papers_with_code import (
    PapersWithCodePaperFetcher,
    PapersWithCodeRepoFetcher,
)
from llm_news.services.data_ingestion.curated import CuratedRepoFetcher
from llm_news.services.data_ingestion.articles import CSDNFetcher, DevToFetcher, HackerNewsFetcher
from llm_news.services.data_ingestion.enrichment import PaperEnricher, RepositoryEnricher
from llm_news.services.data_ingestion.aggregator import ItemAggregator

__all__ = [
    "BaseFetcher",
    "FetchResult",
    "SourceConfig",
    "SourceType",
    "GitHubTrendingFetcher",
    "GitHubSearchFetcher",
    "PapersWithCodePaperFetcher",
    "PapersWithCodeRepoFetcher",
    "CuratedRepoFetcher",
    "HackerNewsFetcher",
    "DevToFetcher",
    "CSDNFetcher",
    "RepositoryEnricher",
    "PaperEnricher",
    "ItemAggregator",
]
