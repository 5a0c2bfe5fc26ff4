"""
Domain models for LLM News.
These are the core business entities, independent of source or API representation.
"""
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Generic, Optional, TypeVar, Union
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_AUTHOR = "Unknown Author"

TRACKING_PARAMS = {
    "utm_source", "utm_medium", "utm_campaign", "utm_content",
    "ref", "source", "via", "fbclid", "gclid",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_url(url: str) -> str:
    """Normalize URL for deduplication."""
    parsed = urlparse(url.strip())

    params = parse_qs(parsed.query)
    clean_params = {
        k: v for k, v in params.items()
        if k.lower() not in TRACKING_PARAMS
    }

    # Rebuild URL without tracking, fragment or trailing slash
    clean_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path.rstrip('/')}"
    if clean_params:
        clean_url += "?" + "&".join(
            f"{k}={v[0]}" for k, v in sorted(clean_params.items())
        )

    return clean_url.lower()


def normalize_title(title: str) -> str:
    """Normalize title for matching."""
    title = title.lower()
    title = re.sub(r"[^\w\s]", " ", title)
    return " ".join(title.split())


# =============================================================================
# Enums
# =============================================================================

class ContentType(str, Enum):
    """Kinds of content collected by the pipelines."""
    REPOSITORIES = "repositories"
    PAPERS = "papers"


# =============================================================================
# Items
# =============================================================================

class TrendMetrics(BaseModel):
    """Short-window engagement deltas, reset every collection window."""
    stars_24h: int = Field(default=0, ge=0)
    forks_24h: int = Field(default=0, ge=0)
    views_7d: int = Field(default=0, ge=0)


class Repository(BaseModel):
    """A code repository discovered by one of the repository sources."""

    model_config = ConfigDict(protected_namespaces=())

    name: str  # owner/name, the identity key
    url: str = ""
    description: str = ""
    language: str = ""
    source: str = ""

    # Engagement
    stars: int = Field(default=0, ge=0)
    forks: int = Field(default=0, ge=0)
    gained_stars: int = Field(default=0, ge=0)
    gained_forks: int = Field(default=0, ge=0)
    trend_metrics: TrendMetrics = Field(default_factory=TrendMetrics)

    # Timestamps
    last_updated: datetime = Field(default_factory=utcnow)
    last_commit: Optional[datetime] = None

    # Augmentation (filled by enrichment)
    tech_stack: list[str] = Field(default_factory=list)
    has_docs: bool = False
    has_wiki: bool = False
    has_readme: bool = False
    docs_url: str = ""
    enriched: bool = False

    # Paper linkage (papers-with-code style sources)
    paper_url: str = ""
    paper_title: str = ""
    authors: list[str] = Field(default_factory=list)

    # Derived
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    model_categories: list[str] = Field(default_factory=list)

    # Provenance: a source timestamp existed but could not be parsed
    timestamp_estimated: bool = Field(default=False, exclude=True)

    @property
    def key(self) -> str:
        return self.name

    @property
    def owner_and_repo(self) -> Optional[tuple[str, str]]:
        parts = self.name.split("/")
        if len(parts) != 2 or not all(parts):
            return None
        return parts[0], parts[1]

    @property
    def last_activity(self) -> Optional[datetime]:
        return self.last_commit

    @property
    def score(self) -> float:
        return self.relevance_score


class Paper(BaseModel):
    """A research paper or technical article."""

    title: str
    url: str = ""
    authors: list[str] = Field(default_factory=lambda: [UNKNOWN_AUTHOR])
    published_date: datetime = Field(default_factory=utcnow)
    source: str = ""
    summary: str = ""
    keywords: list[str] = Field(default_factory=list)

    # Engagement
    citation_count: int = Field(default=0, ge=0)
    citation_velocity: float = Field(default=0.0, ge=0.0)

    # Derived (0-5 scales)
    novelty_score: float = Field(default=0.0, ge=0.0, le=5.0)
    reproducibility_score: float = Field(default=0.0, ge=0.0, le=5.0)
    relevance_score: float = Field(default=0.0, ge=0.0, le=5.0)
    categories: list[str] = Field(default_factory=list)
    core_contributions: list[str] = Field(default_factory=list)
    key_techniques: list[str] = Field(default_factory=list)

    # Augmentation (filled by enrichment)
    arxiv_id: str = ""
    pdf_url: str = ""
    enriched: bool = False

    # Provenance
    date_estimated: bool = Field(default=False, exclude=True)
    citations_estimated: bool = Field(default=False, exclude=True)

    @property
    def key(self) -> str:
        """Canonical URL, or the normalized title when there is no URL."""
        if self.url.strip():
            return normalize_url(self.url)
        return normalize_title(self.title)

    @property
    def last_activity(self) -> Optional[datetime]:
        return self.published_date

    @property
    def score(self) -> float:
        return self.relevance_score


Item = Union[Repository, Paper]
ItemT = TypeVar("ItemT", Repository, Paper)


# =============================================================================
# Snapshots and API responses
# =============================================================================

class Snapshot(BaseModel, Generic[ItemT]):
    """Immutable published result set for one content type."""

    model_config = ConfigDict(frozen=True)

    items: tuple[ItemT, ...] = ()
    last_updated: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self.items)


class StatsResponse(BaseModel):
    last_updated: Optional[datetime] = None
    trending_repos_count: int = 0
    research_papers_count: int = 0


class ModelReposResponse(BaseModel):
    model: str
    repos: list[Repository]
