"""
Base classes and helpers for source fetchers.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Optional, Sequence

import httpx

from llm_news.errors import FetchError, FetchErrorKind
from llm_news.models.domain import UNKNOWN_AUTHOR, ContentType, ItemT, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Layouts tried in order when a source does not use ISO 8601
DATE_LAYOUTS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d",
)


class SourceType(str, Enum):
    """Type of content source."""
    HTML_PAGE = "html_page"
    JSON_API = "json_api"
    STATIC = "static"


@dataclass
class SourceConfig:
    """Configuration for a data source."""
    name: str
    source_type: SourceType
    base_url: str
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    enabled: bool = True
    priority: int = 1  # Higher = more authoritative when records collide


@dataclass
class FetchResult(Generic[ItemT]):
    """Outcome of one fetcher on one run: partial items plus an optional error."""
    source_name: str
    items: list[ItemT] = field(default_factory=list)
    error: Optional[FetchError] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        detail = f", error={self.error.kind.value}" if self.error else ""
        return (
            f"{status} {self.source_name}: fetched={len(self.items)}"
            f"{detail}, time={self.duration_seconds:.1f}s"
        )


class BaseFetcher(ABC, Generic[ItemT]):
    """
    Abstract base class for source fetchers.

    Each fetcher handles:
    - Issuing its outbound requests with an explicit timeout
    - Parsing the source-specific payload (HTML or JSON)
    - Mapping records to Repository or Paper items

    ``fetch()`` never raises: failures come back as a FetchError on the result.
    """

    content_type: ContentType

    def __init__(
        self,
        config: SourceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.name = config.name
        self.transport = transport

    @property
    def priority(self) -> int:
        return self.config.priority

    async def fetch(self) -> FetchResult[ItemT]:
        """Run the fetcher, converting every failure into a FetchError."""
        start_time = time.monotonic()
        error: Optional[FetchError] = None
        items: list[ItemT] = []

        try:
            async with self._client() as client:
                items = await self._fetch(client)
        except FetchError as e:
            error = e
        except httpx.HTTPError as e:
            error = FetchError.from_http_error(self.name, e)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            error = FetchError(self.name, FetchErrorKind.DECODE, str(e))

        if error is None and not items:
            logger.info(f"{self.name} returned no items")

        if error is not None:
            logger.warning(f"Source {self.name} failed: {error}")

        return FetchResult(
            source_name=self.name,
            items=items,
            error=error,
            duration_seconds=time.monotonic() - start_time,
        )

    @abstractmethod
    async def _fetch(self, client: httpx.AsyncClient) -> list[ItemT]:
        """
        Fetch and parse items from this source.

        May raise httpx.HTTPError, FetchError or decode errors; ``fetch()``
        maps them onto the result.
        """

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": BROWSER_USER_AGENT}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.timeout,
            headers=self._headers(),
            follow_redirects=True,
            transport=self.transport,
        )

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def health_check(self) -> bool:
        """Check if the source is accessible."""
        result = await self.fetch()
        return result.success and len(result.items) > 0


# =============================================================================
# Field helpers shared by fetchers
# =============================================================================


def parse_timestamp(value: Any) -> tuple[datetime, bool]:
    """
    Parse a source timestamp into an aware UTC datetime.

    Returns ``(timestamp, estimated)``; when the value is missing or
    unparsable the timestamp is "now" and ``estimated`` is True.
    """
    if isinstance(value, datetime):
        return _as_utc(value), False

    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc), False

    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00"))), False
        except ValueError:
            pass
        for layout in DATE_LAYOUTS:
            try:
                return _as_utc(datetime.strptime(text, layout)), False
            except ValueError:
                continue

    return utcnow(), True


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_authors(raw: Any) -> list[str]:
    """
    Normalize an author field into a list of names.

    Accepts a single string, a list of strings, or a list of objects with a
    ``name`` key. Falls back to ``[UNKNOWN_AUTHOR]`` if nothing parses.
    """
    authors: list[str] = []

    if isinstance(raw, str):
        if raw.strip():
            authors.append(raw.strip())
    elif isinstance(raw, Sequence):
        for entry in raw:
            if isinstance(entry, str):
                name = entry
            elif isinstance(entry, dict):
                name = entry.get("name") or ""
            else:
                continue
            if isinstance(name, str) and name.strip():
                authors.append(name.strip())

    return authors or [UNKNOWN_AUTHOR]


_COUNT_RE = re.compile(r"[\d,]+")


def parse_count(text: str) -> int:
    """Extract the first integer (with thousands separators) from text; 0 if none."""
    match = _COUNT_RE.search(text or "")
    if not match:
        return 0
    digits = match.group(0).replace(",", "")
    return int(digits) if digits else 0


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


def days_since(timestamp: datetime, now: Optional[datetime] = None) -> float:
    now = now or utcnow()
    return (now - _as_utc(timestamp)).total_seconds() / 86400
