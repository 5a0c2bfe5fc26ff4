"""
Item Aggregator - Orchestrates collection from all sources of one content type.

This module coordinates fetching from multiple sources, merges records that
share an identity key, and applies the staleness filter with its
minimum-size floor.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Generic, Iterable, Optional

from pydantic import BaseModel

from llm_news.models.domain import UNKNOWN_AUTHOR, ItemT, utcnow
from llm_news.services.data_ingestion.base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)

# Provenance flags travel with the field they describe
PROVENANCE_FIELDS = {
    "last_commit": "timestamp_estimated",
    "published_date": "date_estimated",
    "citation_count": "citations_estimated",
}
NEVER_FILLED = set(PROVENANCE_FIELDS.values()) | {"enriched", "source"}


def is_empty(value: Any) -> bool:
    """A field value that carries no information."""
    if value is None or value is False:
        return True
    # Author sentinel stands for "no authors"
    if value == [UNKNOWN_AUTHOR]:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, BaseModel):
        return all(is_empty(getattr(value, name)) for name in type(value).model_fields)
    return False


def completeness(item: BaseModel) -> int:
    """Number of populated fields."""
    return sum(
        1 for name in type(item).model_fields
        if name not in NEVER_FILLED and not is_empty(getattr(item, name))
    )


class ItemAggregator(Generic[ItemT]):
    """
    Aggregates items from multiple fetchers with deduplication.

    Features:
    - Concurrent fetching from all sources
    - Order-independent merge by identity key
    - Priority-based record selection for duplicates
    - Staleness filtering with a minimum-size floor
    """

    def __init__(
        self,
        fetchers: Iterable[BaseFetcher[ItemT]],
        max_age_days: float = 180,
        min_items: int = 0,
    ):
        """
        Initialize the aggregator.

        Args:
            fetchers: Enabled fetchers for one content type
            max_age_days: Items whose last activity is older are stale
            min_items: Floor that overrides the staleness filter
        """
        self.fetchers: list[BaseFetcher[ItemT]] = list(fetchers)
        self.max_age = timedelta(days=max_age_days)
        self.min_items = min_items
        self.priorities = {f.name: f.priority for f in self.fetchers}

        logger.info(f"Initialized aggregator with {len(self.fetchers)} sources")

    async def fetch_all(self) -> list[FetchResult[ItemT]]:
        """Fetch from all sources concurrently; failures come back inside the results."""
        results = await asyncio.gather(*(f.fetch() for f in self.fetchers))

        for result in results:
            logger.info(str(result))

        return list(results)

    # =========================================================================
    # Merge
    # =========================================================================

    def merge(self, collections: Iterable[Iterable[ItemT]]) -> list[ItemT]:
        """
        Merge per-source collections into one list with unique keys.

        Records sharing a key are ranked by (source priority, completeness,
        fewest estimated fields, canonical JSON); the best one wins and its
        empty fields are filled from the others in rank order. Output is
        sorted by key, so the result does not depend on the order of
        ``collections``.
        """
        groups: dict[str, list[ItemT]] = defaultdict(list)
        total = 0
        for collection in collections:
            for item in collection:
                groups[item.key].append(item)
                total += 1

        merged = [self._merge_group(groups[key]) for key in sorted(groups)]

        logger.info(f"Merged {total} records into {len(merged)} items")
        return merged

    def _rank(self, item: ItemT) -> tuple[int, int, tuple[bool, ...], str]:
        # Provenance flags are excluded from JSON, so they rank on their own
        estimated = tuple(
            getattr(item, flag, False) for flag in sorted(set(PROVENANCE_FIELDS.values()))
        )
        return (
            -self.priorities.get(item.source, 0),
            -completeness(item),
            estimated,
            item.model_dump_json(),
        )

    def _merge_group(self, records: list[ItemT]) -> ItemT:
        if len(records) == 1:
            return records[0]

        best, *others = sorted(records, key=self._rank)

        fills: dict[str, Any] = {}
        for name in type(best).model_fields:
            if name in NEVER_FILLED or not is_empty(getattr(best, name)):
                continue
            for other in others:
                value = getattr(other, name)
                if is_empty(value):
                    continue
                fills[name] = value
                flag = PROVENANCE_FIELDS.get(name)
                if flag:
                    fills[flag] = getattr(other, flag)
                break

        return best.model_copy(update=fills) if fills else best

    # =========================================================================
    # Selection
    # =========================================================================

    def is_stale(self, item: ItemT, now: datetime) -> bool:
        """Items without a last-activity timestamp are never stale."""
        activity = item.last_activity
        if activity is None:
            return False
        return now - activity > self.max_age

    def select(self, items: list[ItemT], now: Optional[datetime] = None) -> list[ItemT]:
        """
        Drop stale items, unless that leaves fewer than ``min_items``.

        When the floor wins, the ``min_items`` highest-scoring items of the
        whole set are kept instead, stale ones included. Output is ordered by
        descending score.
        """
        now = now or utcnow()
        ranked = sorted(items, key=lambda i: (-i.score, i.key))

        fresh = [item for item in ranked if not self.is_stale(item, now)]
        if len(fresh) >= self.min_items:
            logger.info(f"Selected {len(fresh)}/{len(items)} fresh items")
            return fresh

        logger.info(
            f"Only {len(fresh)} fresh items, keeping top {self.min_items} of {len(items)}"
        )
        return ranked[: self.min_items]

    async def health_check(self) -> dict[str, bool]:
        """Check health of all sources."""
        checks = await asyncio.gather(*(f.health_check() for f in self.fetchers))
        return {f.name: ok for f, ok in zip(self.fetchers, checks)}

    def get_source_stats(self) -> dict:
        """Get statistics about configured sources."""
        return {
            "total_sources": len(self.fetchers),
            "sources": [
                {
                    "name": f.name,
                    "type": f.config.source_type.value,
                    "base_url": f.config.base_url,
                    "priority": f.priority,
                }
                for f in self.fetchers
            ],
        }
