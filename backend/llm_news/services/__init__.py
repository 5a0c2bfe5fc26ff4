"""
Services layer - core logic for LLM News.

1. Data ingestion (data_ingestion/):
   - One fetcher per external source
   - Enrichment, merging and staleness selection

2. Scoring (scoring.py):
   - Repository relevance on [0, 1]
   - Paper relevance, novelty and reproducibility on [0, 5]

3. Snapshots (snapshot.py):
   - Atomically swapped, immutable published result sets

4. Model search (model_search.py):
   - On-demand GitHub search for a named model
"""

from llm_news.services.model_search import ModelRepoSearch
from llm_news.services.scoring import PaperScorer, RepositoryScorer
from llm_news.services.snapshot import SnapshotStore

__all__ = [
    "ModelRepoSearch",
    "PaperScorer",
    "RepositoryScorer",
    "SnapshotStore",
]
