"""
Relevance scoring for repositories and papers.

Scoring is pure: the same fields and the same ``now`` always produce the
same score. Scores are recomputed from scratch on every run.
"""

import re
from datetime import datetime
from typing import Optional

from llm_news.config import ScoringWeights
from llm_news.core.taxonomy import (
    ARXIV_TECHNIQUES,
    NOVELTY_TERMS,
    PAPER_MODEL_KEYWORDS,
    REPRODUCIBILITY_TERMS,
    TECHNIQUE_TERMS,
    contains_any,
    count_hits,
    iter_category_keywords,
    tag_categories,
)
from llm_news.models.domain import Paper, Repository, utcnow
from llm_news.services.data_ingestion.base import days_since


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


class RepositoryScorer:
    """
    Scores repositories on a [0, 1] scale.

    The score is the sum of four capped terms:
    - Engagement: total stars
    - Growth: stars gained per day
    - Recency: days since the last commit (0 when unknown)
    - Keywords: category keyword hits in name, description and topics
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()
        self.keywords = tuple(iter_category_keywords())

    def score(self, repo: Repository, now: Optional[datetime] = None) -> Repository:
        """Return a copy of ``repo`` with relevance score and categories set."""
        now = now or utcnow()
        return repo.model_copy(
            update={
                "relevance_score": self.relevance(repo, now),
                "model_categories": tag_categories(f"{repo.name} {repo.description}"),
            }
        )

    def score_all(self, repos: list[Repository], now: Optional[datetime] = None) -> list[Repository]:
        now = now or utcnow()
        return [self.score(repo, now) for repo in repos]

    def relevance(self, repo: Repository, now: datetime) -> float:
        w = self.weights

        engagement = min(repo.stars / w.stars_cap, 1.0) * w.weight_stars
        growth = min(repo.trend_metrics.stars_24h / w.growth_cap, 1.0) * w.weight_growth

        recency = 0.0
        if repo.last_commit is not None:
            days = max(days_since(repo.last_commit, now), 0.0)
            recency = (1.0 - min(days / w.recency_window_days, 1.0)) * w.weight_recency

        keywords = min(
            w.keyword_base
            + w.keyword_name_hit * count_hits(repo.name, self.keywords)
            + w.keyword_description_hit * count_hits(repo.description, self.keywords)
            + w.keyword_tech_stack_hit * count_hits(" ".join(repo.tech_stack), self.keywords),
            w.keyword_cap,
        )

        return clamp(engagement + growth + recency + keywords, 0.0, 1.0)


_SENTENCE_SPLIT = re.compile(r"\.\s+")


class PaperScorer:
    """
    Scores papers on a [0, 5] scale and derives their descriptive fields.

    Relevance combines citation velocity (30%), novelty (30%), citation
    count (25%) and freshness (15%).
    """

    MAX_SCORE = 5.0
    FRESHNESS_DAYS = 60.0
    CITATION_CAP = 100.0
    MAX_CONTRIBUTIONS = 3
    MAX_TECHNIQUES = 3

    def score(self, paper: Paper, now: Optional[datetime] = None) -> Paper:
        """Return a copy of ``paper`` with every derived field recomputed."""
        now = now or utcnow()
        days = max(days_since(paper.published_date, now), 0.0)
        velocity = paper.citation_count / max(1.0, days)
        novelty = self.novelty(paper)

        return paper.model_copy(
            update={
                "citation_velocity": velocity,
                "novelty_score": novelty,
                "reproducibility_score": self.reproducibility(paper),
                "relevance_score": self.relevance(velocity, novelty, paper.citation_count, days),
                "categories": tag_categories(f"{paper.title} {paper.summary}"),
                "core_contributions": self.core_contributions(paper.summary),
                "key_techniques": self.key_techniques(paper),
                "keywords": self.augment_keywords(paper),
            }
        )

    def score_all(self, papers: list[Paper], now: Optional[datetime] = None) -> list[Paper]:
        now = now or utcnow()
        return [self.score(paper, now) for paper in papers]

    def relevance(self, velocity: float, novelty: float, citations: int, days: float) -> float:
        freshness = max(self.MAX_SCORE - days / self.FRESHNESS_DAYS, 0.0)
        score = (
            0.3 * min(velocity, self.MAX_SCORE)
            + 0.3 * novelty
            + 0.25 * min(citations / self.CITATION_CAP, 1.0) * self.MAX_SCORE
            + 0.15 * freshness
        )
        return clamp(score, 0.0, self.MAX_SCORE)

    def novelty(self, paper: Paper) -> float:
        return self._density(paper, NOVELTY_TERMS, base=3.0)

    def reproducibility(self, paper: Paper) -> float:
        return self._density(paper, REPRODUCIBILITY_TERMS, base=2.5)

    def _density(self, paper: Paper, terms: tuple[str, ...], base: float) -> float:
        score = (
            base
            + 0.3 * count_hits(paper.title, terms)
            + 0.2 * count_hits(paper.summary, terms)
        )
        return clamp(score, 0.0, self.MAX_SCORE)

    def core_contributions(self, summary: str) -> list[str]:
        """First sentences of the summary, skipping fragments."""
        contributions = []
        for sentence in _SENTENCE_SPLIT.split(summary.strip())[: self.MAX_CONTRIBUTIONS]:
            sentence = sentence.strip().rstrip(".")
            if len(sentence) > 10:
                contributions.append(sentence + ".")
        return contributions

    def key_techniques(self, paper: Paper) -> list[str]:
        techniques = []
        for term in TECHNIQUE_TERMS:
            if contains_any(paper.title, [term]) or any(
                term.lower() in keyword.lower() for keyword in paper.keywords
            ):
                techniques.append(term)
            if len(techniques) >= self.MAX_TECHNIQUES:
                break

        # Fall back to arXiv subject classes
        if len(techniques) < 2:
            for keyword in paper.keywords:
                technique = ARXIV_TECHNIQUES.get(keyword)
                if technique and technique not in techniques:
                    techniques.append(technique)

        return techniques

    def augment_keywords(self, paper: Paper) -> list[str]:
        """Append model names mentioned in the title, summary or keywords."""
        keywords = list(paper.keywords)
        lowered = [k.lower() for k in keywords]
        text = f"{paper.title} {paper.summary}".lower()

        for model, terms in PAPER_MODEL_KEYWORDS.items():
            if model.lower() in lowered:
                continue
            if any(term in text or any(term in k for k in lowered) for term in terms):
                keywords.append(model)
                lowered.append(model.lower())

        return keywords
