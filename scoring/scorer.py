"""Relevance scorer: AI primary path with keyword fallback."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from config import ENABLE_AI_SCORING, SCORING_MAX_WORKERS
from pipeline.errors import ScoringError
from scoring.ai import AIScorer
from scoring.keywords import keyword_score

logger = logging.getLogger(__name__)


class RelevanceScorer:
    """Score articles 0-10.

    The AI path is tried when enabled and configured. Any failure there
    (HTTP error, rate limit, timeout, unparseable output) falls back to
    keyword scoring with `scoring_error=True`. When AI scoring is disabled
    the keyword score is used directly with `scoring_error=False`.
    """

    def __init__(
        self,
        enable_ai: bool | None = None,
        ai_scorer: AIScorer | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.ai_scorer = ai_scorer or AIScorer()
        enable = ENABLE_AI_SCORING if enable_ai is None else enable_ai
        self.enable_ai = enable and self.ai_scorer.available
        if enable and not self.ai_scorer.available:
            logger.warning("AI scoring enabled but no Gemini API key configured, using keywords")
        self.max_workers = max(1, max_workers or SCORING_MAX_WORKERS)

    def score(self, article: dict[str, Any]) -> dict[str, Any]:
        """Return relevance_score, student_priority, ai_reasoning, ai_categories,
        ai_scored, scoring_error (and keyword_score_details)."""
        attempted = False
        if self.enable_ai:
            attempted = True
            try:
                return self.ai_scorer.score(article)
            except ScoringError as e:
                logger.warning("AI scoring failed for %r, using keyword fallback: %s",
                               (article.get("title") or "")[:60], e)

        result = keyword_score(
            article.get("title"), article.get("description"), article.get("content")
        )
        result["scoring_error"] = attempted
        return result

    def score_many(self, articles: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Score articles concurrently (capped). Results keep input order."""
        if not articles:
            return []
        if not self.enable_ai or self.max_workers == 1 or len(articles) == 1:
            return [self.score(a) for a in articles]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(articles))) as executor:
            return list(executor.map(self.score, articles))
