"""AI relevance scoring via Gemini."""

import logging
from typing import Any

from llm.gemini import GeminiClient, GeminiError
from pipeline.errors import ScoringError

logger = logging.getLogger(__name__)

_PROMPT = """You are curating a weekly AI newsletter for university students in
data science, machine learning and Industry 4.0.

Rate the article below for how relevant and useful it is to those students.

Respond ONLY with a JSON object:
{{"score": <number 0-10>, "student_priority": <true|false>, "reasoning": "<one or two sentences>", "categories": ["<short tag>", ...]}}

- score 9-10: must-read (major model release, practical tool, research breakthrough, career-relevant)
- score 6-8: solid background knowledge for the field
- score 3-5: tangential industry or business news
- score 0-2: not about AI / data science
- student_priority: true only if students should read it this week

Title: {title}
Description: {description}
Content: {content}"""

_CONTENT_CHARS = 1500


def build_prompt(article: dict[str, Any]) -> str:
    return _PROMPT.format(
        title=article.get("title") or "(no title)",
        description=(article.get("description") or "")[:600],
        content=(article.get("content") or "")[:_CONTENT_CHARS],
    )


def _validate(obj: Any) -> dict[str, Any]:
    """Check the Gemini payload shape. Raises ScoringError."""
    if not isinstance(obj, dict):
        raise ScoringError(f"Expected JSON object, got {type(obj).__name__}")

    score = obj.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ScoringError(f"Non-numeric score: {score!r}")
    if not 0 <= score <= 10:
        raise ScoringError(f"Score out of range: {score}")

    priority = obj.get("student_priority", False)
    if not isinstance(priority, bool):
        raise ScoringError(f"Non-boolean student_priority: {priority!r}")

    categories = obj.get("categories") or []
    if not isinstance(categories, list):
        categories = []

    return {
        "relevance_score": round(float(score), 1),
        "student_priority": priority,
        "ai_reasoning": str(obj.get("reasoning") or "").strip(),
        "ai_categories": [str(c).strip().lower() for c in categories[:5] if str(c).strip()],
        "ai_scored": True,
        "scoring_error": False,
        "keyword_score_details": None,
    }


class AIScorer:
    """Score one article with Gemini."""

    def __init__(self, client: GeminiClient | None = None) -> None:
        self.client = client or GeminiClient()

    @property
    def available(self) -> bool:
        return self.client.configured

    def score(self, article: dict[str, Any]) -> dict[str, Any]:
        """Return a scoring result. Raises ScoringError on any failure."""
        try:
            obj = self.client.generate_json(build_prompt(article))
        except GeminiError as e:
            if e.rate_limited:
                logger.warning("Gemini rate limit hit for %r", article.get("title"))
            raise ScoringError(str(e)) from e
        return _validate(obj)
