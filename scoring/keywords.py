"""Keyword-based relevance scorer, the deterministic fallback for AI scoring.

Each category carries a weight tier: strong signals (3), medium (2), weak (1)
and off-topic penalties (negative). Title matches count 3x. Raw points are
normalized into 0-10 against a saturation constant.
"""

import re
from typing import Any

from config import STUDENT_PRIORITY_THRESHOLD

# Raw points at which the normalized score reaches 10
_SATURATION = 15.0

# Category -> (weight, keywords). German and English: most sources are German.
_RAW_RULES: dict[str, tuple[int, list[str]]] = {
    "machine-learning": (3, [
        "machine learning", "maschinelles lernen", "deep learning",
        "neural network", "neuronale netze", "neuronales netz",
        "reinforcement learning", "transformer", "fine-tuning", "training data",
    ]),
    "generative-ai": (3, [
        "llm", "large language model", "sprachmodell", "chatgpt", "gpt-4",
        "gpt-5", "openai", "anthropic", "claude", "gemini", "mistral",
        "llama", "generative ai", "generative ki", "diffusion",
    ]),
    "data-science": (3, [
        "data science", "datenwissenschaft", "data scientist", "datenanalyse",
        "data analysis", "big data", "statistik", "statistics", "pandas",
        "pytorch", "tensorflow", "hugging face", "jupyter", "python",
    ]),
    "ai": (2, [
        "ai", "ki", "artificial intelligence", "künstliche intelligenz",
        "algorithm", "algorithmus", "nlp", "natural language processing",
        "computer vision", "agent", "agenten", "chatbot",
    ]),
    "education": (2, [
        "student", "studenten", "studierende", "studium", "university",
        "universität", "hochschule", "course", "kurs", "tutorial",
        "career", "karriere", "praktikum", "internship", "bildung",
    ]),
    "research": (2, [
        "research", "forschung", "paper", "study", "benchmark",
        "open source", "open-source", "dataset", "datensatz", "arxiv",
    ]),
    "robotics": (2, [
        "robotics", "robotik", "roboter", "robot", "autonomous", "autonom",
        "automation", "automatisierung",
    ]),
    "industry-4.0": (1, [
        "industrie 4.0", "industry 4.0", "manufacturing", "produktion",
        "iot", "digital twin", "digitaler zwilling", "predictive maintenance",
    ]),
    "tools": (1, [
        "api", "cloud", "github", "copilot", "software", "app", "plugin",
    ]),
    "business": (1, [
        "startup", "funding", "finanzierung", "investment", "acquisition",
        "übernahme", "revenue", "umsatz",
    ]),
    "off-topic": (-3, [
        "sport", "fußball", "football", "entertainment", "celebrity",
        "promi", "fashion", "mode", "lifestyle", "kochen", "rezept",
        "travel", "reise", "wetter", "weather",
    ]),
}

_RULES: dict[str, tuple[int, list[re.Pattern]]] = {}


def _compile_rules() -> None:
    """Compile keyword patterns into word-boundary regexes (called once at import)."""
    for category, (weight, keywords) in _RAW_RULES.items():
        patterns = [
            re.compile(r"(?<!\w)" + re.escape(kw) + r"(?!\w)", re.IGNORECASE)
            for kw in keywords
        ]
        _RULES[category] = (weight, patterns)


_compile_rules()


def keyword_score(
    title: str | None,
    description: str | None,
    content: str | None = None,
    max_categories: int = 5,
) -> dict[str, Any]:
    """Score an article 0-10 from keyword matches.

    Returns a scoring result dict with `ai_scored=False`; the caller
    decides `scoring_error`.
    """
    title = (title or "").strip()
    body = f"{description or ''}\n{(content or '')[:2000]}"

    details: dict[str, int] = {}
    for category, (weight, patterns) in _RULES.items():
        hits = 0
        for pattern in patterns:
            hits += len(pattern.findall(title)) * 3 + len(pattern.findall(body))
        if hits:
            details[category] = hits * weight

    raw = sum(details.values())
    score = round(min(10.0, max(0.0, raw / _SATURATION * 10.0)), 1)

    positive = sorted(
        (c for c, pts in details.items() if pts > 0),
        key=lambda c: details[c],
        reverse=True,
    )
    categories = positive[:max_categories]

    if categories:
        reasoning = f"Keyword score {score}/10 (matched: {', '.join(categories)})"
    else:
        reasoning = f"Keyword score {score}/10 (no relevance keywords matched)"

    return {
        "relevance_score": score,
        "student_priority": score >= STUDENT_PRIORITY_THRESHOLD,
        "ai_reasoning": reasoning,
        "ai_categories": categories,
        "ai_scored": False,
        "scoring_error": False,
        "keyword_score_details": {"raw_points": raw, "categories": details},
    }
