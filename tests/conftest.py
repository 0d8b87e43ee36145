"""Shared fixtures: temporary database and article factories."""

import json
from datetime import date
from typing import Any

import pytest

from db.database import get_session, init_db, reset_engine
from db.models import Article


@pytest.fixture(autouse=True)
def no_gemini(monkeypatch):
    """Never hit Gemini from tests unless a test injects its own client."""
    monkeypatch.setattr("llm.gemini.GEMINI_API_KEY", "")
    monkeypatch.setattr("llm.gemini.AI_MIN_INTERVAL", 0.0)


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Use a temporary database for each test."""
    db_path = tmp_path / "test.db"
    # Patch in both config and db.database (which imports by value)
    monkeypatch.setattr("config.DB_PATH", db_path)
    monkeypatch.setattr("config.DATA_DIR", tmp_path)
    monkeypatch.setattr("db.database.DB_PATH", db_path)
    monkeypatch.setattr("db.database.DATA_DIR", tmp_path)

    reset_engine()
    init_db()
    yield
    reset_engine()


@pytest.fixture
def add_article(db):
    """Insert an article directly; ids follow call order."""
    counter = {"n": 0}

    def _add(
        fetch_date: date,
        score: float,
        daily_rank: int | None = None,
        source_name: str = "The Decoder",
        **overrides: Any,
    ) -> int:
        counter["n"] += 1
        n = counter["n"]
        fields: dict[str, Any] = {
            "link": f"https://example.org/a/{n}",
            "guid": f"guid-{n}",
            "title": f"Article {n}",
            "description": f"Description {n}",
            "content": "",
            "source_name": source_name,
            "source_url": "https://example.org/feed/",
            "categories": json.dumps([]),
            "ai_categories": json.dumps([]),
            "relevance_score": score,
            "student_priority": score >= 7,
            "ai_scored": True,
            "fetch_date": fetch_date,
            "daily_rank": daily_rank,
        }
        fields.update(overrides)
        session = get_session()
        try:
            article = Article(**fields)
            session.add(article)
            session.commit()
            return article.id
        finally:
            session.close()

    return _add


def candidate(n: int, **overrides: Any) -> dict[str, Any]:
    """A normalized feed candidate as the RSS collector produces it."""
    data: dict[str, Any] = {
        "title": f"Candidate {n}",
        "link": f"https://example.org/c/{n}",
        "guid": f"cand-{n}",
        "description": f"Candidate description {n}",
        "content": "",
        "pub_date": None,
        "creator": "",
        "categories": [],
        "image_url": None,
        "source_name": "The Decoder",
        "source_url": "https://the-decoder.de/feed/",
    }
    data.update(overrides)
    return data


def scored(n: int, score: float, fetch_date: date, **overrides: Any) -> dict[str, Any]:
    """A candidate with scoring fields, ready for upsert_article."""
    data = candidate(n, **overrides)
    data.update({
        "relevance_score": score,
        "student_priority": score >= 7,
        "ai_reasoning": "test",
        "ai_categories": ["ai"],
        "ai_scored": False,
        "scoring_error": False,
        "keyword_score_details": None,
        "fetch_date": fetch_date,
    })
    return data


class FakeCollector:
    """Stands in for RssCollector; `feeds` maps URL to entries or an exception."""

    def __init__(self, feeds, url, source_name=None, http=None):
        self.feed_url = url
        self.source_name = source_name or url
        self._entries = feeds[url]

    def collect(self):
        if isinstance(self._entries, Exception):
            raise self._entries
        return [dict(e, source_name=self.source_name) for e in self._entries]
