"""End-to-end daily run with fake collectors."""

from datetime import date
from functools import partial
from unittest.mock import MagicMock

from db.database import get_session
from db.models import Article
from llm.gemini import GeminiClient, GeminiError
from pipeline.daily import pipeline_today, run_daily
from pipeline.errors import FetchError
from scoring.ai import AIScorer
from scoring.scorer import RelevanceScorer

from conftest import FakeCollector, candidate

DAY = date(2024, 3, 4)


def _factory(feeds):
    return partial(FakeCollector, feeds)


def _stored() -> list[Article]:
    session = get_session()
    try:
        return session.query(Article).order_by(Article.daily_rank).all()
    finally:
        session.close()


FEEDS = {
    "https://a.test/feed/": [
        candidate(1, title="New LLM for students", description="Large language model course"),
        candidate(2, title="Football results", description="Sport"),
        candidate(3, title="Deep learning research", description="Neural network paper"),
    ],
    "https://b.test/feed/": [
        candidate(4, title="Robotics startup raises funds", description="Robot company"),
    ],
}


def test_daily_run_stores_scores_and_ranks(db):
    result = run_daily(
        sources=[("Source A", "https://a.test/feed/"), "https://b.test/feed/"],
        fetch_date=DAY,
        collector_factory=_factory(FEEDS),
    )
    summary = result["summary"]
    assert result["success"] is True
    assert summary["date"] == "2024-03-04"
    assert summary["total_sources_processed"] == 2
    assert summary["total_articles_fetched"] == 4
    assert summary["total_articles_processed"] == 4
    assert summary["keyword_scored_articles"] == 4
    assert summary["scoring_errors"] == 0
    assert summary["ranked_articles"] == 4

    stored = _stored()
    assert [a.daily_rank for a in stored] == [1, 2, 3, 4]
    scores = [a.relevance_score for a in stored]
    assert scores == sorted(scores, reverse=True)
    assert stored[-1].title == "Football results"
    assert {a.source_name for a in stored} == {"Source A", "https://b.test/feed/"}
    assert all(a.fetch_date == DAY for a in stored)


def test_rerun_is_idempotent(db):
    kwargs = dict(sources=["https://a.test/feed/"], fetch_date=DAY, collector_factory=_factory(FEEDS))
    run_daily(**kwargs)
    before = {a.id: (a.relevance_score, a.daily_rank) for a in _stored()}

    result = run_daily(**kwargs)
    assert result["summary"]["total_articles_processed"] == 0
    assert result["summary"]["skipped_existing"] == 3
    assert {a.id: (a.relevance_score, a.daily_rank) for a in _stored()} == before


def test_force_refresh_updates_existing(db):
    kwargs = dict(sources=["https://a.test/feed/"], fetch_date=DAY, collector_factory=_factory(FEEDS))
    run_daily(**kwargs)
    result = run_daily(force_refresh=True, **kwargs)
    assert result["summary"]["total_articles_processed"] == 3
    assert {a["status"] for a in result["top_articles"]} == {"updated"}
    assert len(_stored()) == 3


def test_failing_source_is_skipped(db):
    feeds = dict(FEEDS, **{"https://down.test/feed/": FetchError("HTTP 503")})
    result = run_daily(
        sources=["https://down.test/feed/", "https://b.test/feed/"],
        fetch_date=DAY,
        collector_factory=_factory(feeds),
    )
    assert result["success"] is True
    failed = result["summary"]["failed_sources"]
    assert [f["url"] for f in failed] == ["https://down.test/feed/"]
    assert "503" in failed[0]["error"]
    assert len(_stored()) == 1


def test_all_sources_failing_is_unsuccessful(db):
    feeds = {"https://down.test/feed/": FetchError("unreachable")}
    result = run_daily(
        sources=["https://down.test/feed/"], fetch_date=DAY, collector_factory=_factory(feeds)
    )
    assert result["success"] is False
    assert result["summary"]["total_articles_processed"] == 0


def test_ai_outage_still_stores_every_article(db):
    client = MagicMock(spec=GeminiClient)
    client.configured = True
    client.generate_json.side_effect = GeminiError("HTTP 500", status_code=500)
    scorer = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(client), max_workers=2)

    result = run_daily(
        sources=["https://a.test/feed/"], fetch_date=DAY, scorer=scorer,
        collector_factory=_factory(FEEDS),
    )
    assert result["summary"]["total_articles_processed"] == 3
    assert result["summary"]["scoring_errors"] == 3
    assert result["summary"]["ai_scored_articles"] == 0
    stored = _stored()
    assert all(a.scoring_error and not a.ai_scored for a in stored)
    assert all(0 <= a.relevance_score <= 10 for a in stored)


def test_max_articles_per_source_keeps_best(db):
    result = run_daily(
        sources=["https://a.test/feed/"], fetch_date=DAY, max_articles_per_source=2,
        collector_factory=_factory(FEEDS),
    )
    assert result["summary"]["total_articles_processed"] == 2
    assert "Football results" not in {a.title for a in _stored()}


def test_pipeline_today_respects_timezone(monkeypatch):
    from datetime import datetime, timezone

    late = datetime(2024, 3, 4, 23, 30, tzinfo=timezone.utc)
    assert pipeline_today(late) == date(2024, 3, 4)
    monkeypatch.setattr("pipeline.daily.PIPELINE_TIMEZONE", "Europe/Berlin")
    assert pipeline_today(late) == date(2024, 3, 5)
