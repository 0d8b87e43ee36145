"""Tests for the article store."""

from datetime import date

from db.articles import article_to_dict, filter_new, upsert_article
from db.database import get_session
from db.models import Article

from conftest import candidate, scored

DAY = date(2024, 3, 4)


def _count() -> int:
    session = get_session()
    try:
        return session.query(Article).count()
    finally:
        session.close()


def test_insert_then_skip(db):
    status, article = upsert_article(scored(1, 6.0, DAY))
    assert status == "inserted"
    assert article.id is not None

    status, existing = upsert_article(scored(1, 9.0, DAY, title="Changed"))
    assert status == "skipped"
    assert existing.id == article.id
    assert existing.relevance_score == 6.0
    assert _count() == 1


def test_match_by_guid_only(db):
    upsert_article(scored(1, 6.0, DAY))
    status, _ = upsert_article(scored(1, 6.0, DAY, link="https://example.org/moved"))
    assert status == "skipped"
    assert _count() == 1


def test_force_refresh_updates_but_keeps_rank_and_date(db, add_article):
    article_id = add_article(DAY, 4.0, daily_rank=3, link="https://example.org/c/1", guid="cand-1")

    status, article = upsert_article(
        scored(1, 8.5, date(2024, 3, 5), title="Refreshed"), force_refresh=True
    )
    assert status == "updated"
    assert article.id == article_id
    assert article.title == "Refreshed"
    assert article.relevance_score == 8.5
    assert article.daily_rank == 3
    assert article.fetch_date == DAY
    assert _count() == 1


def test_concurrent_insert_is_skipped(db, monkeypatch):
    upsert_article(scored(1, 6.0, DAY))
    # Pretend the lookup raced with another writer and saw nothing
    monkeypatch.setattr("db.articles.find_existing", lambda *a, **k: None)
    status, article = upsert_article(scored(1, 7.0, DAY))
    assert status == "skipped"
    assert article is None
    assert _count() == 1


def test_empty_guid_does_not_collide(db):
    upsert_article(scored(1, 6.0, DAY, guid=""))
    status, _ = upsert_article(scored(2, 6.0, DAY, guid=""))
    assert status == "inserted"
    assert _count() == 2


def test_filter_new(db):
    upsert_article(scored(1, 6.0, DAY))
    upsert_article(scored(2, 6.0, DAY))

    fresh = filter_new([
        candidate(1),
        candidate(2, link="https://example.org/other"),
        candidate(3),
    ])
    assert [c["guid"] for c in fresh] == ["cand-3"]


def test_article_to_dict(db):
    _, article = upsert_article(scored(1, 6.0, DAY, categories=["KI"]))
    data = article_to_dict(article)
    assert data["fetch_date"] == "2024-03-04"
    assert data["categories"] == ["KI"]
    assert data["ai_categories"] == ["ai"]
    assert data["daily_rank"] is None
