"""Article store: insert-if-absent / update-if-forced persistence."""

import json
import logging
from typing import Any, Literal

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.database import get_session
from db.models import Article

logger = logging.getLogger(__name__)

UpsertStatus = Literal["inserted", "updated", "skipped"]

# Fields a forced refresh may overwrite. Identity (link, guid), fetch_date
# and daily_rank are never touched here.
_MUTABLE_FIELDS = (
    "title",
    "description",
    "content",
    "pub_date",
    "creator",
    "categories",
    "image_url",
    "source_name",
    "source_url",
    "relevance_score",
    "student_priority",
    "ai_reasoning",
    "ai_categories",
    "ai_scored",
    "scoring_error",
    "keyword_score_details",
)

_JSON_FIELDS = {"categories", "ai_categories", "keyword_score_details"}


def parse_json_list(raw: str | None) -> list[str]:
    """Parse a JSON array column to a list of strings."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    if isinstance(parsed, list):
        return [str(v) for v in parsed if v]
    return []


def _column_value(field: str, value: Any) -> Any:
    if field in _JSON_FIELDS:
        if value is None:
            return None if field == "keyword_score_details" else "[]"
        if isinstance(value, set):
            value = sorted(value)
        return json.dumps(value, ensure_ascii=False)
    return value


def _identity(data: dict[str, Any]) -> tuple[str | None, str | None]:
    # Empty strings would collide on the unique indexes
    return (data.get("link") or None, data.get("guid") or None)


def find_existing(session: Session, link: str | None, guid: str | None) -> Article | None:
    """Return the stored article matching either `link` or `guid`."""
    conditions = []
    if link:
        conditions.append(Article.link == link)
    if guid:
        conditions.append(Article.guid == guid)
    if not conditions:
        return None
    return session.query(Article).filter(or_(*conditions)).order_by(Article.id).first()


def filter_new(candidates: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop candidates whose link or guid is already stored."""
    links = {c["link"] for c in candidates if c.get("link")}
    guids = {c["guid"] for c in candidates if c.get("guid")}
    if not links and not guids:
        return list(candidates)

    session = get_session()
    try:
        rows = (
            session.query(Article.link, Article.guid)
            .filter(or_(Article.link.in_(links), Article.guid.in_(guids)))
            .all()
        )
    finally:
        session.close()

    known = {v for row in rows for v in row if v}
    return [
        c for c in candidates
        if not (c.get("link") in known or c.get("guid") in known)
    ]


def _apply(article: Article, data: dict[str, Any]) -> None:
    for field in _MUTABLE_FIELDS:
        if field in data:
            setattr(article, field, _column_value(field, data[field]))


def _new_article(data: dict[str, Any]) -> Article:
    link, guid = _identity(data)
    article = Article(link=link, guid=guid, fetch_date=data["fetch_date"])
    _apply(article, data)
    return article


def upsert_article(
    data: dict[str, Any], force_refresh: bool = False
) -> tuple[UpsertStatus, Article | None]:
    """Insert `data` unless an article with the same link/guid exists.

    With `force_refresh` the existing row's mutable fields are updated in
    place. Unique constraints on link and guid are the serialization point:
    a concurrent insert that loses the race is reported as skipped (or
    retried as an update under `force_refresh`).
    """
    link, guid = _identity(data)
    session = get_session()
    try:
        existing = find_existing(session, link, guid)
        if existing is not None and not force_refresh:
            logger.debug("Already stored, skipping: %s", link or guid)
            return "skipped", existing

        if existing is not None:
            _apply(existing, data)
            session.commit()
            return "updated", existing

        article = _new_article(data)
        session.add(article)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            if not force_refresh:
                logger.debug("Duplicate skipped (concurrent insert): %s", link or guid)
                return "skipped", None
            existing = find_existing(session, link, guid)
            if existing is None:
                raise
            _apply(existing, data)
            session.commit()
            return "updated", existing
        return "inserted", article
    finally:
        session.close()


def article_to_dict(article: Article, content_chars: int | None = 500) -> dict[str, Any]:
    """Serialize an Article to a JSON-friendly dict."""
    content = article.content or ""
    if content_chars is not None:
        content = content[:content_chars]
    details = None
    if article.keyword_score_details:
        try:
            details = json.loads(article.keyword_score_details)
        except (json.JSONDecodeError, TypeError):
            details = None

    return {
        "id": article.id,
        "title": article.title,
        "link": article.link,
        "guid": article.guid,
        "description": article.description,
        "content": content,
        "pub_date": article.pub_date.isoformat() if article.pub_date else None,
        "creator": article.creator,
        "categories": parse_json_list(article.categories),
        "image_url": article.image_url,
        "source_name": article.source_name,
        "source_url": article.source_url,
        "relevance_score": article.relevance_score,
        "student_priority": article.student_priority,
        "ai_reasoning": article.ai_reasoning,
        "ai_categories": parse_json_list(article.ai_categories),
        "ai_scored": article.ai_scored,
        "scoring_error": article.scoring_error,
        "keyword_score_details": details,
        "fetch_date": article.fetch_date.isoformat() if article.fetch_date else None,
        "daily_rank": article.daily_rank,
        "collected_at": article.collected_at.isoformat() if article.collected_at else None,
    }
