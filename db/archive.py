"""Newsletter archive writer."""

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError

from db.database import get_session
from db.models import NewsletterArchive
from pipeline.errors import DuplicateWeekError

logger = logging.getLogger(__name__)


def get_archive_entry(week_number: int, year: int) -> NewsletterArchive | None:
    """Return the archived newsletter for (week, year), if any."""
    session = get_session()
    try:
        return (
            session.query(NewsletterArchive)
            .filter(
                NewsletterArchive.week_number == week_number,
                NewsletterArchive.year == year,
            )
            .first()
        )
    finally:
        session.close()


def list_archive_entries(limit: int = 52) -> list[NewsletterArchive]:
    """Most recent newsletters first."""
    session = get_session()
    try:
        return (
            session.query(NewsletterArchive)
            .order_by(NewsletterArchive.year.desc(), NewsletterArchive.week_number.desc())
            .limit(limit)
            .all()
        )
    finally:
        session.close()


def save_archive_entry(
    *,
    week_number: int,
    year: int,
    title: str,
    content: str,
    html_content: str,
    date_range: str,
    article_count: int,
) -> NewsletterArchive:
    """Persist a newsletter. Raises DuplicateWeekError if the week is taken."""
    session = get_session()
    try:
        entry = NewsletterArchive(
            week_number=week_number,
            year=year,
            title=title,
            content=content,
            html_content=html_content,
            date_range=date_range,
            article_count=article_count,
        )
        session.add(entry)
        session.commit()
        logger.info("Archived newsletter %d/%d (id=%d)", week_number, year, entry.id)
        return entry
    except IntegrityError as exc:
        session.rollback()
        raise DuplicateWeekError(week_number, year) from exc
    finally:
        session.close()


def archive_entry_to_dict(entry: NewsletterArchive, include_content: bool = True) -> dict[str, Any]:
    """Serialize a NewsletterArchive row."""
    data: dict[str, Any] = {
        "id": entry.id,
        "week_number": entry.week_number,
        "year": entry.year,
        "title": entry.title,
        "date_range": entry.date_range,
        "article_count": entry.article_count,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
    if include_content:
        data["content"] = entry.content
        data["html_content"] = entry.html_content
    return data
