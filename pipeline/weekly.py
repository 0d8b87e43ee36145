"""Weekly rollup: re-rank the week's daily top-10s into the newsletter selection."""

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any

from config import DAILY_TOP_N, WEEKLY_SOURCE_NAME, WEEKLY_TOP_N
from db.archive import archive_entry_to_dict, get_archive_entry, save_archive_entry
from db.articles import article_to_dict
from db.database import get_session
from db.models import Article
from pipeline.daily import pipeline_today
from pipeline.errors import DuplicateWeekError, NoArticlesForWeek
from pipeline.newsletter import NewsletterWriter, markdown_to_html, newsletter_title

logger = logging.getLogger(__name__)


def current_iso_week(now: datetime | None = None) -> tuple[int, int]:
    """(week_number, iso_year) of today in the pipeline timezone."""
    iso = pipeline_today(now).isocalendar()
    return iso[1], iso[0]


def iso_week_bounds(week_number: int, year: int) -> tuple[date, date, str]:
    """Monday, Sunday and a display range for an ISO week. Raises ValueError."""
    start = date.fromisocalendar(year, week_number, 1)
    end = start + timedelta(days=6)
    return start, end, f"{start:%d.%m.%Y}–{end:%d.%m.%Y}"


def weekly_candidates(
    week_start: date, week_end: date, source_name: str | None = None
) -> list[dict[str, Any]]:
    """Articles fetched in [week_start, week_end] with 1 <= daily_rank <= DAILY_TOP_N."""
    session = get_session()
    try:
        query = session.query(Article).filter(
            Article.fetch_date >= week_start,
            Article.fetch_date <= week_end,
            Article.daily_rank.is_not(None),
            Article.daily_rank <= DAILY_TOP_N,
        )
        if source_name:
            query = query.filter(Article.source_name == source_name)
        rows = query.order_by(Article.fetch_date, Article.daily_rank).all()
        return [article_to_dict(a, content_chars=None) for a in rows]
    finally:
        session.close()


def select_weekly_top(candidates: list[dict[str, Any]], n: int = WEEKLY_TOP_N) -> list[dict[str, Any]]:
    """Re-sort the whole candidate set by score and keep the first `n`.

    Daily rank only pre-filters; scores are compared raw across days.
    Ties: earlier fetch date, then better daily rank, then id.
    """
    ordered = sorted(
        candidates,
        key=lambda a: (-a["relevance_score"], a["fetch_date"], a["daily_rank"], a["id"]),
    )
    return ordered[:n]


def aggregate_week(
    week_number: int | None = None,
    year: int | None = None,
    source_name: str | None = WEEKLY_SOURCE_NAME,
    writer: NewsletterWriter | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build and archive the newsletter for an ISO week.

    Returns the existing entry untouched if the week is already archived.
    Raises NoArticlesForWeek if no daily-ranked candidates exist; nothing
    is persisted in that case.
    """
    if week_number is None or year is None:
        week_number, year = current_iso_week(now)
    week_start, week_end, date_range = iso_week_bounds(week_number, year)
    logger.info("Processing week %d/%d (%s)", week_number, year, date_range)

    existing = get_archive_entry(week_number, year)
    if existing is not None:
        logger.info("Newsletter for week %d/%d already exists, skipping", week_number, year)
        return {"success": True, "existing": True, "entry": archive_entry_to_dict(existing)}

    candidates = weekly_candidates(week_start, week_end, source_name)
    if not candidates:
        raise NoArticlesForWeek(week_number, year)

    per_day = Counter(a["fetch_date"] for a in candidates)
    for day, count in sorted(per_day.items()):
        logger.info("  %s: %d candidates", day, count)

    final = select_weekly_top(candidates)
    for i, a in enumerate(final, start=1):
        logger.info("%d. %s (score %s, day %s)", i, a["title"][:60], a["relevance_score"], a["fetch_date"])

    writer = writer or NewsletterWriter()
    content, ai_generated = writer.generate(week_number, year, date_range, final)

    try:
        entry = save_archive_entry(
            week_number=week_number,
            year=year,
            title=newsletter_title(week_number),
            content=content,
            html_content=markdown_to_html(content),
            date_range=date_range,
            article_count=len(final),
        )
    except DuplicateWeekError:
        # Lost a race with a concurrent run; the winner's entry stands
        winner = get_archive_entry(week_number, year)
        if winner is None:
            raise
        logger.warning("Week %d/%d archived concurrently, returning stored entry", week_number, year)
        return {"success": True, "existing": True, "entry": archive_entry_to_dict(winner)}

    summary = {
        "week": week_number,
        "year": year,
        "date_range": date_range,
        "total_articles_reviewed": len(candidates),
        "final_selected": len(final),
        "days_covered": len(per_day),
        "articles_per_day": dict(sorted(per_day.items())),
        "average_score_top": round(sum(a["relevance_score"] for a in final) / len(final), 2),
        "ai_scored_in_top": sum(1 for a in final if a["ai_scored"]),
        "student_priority_in_top": sum(1 for a in final if a["student_priority"]),
        "ai_generated_content": ai_generated,
        "newsletter_id": entry.id,
    }
    logger.info("Newsletter %d/%d generated: %d of %d candidates selected",
                week_number, year, len(final), len(candidates))

    return {
        "success": True,
        "existing": False,
        "entry": archive_entry_to_dict(entry),
        "summary": summary,
        "final_top": [
            {
                "newsletter_rank": i,
                "id": a["id"],
                "title": a["title"],
                "relevance_score": a["relevance_score"],
                "student_priority": a["student_priority"],
                "ai_scored": a["ai_scored"],
                "fetch_date": a["fetch_date"],
                "daily_rank": a["daily_rank"],
                "link": a["link"],
            }
            for i, a in enumerate(final, start=1)
        ],
    }
