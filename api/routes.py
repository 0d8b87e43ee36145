"""API routes for linkit-curator."""

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from config import MAX_ARTICLES_PER_SOURCE
from db.archive import archive_entry_to_dict, get_archive_entry, list_archive_entries
from db.articles import article_to_dict
from db.database import get_session
from db.jobs import get_job
from db.models import Article
from pipeline.daily import run_daily
from pipeline.errors import DuplicateWeekError, NoArticlesForWeek
from pipeline.ranking import rank_day
from pipeline.scheduler import run_scheduled, run_tracked
from pipeline.weekly import aggregate_week

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class DailyRunRequest(BaseModel):
    sources: list[str] | None = None
    max_articles_per_source: int = Field(default=MAX_ARTICLES_PER_SOURCE, ge=1, le=100)
    enable_ai_scoring: bool | None = None
    force_refresh: bool = False


class WeeklyRunRequest(BaseModel):
    week_number: int | None = Field(default=None, ge=1, le=53)
    year: int | None = Field(default=None, ge=2000, le=2100)


@router.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok", "service": "linkit-curator"}


@router.get("/articles/latest")
def get_latest_articles(
    limit: int = Query(default=20, ge=1, le=200),
    source: str | None = Query(default=None),
    min_score: float | None = Query(default=None, ge=0, le=10),
    fetch_date: date | None = Query(default=None),
) -> list[dict[str, Any]]:
    """Latest stored articles, optionally filtered by source, minimum score and fetch date."""
    session = get_session()
    try:
        query = session.query(Article).order_by(Article.collected_at.desc(), Article.id.desc())
        if source:
            query = query.filter(Article.source_name == source)
        if min_score is not None:
            query = query.filter(Article.relevance_score >= min_score)
        if fetch_date is not None:
            query = query.filter(Article.fetch_date == fetch_date)
        return [article_to_dict(a) for a in query.limit(limit).all()]
    finally:
        session.close()


@router.get("/articles/daily/{fetch_date}")
def get_daily_ranking(
    fetch_date: date,
    source: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=200),
) -> dict[str, Any]:
    """A day's ranked articles, best first."""
    session = get_session()
    try:
        query = session.query(Article).filter(
            Article.fetch_date == fetch_date,
            Article.daily_rank.is_not(None),
        )
        if source:
            query = query.filter(Article.source_name == source)
        total = query.count()
        articles = query.order_by(Article.daily_rank).limit(limit).all()
        return {
            "date": fetch_date.isoformat(),
            "total_ranked": total,
            "articles": [article_to_dict(a) for a in articles],
        }
    finally:
        session.close()


@router.post("/pipeline/daily")
def trigger_daily(req: DailyRunRequest) -> dict[str, Any]:
    """Fetch, score, store and rank today's articles."""
    job_id, result = run_tracked(
        "daily",
        run_daily,
        sources=req.sources,
        max_articles_per_source=req.max_articles_per_source,
        enable_ai_scoring=req.enable_ai_scoring,
        force_refresh=req.force_refresh,
    )
    return {"job_id": job_id, **result}


@router.post("/pipeline/rank/{fetch_date}")
def trigger_rank(fetch_date: date, source: str | None = Query(default=None)) -> dict[str, Any]:
    """Recompute daily ranks for one day."""
    job_id, result = run_tracked("rank", _rank, fetch_date=fetch_date, source_name=source)
    return {"job_id": job_id, **result}


def _rank(fetch_date: date, source_name: str | None) -> dict[str, Any]:
    ranked = rank_day(fetch_date, source_name)
    return {"success": True, "date": fetch_date.isoformat(), "source": source_name, "ranked": ranked}


@router.post("/pipeline/weekly")
def trigger_weekly(req: WeeklyRunRequest | None = None) -> dict[str, Any]:
    """Aggregate a week (default: current ISO week) into the newsletter archive."""
    req = req or WeeklyRunRequest()
    if (req.week_number is None) != (req.year is None):
        raise HTTPException(status_code=422, detail="week_number and year must be given together")
    try:
        job_id, result = run_tracked("weekly", aggregate_week, week_number=req.week_number, year=req.year)
    except NoArticlesForWeek as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except DuplicateWeekError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        # date.fromisocalendar rejects week 53 in 52-week years
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"job_id": job_id, **result}


@router.api_route("/cron", methods=["GET", "POST"])
def cron_trigger() -> dict[str, Any]:
    """Time-gated entry point for the external scheduler."""
    return run_scheduled()


@router.get("/archive")
def get_archive(limit: int = Query(default=52, ge=1, le=520)) -> list[dict[str, Any]]:
    """Archived newsletters, newest first (without bodies)."""
    return [archive_entry_to_dict(e, include_content=False) for e in list_archive_entries(limit)]


@router.get("/archive/{year}/{week_number}")
def get_archive_week(year: int, week_number: int) -> dict[str, Any]:
    entry = get_archive_entry(week_number, year)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No newsletter for week {week_number}/{year}")
    return archive_entry_to_dict(entry)


@router.get("/jobs/{job_id}")
def get_job_status(job_id: str) -> dict[str, Any]:
    job = get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Unknown job {job_id}")
    return job
