"""Daily ingestion: fetch feeds, score, store, rank."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable
from zoneinfo import ZoneInfo

from collectors.rss import RssCollector
from config import MAX_ARTICLES_PER_SOURCE, PIPELINE_TIMEZONE, RSS_SOURCES
from db.articles import filter_new, upsert_article
from pipeline.errors import FetchError, ParseError
from pipeline.ranking import rank_day
from scoring.scorer import RelevanceScorer

logger = logging.getLogger(__name__)

SourceSpec = str | tuple[str | None, str]


def pipeline_today(now: datetime | None = None) -> date:
    """The calendar day in the pipeline's reference timezone."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(PIPELINE_TIMEZONE)).date()


def _resolve_sources(sources: list[SourceSpec] | None) -> list[tuple[str | None, str]]:
    if not sources:
        return [(name, url) for name, url in RSS_SOURCES.items()]
    resolved: list[tuple[str | None, str]] = []
    for s in sources:
        resolved.append((None, s) if isinstance(s, str) else (s[0], s[1]))
    return resolved


def run_daily(
    sources: list[SourceSpec] | None = None,
    max_articles_per_source: int = MAX_ARTICLES_PER_SOURCE,
    enable_ai_scoring: bool | None = None,
    force_refresh: bool = False,
    fetch_date: date | None = None,
    scorer: RelevanceScorer | None = None,
    collector_factory: Callable[..., RssCollector] = RssCollector,
) -> dict[str, Any]:
    """Run one daily ingestion pass and re-rank the day.

    A source that fails to fetch or parse is logged and skipped. Articles
    already stored are skipped unless `force_refresh`. Storage errors
    propagate to the caller.
    """
    fetch_date = fetch_date or pipeline_today()
    scorer = scorer or RelevanceScorer(enable_ai=enable_ai_scoring)
    resolved = _resolve_sources(sources)
    logger.info("Daily run for %s: %d sources, AI scoring %s, force_refresh=%s",
                fetch_date, len(resolved), "on" if scorer.enable_ai else "off", force_refresh)

    processed: list[dict[str, Any]] = []
    failed_sources: list[dict[str, str]] = []
    fetched = 0
    skipped = 0

    for name, url in resolved:
        collector = collector_factory(url, source_name=name)
        try:
            candidates = collector.collect()
        except (FetchError, ParseError) as e:
            logger.error("Source %s failed: %s", collector.source_name, e)
            failed_sources.append({"source": collector.source_name, "url": url, "error": str(e)})
            continue

        fetched += len(candidates)
        new = candidates if force_refresh else filter_new(candidates)
        skipped += len(candidates) - len(new)

        scores = scorer.score_many(new)
        scored = [{**c, **s} for c, s in zip(new, scores)]
        # Stable: equal scores keep feed order
        scored.sort(key=lambda a: a["relevance_score"], reverse=True)
        selected = scored[:max_articles_per_source]

        saved = 0
        for data in selected:
            status, article = upsert_article({**data, "fetch_date": fetch_date}, force_refresh)
            if status == "skipped":
                skipped += 1
                continue
            saved += 1
            processed.append({
                "id": article.id if article else None,
                "title": data["title"],
                "link": data["link"],
                "source_name": data["source_name"],
                "relevance_score": data["relevance_score"],
                "student_priority": data["student_priority"],
                "ai_scored": data["ai_scored"],
                "scoring_error": data["scoring_error"],
                "status": status,
            })
        logger.info("[%s] Saved %d articles (%d fetched, %d new, %d kept)",
                    collector.source_name, saved, len(candidates), len(new), len(selected))

    ranked = rank_day(fetch_date)

    ai_scored = sum(1 for a in processed if a["ai_scored"])
    top = sorted(processed, key=lambda a: a["relevance_score"], reverse=True)[:10]
    summary = {
        "date": fetch_date.isoformat(),
        "total_sources_processed": len(resolved) - len(failed_sources),
        "failed_sources": failed_sources,
        "total_articles_fetched": fetched,
        "total_articles_processed": len(processed),
        "skipped_existing": skipped,
        "ai_scored_articles": ai_scored,
        "keyword_scored_articles": len(processed) - ai_scored,
        "scoring_errors": sum(1 for a in processed if a["scoring_error"]),
        "high_priority_articles": sum(1 for a in processed if a["student_priority"]),
        "average_score": (
            round(sum(a["relevance_score"] for a in processed) / len(processed), 2)
            if processed else 0
        ),
        "top_article": (
            {k: top[0][k] for k in ("title", "relevance_score", "source_name")} if top else None
        ),
        "ranked_articles": ranked,
    }

    logger.info(
        "Daily processing complete: %d processed (%d AI, %d keyword), %d high-priority, %d skipped",
        summary["total_articles_processed"], summary["ai_scored_articles"],
        summary["keyword_scored_articles"], summary["high_priority_articles"], skipped,
    )
    success = not resolved or len(failed_sources) < len(resolved)
    return {"success": success, "summary": summary, "top_articles": top}
