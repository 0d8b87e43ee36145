"""Time-gated trigger: decides which pipeline stage is due and runs it.

Designed to be hit every few minutes by an external cron. Matching windows
are wider than a single minute so a missed invocation still fires.
"""

import logging
from datetime import datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

from config import (
    DAILY_TRIGGER_HOURS,
    DAILY_TRIGGER_MINUTE_WINDOW,
    PIPELINE_TIMEZONE,
    WEEKLY_TRIGGER_HOUR,
    WEEKLY_TRIGGER_MINUTE,
    WEEKLY_TRIGGER_WEEKDAY,
)
from db.jobs import complete_job, create_job, fail_job
from pipeline.daily import run_daily
from pipeline.weekly import aggregate_week

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

STAGE_DAILY = "daily"
STAGE_WEEKLY = "weekly"


def system_clock() -> datetime:
    return datetime.now(ZoneInfo(PIPELINE_TIMEZONE))


def _localize(now: datetime) -> datetime:
    tz = ZoneInfo(PIPELINE_TIMEZONE)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def due_stages(now: datetime) -> list[str]:
    """Stages whose trigger window contains `now` (pipeline-local time)."""
    stages: list[str] = []
    if now.hour in DAILY_TRIGGER_HOURS and now.minute < DAILY_TRIGGER_MINUTE_WINDOW:
        stages.append(STAGE_DAILY)
    if (
        now.weekday() == WEEKLY_TRIGGER_WEEKDAY
        and now.hour == WEEKLY_TRIGGER_HOUR
        and now.minute >= WEEKLY_TRIGGER_MINUTE
    ):
        stages.append(STAGE_WEEKLY)
    return stages


def run_tracked(kind: str, fn: Callable[..., dict[str, Any]], **kwargs: Any) -> tuple[str, dict[str, Any]]:
    """Run `fn` under a persisted job record. Re-raises after marking the job failed."""
    job_id = create_job(kind)
    try:
        result = fn(**kwargs)
    except Exception as e:
        fail_job(job_id, e)
        raise
    complete_job(job_id, result)
    return job_id, result


def run_scheduled(
    clock: Clock = system_clock,
    daily_runner: Callable[..., dict[str, Any]] = run_daily,
    weekly_runner: Callable[..., dict[str, Any]] = aggregate_week,
) -> dict[str, Any]:
    """Run whichever stages are due. Stage failures are reported, not retried."""
    now = _localize(clock())
    stages = due_stages(now)
    logger.info("Cron check at %s (%s %02d:%02d): due=%s",
                now.isoformat(), now.strftime("%A"), now.hour, now.minute, stages or "none")

    runners: dict[str, tuple[Callable[..., dict[str, Any]], dict[str, Any]]] = {
        STAGE_DAILY: (daily_runner, {"fetch_date": now.date()}),
        STAGE_WEEKLY: (weekly_runner, {"now": now}),
    }

    results: list[dict[str, Any]] = []
    for stage in stages:
        fn, kwargs = runners[stage]
        logger.info("Triggering %s stage", stage)
        try:
            job_id, result = run_tracked(stage, fn, **kwargs)
            results.append({
                "stage": stage,
                "success": bool(result.get("success", True)),
                "job_id": job_id,
                "result": result,
            })
        except Exception as e:
            logger.exception("Stage %s failed", stage)
            results.append({"stage": stage, "success": False, "error": str(e)})

    if not results:
        message = "No scheduled tasks triggered at this time"
    else:
        message = f"Triggered {len(results)} scheduled task(s)"

    return {
        "message": message,
        "triggered": stages,
        "results": results,
        "timestamp": now.isoformat(),
        "day_of_week": now.strftime("%A"),
        "weekday": now.weekday(),
        "hour": now.hour,
        "minute": now.minute,
        "schedule": {
            "daily": f"{', '.join(f'{h:02d}:00' for h in DAILY_TRIGGER_HOURS)} "
                     f"(+{DAILY_TRIGGER_MINUTE_WINDOW} min) {PIPELINE_TIMEZONE}",
            "weekly": f"weekday {WEEKLY_TRIGGER_WEEKDAY} at "
                      f"{WEEKLY_TRIGGER_HOUR:02d}:{WEEKLY_TRIGGER_MINUTE:02d} {PIPELINE_TIMEZONE}",
        },
    }
