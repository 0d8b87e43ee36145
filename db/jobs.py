"""Persisted job-status records for pipeline runs.

Status survives process restarts: pending -> completed (with result)
or pending -> failed (with error).
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Any

from db.database import get_session
from db.models import PipelineJob

logger = logging.getLogger(__name__)

JOB_PENDING = "pending"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"


def create_job(kind: str) -> str:
    """Create a pending job and return its id."""
    job_id = uuid.uuid4().hex
    session = get_session()
    try:
        session.add(PipelineJob(id=job_id, kind=kind, status=JOB_PENDING))
        session.commit()
    finally:
        session.close()
    logger.debug("Created %s job %s", kind, job_id)
    return job_id


def _finish(job_id: str, status: str, result: Any = None, error: str | None = None) -> None:
    session = get_session()
    try:
        job = session.get(PipelineJob, job_id)
        if job is None:
            logger.warning("Job %s not found, cannot mark %s", job_id, status)
            return
        job.status = status
        job.result = json.dumps(result, default=str) if result is not None else None
        job.error = error
        job.updated_at = datetime.utcnow()
        session.commit()
    finally:
        session.close()


def complete_job(job_id: str, result: Any) -> None:
    _finish(job_id, JOB_COMPLETED, result=result)


def fail_job(job_id: str, error: str | BaseException) -> None:
    _finish(job_id, JOB_FAILED, error=str(error))


def get_job(job_id: str) -> dict[str, Any] | None:
    """Return the job as a dict, or None if unknown."""
    session = get_session()
    try:
        job = session.get(PipelineJob, job_id)
        if job is None:
            return None
        result = None
        if job.result:
            try:
                result = json.loads(job.result)
            except (json.JSONDecodeError, TypeError):
                result = job.result
        return {
            "id": job.id,
            "kind": job.kind,
            "status": job.status,
            "result": result,
            "error": job.error,
            "created_at": job.created_at.isoformat() if job.created_at else None,
            "updated_at": job.updated_at.isoformat() if job.updated_at else None,
        }
    finally:
        session.close()
