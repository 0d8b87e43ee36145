"""Idempotent database migrations for linkit-curator.

SQLite doesn't support full ALTER TABLE, but does support ADD COLUMN
for nullable columns and CREATE UNIQUE INDEX. Each migration checks
the live schema first, so running them on a fresh database is a no-op.
"""

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Scoring metadata added after the first deployments
_COLUMN_MIGRATIONS: list[tuple[str, str, str]] = [
    ("articles", "scoring_error", "BOOLEAN DEFAULT 0"),
    ("articles", "keyword_score_details", "TEXT"),
    ("articles", "image_url", "VARCHAR"),
    ("articles", "daily_rank", "INTEGER"),
]

# Uniqueness is what makes concurrent upserts and archive writes race-safe
_UNIQUE_INDEXES: list[tuple[str, str, tuple[str, ...]]] = [
    ("articles", "uq_articles_link", ("link",)),
    ("articles", "uq_articles_guid", ("guid",)),
    ("newsletter_archive", "uq_archive_week_year_idx", ("week_number", "year")),
]


def _column_exists(engine: Engine, table: str, column: str) -> bool:
    """Check if a column exists in the given table."""
    with engine.connect() as conn:
        result = conn.execute(text(f"PRAGMA table_info({table})"))
        columns = [row[1] for row in result]
        return column in columns


def _has_unique_index(engine: Engine, table: str, columns: tuple[str, ...]) -> bool:
    """Check if any unique index on `table` covers exactly `columns`."""
    with engine.connect() as conn:
        indexes = conn.execute(text(f"PRAGMA index_list({table})")).all()
        for row in indexes:
            # (seq, name, unique, origin, partial)
            if not row[2]:
                continue
            info = conn.execute(text(f"PRAGMA index_info('{row[1]}')")).all()
            if tuple(r[2] for r in info) == columns:
                return True
    return False


def run_migrations(engine: Engine) -> None:
    """Run all pending migrations idempotently."""
    with engine.connect() as conn:
        for table, column, col_type in _COLUMN_MIGRATIONS:
            if not _column_exists(engine, table, column):
                logger.info("Adding column %s.%s (%s)", table, column, col_type)
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}"))
                conn.commit()
            else:
                logger.debug("Column %s.%s already exists, skipping", table, column)

        for table, name, columns in _UNIQUE_INDEXES:
            if _has_unique_index(engine, table, columns):
                logger.debug("Unique index on %s%s already exists, skipping", table, columns)
                continue
            logger.info("Creating unique index %s on %s%s", name, table, columns)
            conn.execute(text(
                f"CREATE UNIQUE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(columns)})"
            ))
            conn.commit()
