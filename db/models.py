"""SQLAlchemy models for linkit-curator."""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Article(Base):
    """RSS article ingested by the daily pipeline."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Identity: a match on either column is a duplicate
    link: Mapped[str | None] = mapped_column(String, unique=True)
    guid: Mapped[str | None] = mapped_column(String, unique=True)

    title: Mapped[str] = mapped_column(String, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    content: Mapped[str] = mapped_column(Text, default="")
    pub_date: Mapped[datetime | None] = mapped_column(DateTime)
    creator: Mapped[str] = mapped_column(String, default="")
    categories: Mapped[str] = mapped_column(String, default="[]")  # JSON array
    image_url: Mapped[str | None] = mapped_column(String)
    source_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    source_url: Mapped[str] = mapped_column(String, default="")

    relevance_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # 0-10
    student_priority: Mapped[bool] = mapped_column(Boolean, default=False)
    ai_reasoning: Mapped[str] = mapped_column(Text, default="")
    ai_categories: Mapped[str] = mapped_column(String, default="[]")  # JSON array
    ai_scored: Mapped[bool] = mapped_column(Boolean, default=False)
    scoring_error: Mapped[bool] = mapped_column(Boolean, default=False)
    keyword_score_details: Mapped[str | None] = mapped_column(Text)  # JSON object

    fetch_date: Mapped[date] = mapped_column(Date, nullable=False)
    daily_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    collected_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_fetch_date_source", "fetch_date", "source_name"),
        Index("idx_daily_rank", "daily_rank"),
    )

    def __repr__(self) -> str:
        return f"<Article(id={self.id}, fetch_date={self.fetch_date}, title={self.title!r})>"


class NewsletterArchive(Base):
    """One generated weekly newsletter. Immutable once written."""

    __tablename__ = "newsletter_archive"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)  # Markdown
    html_content: Mapped[str] = mapped_column(Text, nullable=False)
    date_range: Mapped[str] = mapped_column(String, nullable=False)
    article_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("week_number", "year", name="uq_archive_week_year"),
    )

    def __repr__(self) -> str:
        return f"<NewsletterArchive(id={self.id}, week={self.week_number}/{self.year})>"


class PipelineJob(Base):
    """Persisted status of a pipeline stage run."""

    __tablename__ = "pipeline_jobs"

    id: Mapped[str] = mapped_column(String, primary_key=True)  # uuid4 hex
    kind: Mapped[str] = mapped_column(String, nullable=False)  # daily, rank, weekly
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    result: Mapped[str | None] = mapped_column(Text)  # JSON object
    error: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<PipelineJob(id={self.id!r}, kind={self.kind!r}, status={self.status!r})>"
