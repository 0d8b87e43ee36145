from db.database import get_engine, get_session, init_db
from db.models import Article, NewsletterArchive, PipelineJob

__all__ = ["get_engine", "get_session", "init_db", "Article", "NewsletterArchive", "PipelineJob"]
