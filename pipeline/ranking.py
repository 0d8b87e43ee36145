"""Daily ranker: dense 1..N ranks by relevance for one fetch date."""

import logging
from datetime import date

from db.database import get_session
from db.models import Article

logger = logging.getLogger(__name__)


def rank_day(fetch_date: date, source_name: str | None = None) -> int:
    """Assign daily_rank 1..N to every article stored for `fetch_date`.

    Order is relevance_score descending; ties go to the earlier-inserted
    article (lower id), so repeated runs on unchanged data reproduce the
    same ranks. When `source_name` is given only that source's articles
    are ranked. Returns the number of ranked articles.
    """
    session = get_session()
    try:
        query = session.query(Article).filter(Article.fetch_date == fetch_date)
        if source_name:
            query = query.filter(Article.source_name == source_name)
        articles = query.order_by(Article.relevance_score.desc(), Article.id.asc()).all()

        if not articles:
            logger.info("No articles found for ranking on %s", fetch_date)
            return 0

        for rank, article in enumerate(articles, start=1):
            article.daily_rank = rank
        session.commit()

        top = ", ".join(
            f"{a.daily_rank}. {a.title[:40]} ({a.relevance_score})" for a in articles[:3]
        )
        logger.info("Ranked %d articles for %s%s. Top 3: %s",
                    len(articles), fetch_date, f" [{source_name}]" if source_name else "", top)
        return len(articles)
    finally:
        session.close()
