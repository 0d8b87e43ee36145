from collectors.base import BaseCollector, strip_html
from collectors.rss import RssCollector, normalize_feed_url, source_name_for_url

__all__ = [
    "BaseCollector",
    "RssCollector",
    "normalize_feed_url",
    "source_name_for_url",
    "strip_html",
]
