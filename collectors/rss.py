"""RSS/Atom collector using requests + feedparser."""

import logging
from typing import Any
from urllib.parse import urlparse

import feedparser
import requests

from collectors.base import BaseCollector, strip_html
from config import FEED_TIMEOUT, FEED_USER_AGENT, KNOWN_SOURCE_NAMES
from pipeline.errors import FetchError, ParseError

logger = logging.getLogger(__name__)

_FEED_PATTERNS = ("/feed", "/rss", ".xml", "/atom", ".rss", "feeds.")

# Domain fragment -> feed path appended to the bare site URL
_KNOWN_FEED_PATHS: dict[str, str] = {
    "wired.com": "/feed/rss",
    "heise.de": "/rss/news-atom.xml",
    "golem.de": "/rss.php",
    "dev.to": "/feed",
    "medium.com": "/feed",
}

_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml;q=0.9, */*;q=0.8"


def normalize_feed_url(url: str) -> str:
    """Turn a bare site URL into its feed URL; feed URLs pass through."""
    feed_url = url.strip()
    lowered = feed_url.lower()
    if any(p in lowered for p in _FEED_PATTERNS):
        return feed_url

    base = feed_url.rstrip("/")
    if "oreilly.com" in lowered:
        return "https://feeds.feedburner.com/oreilly/radar"
    if "reddit.com" in lowered and "/r/" in lowered:
        return base + ".rss"
    for domain, path in _KNOWN_FEED_PATHS.items():
        if domain in lowered:
            return base + path
    return base + "/feed/"


def source_name_for_url(url: str) -> str:
    """Human-readable source name for a feed URL."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").removeprefix("www.")
    if not host:
        return "Unknown Source"
    location = host + parsed.path
    for fragment, name in KNOWN_SOURCE_NAMES.items():
        if fragment in location:
            return name
    return " ".join(w.capitalize() for w in host.split(".")[0].split("-"))


class RssCollector(BaseCollector):
    """Collect articles from a single RSS or Atom feed."""

    def __init__(
        self,
        feed_url: str,
        source_name: str | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self.source_url = normalize_feed_url(feed_url)
        self.source_name = source_name or source_name_for_url(self.source_url)
        self._http = http or requests.Session()

    def _fetch(self) -> bytes:
        try:
            resp = self._http.get(
                self.source_url,
                headers={"User-Agent": FEED_USER_AGENT, "Accept": _ACCEPT},
                timeout=FEED_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {self.source_url}: {e}") from e
        if not resp.content or not resp.content.strip():
            raise FetchError(f"Empty response from {self.source_url}")
        return resp.content

    def _parse(self, payload: bytes) -> list[Any]:
        feed = feedparser.parse(payload)
        if feed.bozo and not feed.entries:
            raise ParseError(f"Could not parse feed {self.source_url}: {feed.get('bozo_exception')}")
        if not feed.entries and not feed.get("version"):
            raise ParseError(f"{self.source_url} is not a syndication feed")
        return list(feed.entries)

    @staticmethod
    def _extract_content(entry: Any) -> str:
        """Prefer full content, fall back to summary."""
        for c in entry.get("content") or []:
            if c.get("value"):
                return strip_html(c["value"])
        return strip_html(entry.get("summary"))

    @staticmethod
    def _extract_categories(entry: Any) -> list[str]:
        terms = [strip_html(t.get("term")) for t in entry.get("tags") or []]
        return list(dict.fromkeys(t for t in terms if t))

    @staticmethod
    def _extract_image_url(entry: Any) -> str | None:
        for enc in entry.get("enclosures") or []:
            if "image" in (enc.get("type") or "") and enc.get("href"):
                return enc["href"]
        for thumb in entry.get("media_thumbnail") or []:
            if thumb.get("url"):
                return thumb["url"]
        for media in entry.get("media_content") or []:
            is_image = media.get("medium") == "image" or "image" in (media.get("type") or "")
            if is_image and media.get("url"):
                return media["url"]
        return None

    def _normalize(self, entry: Any) -> dict[str, Any] | None:
        """Map a feedparser entry to an article candidate, or None to drop it."""
        link = (entry.get("link") or "").strip()
        guid = (entry.get("id") or "").strip()
        if not link and guid.startswith("http"):
            link = guid
        if not link and not guid:
            return None

        title = strip_html(entry.get("title"))
        description = strip_html(entry.get("summary"))
        if not title and not description:
            return None

        return {
            "title": title or "(untitled)",
            "link": link or guid,
            "guid": guid or link,
            "description": description,
            "content": self._extract_content(entry),
            "pub_date": self._parse_published(entry),
            "creator": strip_html(entry.get("author")),
            "categories": self._extract_categories(entry),
            "image_url": self._extract_image_url(entry),
            "source_name": self.source_name,
            "source_url": self.source_url,
        }

    def collect(self) -> list[dict[str, Any]]:
        """Fetch and normalize the feed. Raises FetchError / ParseError."""
        logger.info("Fetching feed: %s (%s)", self.source_name, self.source_url)
        entries = self._parse(self._fetch())

        articles: list[dict[str, Any]] = []
        seen: set[str] = set()
        for entry in entries:
            try:
                article = self._normalize(entry)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed entry in %s: %s", self.source_name, e)
                continue
            if article is None or article["link"] in seen:
                continue
            seen.add(article["link"])
            articles.append(article)

        logger.info("Got %d entries from %s", len(articles), self.source_name)
        return articles
