"""Base collector with shared feed-entry helpers."""

import html
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from time import struct_time
from typing import Any

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def strip_html(text: str | None) -> str:
    """Remove HTML tags, unescape entities and collapse whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", html.unescape(text)).strip()


class BaseCollector(ABC):
    """Abstract base for article collectors.

    `collect()` returns article candidate dicts with at least `title` and
    `link` populated; optional fields default to "" / [] / None.
    """

    source_name: str  # Must be set by subclasses or __init__
    source_url: str

    @abstractmethod
    def collect(self) -> list[dict[str, Any]]:
        """Fetch and normalize articles from the source."""
        ...

    @staticmethod
    def _parse_published(entry: Any) -> datetime | None:
        """Parse published date from a feed entry as naive UTC."""
        for field in ("published_parsed", "updated_parsed"):
            val = entry.get(field)
            if isinstance(val, struct_time):
                try:
                    return datetime(*val[:6])
                except (ValueError, OverflowError):
                    pass
        # Fallback: try raw string (RFC 822, then ISO 8601)
        for field in ("published", "updated"):
            raw = entry.get(field)
            if not raw:
                continue
            try:
                parsed = parsedate_to_datetime(raw)
            except (TypeError, ValueError, IndexError):
                try:
                    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
                except (ValueError, TypeError):
                    continue
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        return None
