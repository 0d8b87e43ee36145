"""linkit-curator configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# --- Paths ---
BASE_DIR = Path(__file__).parent
DATA_DIR = BASE_DIR / "data"
DB_PATH = DATA_DIR / "linkit_curator.db"

# --- API ---
API_HOST = "127.0.0.1"
API_PORT = 8001

# --- Feeds ---
RSS_SOURCES: dict[str, str] = {
    "The Decoder": "https://the-decoder.de/feed/",
    "O'Reilly Radar": "https://feeds.feedburner.com/oreilly/radar",
    "TechCrunch": "https://techcrunch.com/category/artificial-intelligence/feed/",
}

# Domain fragment -> display name
KNOWN_SOURCE_NAMES: dict[str, str] = {
    "the-decoder.de": "The Decoder",
    "techcrunch.com": "TechCrunch",
    "wired.com": "Wired",
    "oreilly.com": "O'Reilly Radar",
    "feedburner.com/oreilly": "O'Reilly Radar",
    "heise.de": "Heise Online",
    "golem.de": "Golem.de",
    "t3n.de": "t3n Magazine",
    "stackoverflow.com": "Stack Overflow",
    "reddit.com": "Reddit",
    "medium.com": "Medium",
    "dev.to": "DEV Community",
    "news.ycombinator.com": "Hacker News",
}

FEED_TIMEOUT: int = 30
FEED_USER_AGENT = "Mozilla/5.0 (compatible; linkit-curator RSS reader)"
MAX_ARTICLES_PER_SOURCE: int = int(os.getenv("MAX_ARTICLES_PER_SOURCE", "15"))

# --- Scoring ---
ENABLE_AI_SCORING: bool = _env_bool("ENABLE_AI_SCORING", True)
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
GEMINI_BASE_URL: str = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "45"))
# Pause between Gemini calls to stay under the free-tier rate limit
AI_MIN_INTERVAL: float = float(os.getenv("AI_MIN_INTERVAL", "1.0"))
SCORING_MAX_WORKERS: int = int(os.getenv("SCORING_MAX_WORKERS", "4"))
STUDENT_PRIORITY_THRESHOLD: float = 7.0

# --- Ranking ---
DAILY_TOP_N: int = 10
WEEKLY_TOP_N: int = 10
PIPELINE_TIMEZONE: str = os.getenv("PIPELINE_TIMEZONE", "UTC")
WEEKLY_SOURCE_NAME: str | None = os.getenv("WEEKLY_SOURCE_NAME") or None

# --- Scheduler ---
DAILY_TRIGGER_HOURS: tuple[int, ...] = (8, 14, 20)
DAILY_TRIGGER_MINUTE_WINDOW: int = 5
WEEKLY_TRIGGER_WEEKDAY: int = 6  # Monday=0 ... Sunday=6
WEEKLY_TRIGGER_HOUR: int = 23
WEEKLY_TRIGGER_MINUTE: int = 59

# --- Newsletter ---
NEWSLETTER_TITLE_PREFIX = "LINKIT WEEKLY KW"
