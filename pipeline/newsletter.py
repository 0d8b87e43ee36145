"""Newsletter prose: Gemini generation with a templated fallback."""

import logging
import re
from html import escape
from typing import Any

from config import NEWSLETTER_TITLE_PREFIX
from llm.gemini import GeminiClient, GeminiError

logger = logging.getLogger(__name__)

_PROMPT = """Write the weekly newsletter "{title}" ({date_range}) for university
students interested in AI, data science and Industry 4.0.

Use Markdown. Start with a "# " heading, a short friendly intro, then one
"### " section per article in the given order with two or three sentences on
why it matters for students and a link line "[Read the article](<link>)".
End with a short closing paragraph. Stick strictly to the facts given below;
do not invent details.

Articles:
{articles}"""


def newsletter_title(week_number: int) -> str:
    return f"{NEWSLETTER_TITLE_PREFIX} {week_number}"


def _articles_block(articles: list[dict[str, Any]]) -> str:
    parts = []
    for i, a in enumerate(articles, start=1):
        parts.append(
            f"{i}. {a['title']}\n"
            f"   Description: {(a.get('description') or '')[:400]}\n"
            f"   Score: {a['relevance_score']}/10\n"
            f"   Link: {a['link']}"
        )
    return "\n".join(parts)


def render_fallback(
    week_number: int, date_range: str, articles: list[dict[str, Any]]
) -> str:
    """Deterministic Markdown newsletter: title, description, score and link per article."""
    sections = []
    for i, a in enumerate(articles, start=1):
        priority = " (student priority)" if a.get("student_priority") else ""
        sections.append(
            f"### {i}. {a['title']}\n\n"
            f"{a.get('description') or ''}\n\n"
            f"**Relevance for students:** {a['relevance_score']}/10{priority}  \n"
            f"**Source:** {a.get('source_name') or 'Unknown'}  \n"
            f"[Read the article]({a['link']})"
        )

    body = "\n\n".join(sections)
    return (
        f"# {newsletter_title(week_number)}\n\n"
        f"**Your update on AI, data science and Industry 4.0**\n\n"
        f"KW {week_number} · {date_range}\n\n"
        f"Here are this week's top {len(articles)} articles, picked from the best of each day.\n\n"
        f"{body}\n\n"
        f"---\n\n"
        f"See you next week!\n"
    )


class NewsletterWriter:
    """Generate newsletter Markdown, falling back to the template on any Gemini failure."""

    def __init__(self, client: GeminiClient | None = None) -> None:
        self.client = client or GeminiClient()

    def generate(
        self, week_number: int, year: int, date_range: str, articles: list[dict[str, Any]]
    ) -> tuple[str, bool]:
        """Return (markdown, ai_generated)."""
        if self.client.configured:
            prompt = _PROMPT.format(
                title=newsletter_title(week_number),
                date_range=date_range,
                articles=_articles_block(articles),
            )
            try:
                content = self.client.generate(prompt, temperature=0.3, max_output_tokens=4096)
                return content, True
            except GeminiError as e:
                logger.error("Newsletter generation failed for %d/%d, using template: %s",
                             week_number, year, e)
        else:
            logger.info("No Gemini API key configured, using newsletter template")
        return render_fallback(week_number, date_range, articles), False


def _format_inline(text: str) -> str:
    """Render limited inline markdown safely."""
    escaped = escape(text, quote=False)
    escaped = re.sub(
        r"\[([^\]]+)\]\((https?://[^)\s]+)\)",
        # already entity-escaped; only quotes remain unsafe inside the attribute
        lambda m: f'<a href="{m.group(2).replace(chr(34), "&quot;")}">{m.group(1)}</a>',
        escaped,
    )
    escaped = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", escaped)
    escaped = re.sub(r"(?<!\*)\*(?!\s)(.+?)(?<!\s)\*(?!\*)", r"<em>\1</em>", escaped)
    return escaped


def markdown_to_html(markdown: str) -> str:
    """Convert the newsletter's Markdown subset (headings, emphasis, links,
    rules, paragraphs) to HTML."""
    blocks: list[str] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append("<p>" + "<br>".join(_format_inline(line) for line in paragraph) + "</p>")
            paragraph.clear()

    for raw in markdown.splitlines():
        line = raw.rstrip()
        heading = re.match(r"^(#{1,6})\s+(.*)$", line)
        if heading:
            flush()
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{_format_inline(heading.group(2))}</h{level}>")
        elif line.strip() in ("---", "***"):
            flush()
            blocks.append("<hr>")
        elif not line.strip():
            flush()
        else:
            paragraph.append(line.strip())
    flush()
    return "\n".join(blocks)
