"""Exceptions raised by the curation pipeline."""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class FetchError(PipelineError):
    """Feed unreachable or returned a non-success status."""


class ParseError(PipelineError):
    """Feed payload could not be parsed."""


class ScoringError(PipelineError):
    """AI relevance scoring failed; callers fall back to keyword scoring."""


class NoArticlesForWeek(PipelineError):
    """No daily-ranked candidates exist for the requested ISO week."""

    def __init__(self, week_number: int, year: int) -> None:
        super().__init__(f"No ranked articles found for week {week_number}/{year}")
        self.week_number = week_number
        self.year = year


class DuplicateWeekError(PipelineError):
    """A newsletter for this (week, year) was stored concurrently."""

    def __init__(self, week_number: int, year: int) -> None:
        super().__init__(f"Newsletter for week {week_number}/{year} already exists")
        self.week_number = week_number
        self.year = year
