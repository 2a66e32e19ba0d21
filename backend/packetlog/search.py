"""Turn free-text search strings into calendar dates.

The packet list search box accepts either text or a day. A search string is
tried against :data:`DATE_FORMATS` in order; the first format that parses wins
and its time-of-day, if any, is dropped. Month names may be full ("June")
or abbreviated ("Jun").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Sequence

_ORDINAL_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)


@dataclass(frozen=True)
class DateFormat:
    """One ``strptime`` pattern.

    ``assume_year`` appends the current year for patterns without one;
    ``ordinal`` only matches when the day carries an ordinal suffix ("5th").
    """

    name: str
    pattern: str
    assume_year: bool = False
    ordinal: bool = False

    def __call__(self, text: str, today: date) -> date | None:
        candidate = text
        if self.ordinal:
            candidate, n = _ORDINAL_RE.subn(r"\1", candidate)
            if n != 1:
                return None
        pattern = self.pattern
        if self.assume_year:
            candidate = f"{candidate} {today.year}"
            pattern = f"{pattern} %Y"
        try:
            return datetime.strptime(candidate, pattern).date()
        except ValueError:
            return None


DateStrategy = Callable[[str, date], "date | None"]

DATE_FORMATS: tuple[DateStrategy, ...] = (
    DateFormat("day month", "%d %B", assume_year=True),
    DateFormat("day mon", "%d %b", assume_year=True),
    DateFormat("ordinal day month", "%d %B", assume_year=True, ordinal=True),
    DateFormat("ordinal day mon", "%d %b", assume_year=True, ordinal=True),
    DateFormat("time day month", "%I:%M %p %d %B", assume_year=True),
    DateFormat("time day mon", "%I:%M %p %d %b", assume_year=True),
    DateFormat("time ordinal day month", "%I:%M %p %d %B", assume_year=True, ordinal=True),
    DateFormat("time ordinal day mon", "%I:%M %p %d %b", assume_year=True, ordinal=True),
    DateFormat("month day, year", "%B %d, %Y"),
    DateFormat("mon day, year", "%b %d, %Y"),
    DateFormat("iso", "%Y-%m-%d"),
)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DateHeuristicParser:
    def __init__(
        self,
        strategies: Sequence[DateStrategy] = DATE_FORMATS,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self.strategies = tuple(strategies)
        self._today = today

    def parse(self, text: str | None) -> date | None:
        text = (text or "").strip()
        if not text:
            return None
        today = self._today()
        for strategy in self.strategies:
            parsed = strategy(text, today)
            if parsed is not None:
                return parsed
        return None


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the inclusive UTC bounds ``[00:00:00.000, 23:59:59.999]`` of *day*."""

    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end
