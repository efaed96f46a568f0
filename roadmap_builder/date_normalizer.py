from __future__ import annotations

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional, Tuple, Union

from .grid_config import DISPLAY_MONTH_NAMES, FULL_MONTH_NAMES, MONTH_NAMES

FieldRole = Literal["start", "end"]


@dataclass(frozen=True)
class MonthToken:
    """A bare month with no day, meaning "the whole month"."""

    month: int

    @property
    def name(self) -> str:
        return MONTH_NAMES[self.month - 1]


NormalizedDate = Union[date, MonthToken]

MONTH_LOOKUP = {name: index + 1 for index, name in enumerate(MONTH_NAMES)}
MONTH_LOOKUP.update({name: index + 1 for index, name in enumerate(FULL_MONTH_NAMES)})
MONTH_LOOKUP["SEPT"] = 9

_MONTH_ALTERNATION = "|".join(sorted(MONTH_LOOKUP, key=len, reverse=True))
_ORDINAL = r"(?:ST|ND|RD|TH)?"

ISO_DATE_PATTERN = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")
EUROPEAN_DATE_PATTERN = re.compile(
    r"^(?P<day>\d{1,2})[/\-](?P<month>\d{1,2})(?:[/\-](?P<year>\d{4}|\d{2}))?$"
)
MONTH_DAY_PATTERN = re.compile(
    rf"^(?P<month>{_MONTH_ALTERNATION})\.?(?:\s*(?P<day>\d{{1,2}}){_ORDINAL})?(?:,?\s+(?P<year>\d{{4}}))?$"
)
DAY_MONTH_PATTERN = re.compile(
    rf"^(?P<day>\d{{1,2}}){_ORDINAL}\s+(?P<month>{_MONTH_ALTERNATION})\.?(?:,?\s+(?P<year>\d{{4}}))?$"
)


def _clean(raw: object) -> str:
    return " ".join(str(raw).split()).upper()


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def last_day_of_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def expand_year(year_text: Optional[str], roadmap_year: int) -> int:
    """Two-digit years always land in the 2000s; a missing year is the roadmap year."""

    if not year_text:
        return roadmap_year
    year = int(year_text)
    if len(year_text) == 2:
        return 2000 + year
    return year


def parse_month_name(raw: object) -> Optional[int]:
    if raw is None:
        return None
    return MONTH_LOOKUP.get(_clean(raw).rstrip("."))


def _parse_iso(text: str) -> Optional[date]:
    match = ISO_DATE_PATTERN.match(text)
    if not match:
        return None
    return _safe_date(int(match.group("year")), int(match.group("month")), int(match.group("day")))


def _parse_european(text: str, roadmap_year: int) -> Optional[date]:
    match = EUROPEAN_DATE_PATTERN.match(text)
    if not match:
        return None

    day = int(match.group("day"))
    month = int(match.group("month"))
    year = expand_year(match.group("year"), roadmap_year)

    # US-style typo: 08/15 can only mean 15 August.
    if month > 12 and day <= 12:
        day, month = month, day

    if not (1 <= month <= 12):
        return None
    return _safe_date(year, month, day)


def _match_month_words(text: str) -> Optional[Tuple[int, Optional[int], Optional[str]]]:
    for pattern in (MONTH_DAY_PATTERN, DAY_MONTH_PATTERN):
        match = pattern.match(text)
        if match:
            day = match.group("day")
            return MONTH_LOOKUP[match.group("month")], int(day) if day else None, match.group("year")
    return None


def _parse_month_words(text: str, roadmap_year: int, field_role: FieldRole) -> Optional[date]:
    matched = _match_month_words(text)
    if matched is None:
        return None

    month, day, year_text = matched
    year = expand_year(year_text, roadmap_year)
    if day is None:
        day = last_day_of_month(year, month) if field_role == "end" else 1
    return _safe_date(year, month, day)


def normalize(raw: object, roadmap_year: int, field_role: FieldRole = "start") -> Optional[date]:
    """Interpret a team-authored date string as a calendar date.

    Grammars are tried in order: ISO ``YYYY-MM-DD``, European day-first
    ``D/M[/YY]`` (``-`` also accepted), then month names with an optional
    day and year. Bare month names resolve to the first day of the month
    for starts and the last day for ends. Returns ``None`` for anything
    unparseable or not on the calendar; never raises.
    """

    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = _clean(raw)
    if not text:
        return None

    return (
        _parse_iso(text)
        or _parse_european(text, roadmap_year)
        or _parse_month_words(text, roadmap_year, field_role)
    )


def normalize_month(raw: object) -> Optional[MonthToken]:
    """Return a month token when ``raw`` is a bare month name (``AUG``, ``August``)."""

    month = parse_month_name(raw)
    if month is None:
        return None
    return MonthToken(month)


def format_european(value: date) -> str:
    return value.strftime("%d/%m/%y")


def to_european_text(raw: Optional[str], roadmap_year: int) -> str:
    """Display form ``DD/MM/YY`` for annotation dates; unparseable text is kept as is."""

    if not raw:
        return ""
    parsed = normalize(raw, roadmap_year)
    if parsed is None:
        return raw
    return format_european(parsed)


def month_label(value: NormalizedDate) -> str:
    if isinstance(value, MonthToken):
        return DISPLAY_MONTH_NAMES[value.month - 1]
    return f"{DISPLAY_MONTH_NAMES[value.month - 1]} {value.year}"


def is_early_delivery(prev_end: Optional[str], new_end: Optional[str], roadmap_year: int) -> bool:
    previous = normalize(prev_end, roadmap_year, "end")
    new = normalize(new_end, roadmap_year, "end")
    if previous is None or new is None:
        return False
    return new < previous


def date_sort_key(raw: Optional[str], roadmap_year: int) -> Tuple[int, date]:
    parsed = normalize(raw, roadmap_year)
    if parsed is None:
        return (1, date.max)
    return (0, parsed)


__all__ = [
    "FieldRole",
    "MonthToken",
    "NormalizedDate",
    "date_sort_key",
    "format_european",
    "is_early_delivery",
    "last_day_of_month",
    "month_label",
    "normalize",
    "normalize_month",
    "parse_month_name",
    "to_european_text",
]
