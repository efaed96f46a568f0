from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .date_normalizer import MonthToken, NormalizedDate
from .grid_config import (
    COLUMNS_PER_MONTH,
    DEFAULT_SPAN_WIDTH,
    GRID_COLUMNS,
    LayoutConfig,
    MonthGridLookup,
    annotation_width,
    exceeds_grid,
    month_base_column,
    month_to_grid,
)

# Story starts sit two columns left of the raw bucket.
START_SHIFT = 2
START_SHIFT_LAST_DAY = 27
NEXT_MONTH_START_DAY = 28
END_OF_MONTH_DAY = 26
START_OF_MONTH_LAST_DAY = 3
LATE_YEAR_MONTH = 10
LATE_YEAR_DAY = 4


@dataclass(frozen=True)
class Placement:
    row: int = 1
    horizontal_offset: int = 0


@dataclass(frozen=True)
class DateBounds:
    """Optional search-range bounds applied on top of the roadmap year."""

    start: Optional[date] = None
    end: Optional[date] = None


@dataclass(frozen=True)
class GridSpan:
    start_column: int
    end_column: int
    spans_previous_year: bool = False
    spans_next_year: bool = False
    actual_start: Optional[NormalizedDate] = None
    actual_end: Optional[NormalizedDate] = None
    placement: Placement = field(default_factory=Placement)

    @property
    def width(self) -> int:
        return self.end_column - self.start_column


@dataclass(frozen=True)
class AnnotationBox:
    start_column: int
    end_column: int
    placement: Placement

    @property
    def below(self) -> bool:
        return self.placement.row == 2


def bucket_offset(day: int) -> int:
    """Sub-month offset for a day of the month (the 4-position system)."""

    if day <= START_OF_MONTH_LAST_DAY:
        return 0
    if day <= 10:
        return 3
    if day <= 20:
        return 6
    return 9


def is_end_of_month(day: int) -> bool:
    return day >= END_OF_MONTH_DAY


def is_start_of_month(day: int) -> bool:
    return 1 <= day <= START_OF_MONTH_LAST_DAY


def start_column(value: NormalizedDate, lookup: MonthGridLookup = month_to_grid) -> int:
    base = month_base_column(value.month, lookup)
    if isinstance(value, MonthToken):
        return base

    day = value.day
    if is_start_of_month(day):
        return base
    if day >= NEXT_MONTH_START_DAY:
        if value.month == 12:
            return base + COLUMNS_PER_MONTH - 1
        return month_base_column(value.month + 1, lookup)
    column = base + bucket_offset(day)
    if day <= START_SHIFT_LAST_DAY:
        column -= START_SHIFT
    return column


def end_column(value: NormalizedDate, lookup: MonthGridLookup = month_to_grid) -> int:
    base = month_base_column(value.month, lookup)
    if isinstance(value, MonthToken):
        return base + COLUMNS_PER_MONTH

    day = value.day
    if is_end_of_month(day):
        return base + COLUMNS_PER_MONTH
    if is_start_of_month(day):
        # Ends on the 1st-3rd close out the previous month.
        if value.month == 1:
            return base
        return month_base_column(value.month - 1, lookup) + COLUMNS_PER_MONTH
    return base + bucket_offset(day)


def effective_bounds(roadmap_year: int, bounds: Optional[DateBounds] = None) -> tuple[date, date]:
    lower = date(roadmap_year, 1, 1)
    upper = date(roadmap_year, 12, 31)
    if bounds is not None:
        if bounds.start is not None and bounds.start > lower:
            lower = bounds.start
        if bounds.end is not None and bounds.end < upper:
            upper = bounds.end
    return lower, upper


def _calendar_key(value: NormalizedDate, roadmap_year: int, role: str) -> tuple[int, int, int]:
    if isinstance(value, MonthToken):
        return (roadmap_year, value.month, 31 if role == "end" else 1)
    return (value.year, value.month, value.day)


def _is_inverted(start: NormalizedDate, end: NormalizedDate, roadmap_year: int) -> bool:
    return _calendar_key(end, roadmap_year, "end") < _calendar_key(start, roadmap_year, "start")


def resolve_span(
    start: Optional[NormalizedDate],
    end: Optional[NormalizedDate],
    roadmap_year: int,
    *,
    bounds: Optional[DateBounds] = None,
    month_to_grid: MonthGridLookup = month_to_grid,
) -> GridSpan:
    """Map a story's normalized endpoints onto the 120-column grid.

    Dated endpoints outside the effective window (the roadmap year narrowed
    by ``bounds``) are clamped to January / December and flagged; the
    unclamped values are kept on the span for display. A missing endpoint
    falls back to the other one plus a month, and to column 1 when both
    are missing. A correctly ordered span is always at least one column
    wide; inverted spans are left as they are.
    """

    lower, upper = effective_bounds(roadmap_year, bounds)

    spans_previous_year = False
    start_col: Optional[int] = None
    if isinstance(start, date) and start < lower:
        spans_previous_year = True
        start_col = month_to_grid("JAN")
    elif start is not None:
        start_col = start_column(start, month_to_grid)

    spans_next_year = False
    end_col: Optional[int] = None
    if isinstance(end, date) and end > upper:
        spans_next_year = True
        end_col = month_to_grid("DEC") + COLUMNS_PER_MONTH
    elif end is not None:
        end_col = end_column(end, month_to_grid)

    if start_col is None and end_col is None:
        start_col = 1
        end_col = start_col + DEFAULT_SPAN_WIDTH
    elif start_col is None:
        start_col = max(1, end_col - DEFAULT_SPAN_WIDTH)
    elif end_col is None:
        end_col = start_col + DEFAULT_SPAN_WIDTH
    elif end_col <= start_col and not _is_inverted(start, end, roadmap_year):
        # Snapping can collapse short, correctly ordered spans onto one column.
        end_col = start_col + 1

    return GridSpan(
        start_column=start_col,
        end_column=end_col,
        spans_previous_year=spans_previous_year,
        spans_next_year=spans_next_year,
        actual_start=start,
        actual_end=end,
    )


def _ends_late_in_year(span: GridSpan, roadmap_year: Optional[int]) -> bool:
    end = span.actual_end
    if roadmap_year is None or not isinstance(end, date) or end.year != roadmap_year:
        return False
    return (end.month, end.day) >= (LATE_YEAR_MONTH, LATE_YEAR_DAY)


def place_annotation(
    span: GridSpan,
    item_count: int,
    config: Optional[LayoutConfig] = None,
    *,
    roadmap_year: Optional[int] = None,
) -> AnnotationBox:
    """Position an annotation box next to, or below, a story bar."""

    config = config or LayoutConfig()
    width = annotation_width(item_count)
    anchor = span.end_column

    below = config.force_annotations_below or span.spans_next_year
    if not below and config.flip_late_year_endings:
        below = _ends_late_in_year(span, roadmap_year)
    if not below:
        below = anchor + config.annotation_buffer + width > config.same_row_limit

    if not below:
        box_start = anchor + config.annotation_buffer
        return AnnotationBox(box_start, box_start + width, Placement(row=1))

    box_start = span.start_column
    shifted = box_start
    if exceeds_grid(box_start + width):
        overflow = box_start + width - GRID_COLUMNS
        shifted = max(1, box_start - overflow)
    return AnnotationBox(
        shifted,
        shifted + width,
        Placement(row=2, horizontal_offset=box_start - shifted),
    )


__all__ = [
    "AnnotationBox",
    "DateBounds",
    "GridSpan",
    "Placement",
    "bucket_offset",
    "end_column",
    "place_annotation",
    "resolve_span",
    "start_column",
]
