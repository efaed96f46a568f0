from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

GRID_COLUMNS = 120
COLUMNS_PER_MONTH = 10
# Tighter right-hand margin for deciding same-row annotation placement.
POSITION_LIMIT = 109
ANNOTATION_BUFFER = 2
DEFAULT_SPAN_WIDTH = COLUMNS_PER_MONTH

MONTH_NAMES: List[str] = [
    "JAN",
    "FEB",
    "MAR",
    "APR",
    "MAY",
    "JUN",
    "JUL",
    "AUG",
    "SEP",
    "OCT",
    "NOV",
    "DEC",
]
FULL_MONTH_NAMES: List[str] = [
    "JANUARY",
    "FEBRUARY",
    "MARCH",
    "APRIL",
    "MAY",
    "JUNE",
    "JULY",
    "AUGUST",
    "SEPTEMBER",
    "OCTOBER",
    "NOVEMBER",
    "DECEMBER",
]
DISPLAY_MONTH_NAMES: List[str] = [name.title() for name in MONTH_NAMES]

MONTH_GRID_POSITIONS: Dict[str, int] = {
    "JAN": 1,
    "FEB": 11,
    "MAR": 21,
    "APR": 31,
    "MAY": 41,
    "JUN": 51,
    "JUL": 61,
    "AUG": 71,
    "SEP": 81,
    "OCT": 91,
    "NOV": 101,
    "DEC": 111,
}

ANNOTATION_WIDTHS: Dict[int, int] = {
    1: 16,
    2: 26,
    3: 38,
    4: 50,
    5: 62,
    6: 74,
    7: 85,
}
ANNOTATION_WIDTH_STEP = 12

MonthGridLookup = Callable[[str], int]


def month_to_grid(month: str) -> int:
    """Return the base column for a month name (JAN, January, ...).

    Unknown names map to column 1 so a typo never blanks a row.
    """

    key = (month or "").strip().upper()
    if key in FULL_MONTH_NAMES:
        key = MONTH_NAMES[FULL_MONTH_NAMES.index(key)]
    return MONTH_GRID_POSITIONS.get(key, 1)


def month_base_column(month: int, lookup: MonthGridLookup = month_to_grid) -> int:
    return lookup(MONTH_NAMES[month - 1])


def annotation_width(item_count: int) -> int:
    """Width in grid columns of an annotation box holding ``item_count`` entries."""

    if item_count <= len(ANNOTATION_WIDTHS):
        return ANNOTATION_WIDTHS.get(item_count, ANNOTATION_WIDTHS[1])
    largest = max(ANNOTATION_WIDTHS)
    return ANNOTATION_WIDTHS[largest] + (item_count - largest) * ANNOTATION_WIDTH_STEP


def exceeds_grid(column: int) -> bool:
    return column > GRID_COLUMNS


def quarter_labels(year: int) -> List[str]:
    short_year = str(year)[-2:]
    return [f"Q{quarter}'{short_year}" for quarter in range(1, 5)]


@dataclass(frozen=True)
class LayoutConfig:
    """Explicit layout switches handed to the resolver at call time."""

    force_annotations_below: bool = False
    sort_stories: bool = False
    annotation_buffer: int = ANNOTATION_BUFFER
    same_row_limit: int = GRID_COLUMNS
    flip_late_year_endings: bool = True

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "LayoutConfig":
        values = {
            "force_annotations_below": settings.force_annotations_below,
            "sort_stories": settings.sort_stories,
            "same_row_limit": settings.annotation_same_row_limit,
            "flip_late_year_endings": settings.flip_late_year_endings,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


__all__ = [
    "ANNOTATION_BUFFER",
    "COLUMNS_PER_MONTH",
    "GRID_COLUMNS",
    "LayoutConfig",
    "MONTH_GRID_POSITIONS",
    "MONTH_NAMES",
    "POSITION_LIMIT",
    "annotation_width",
    "month_base_column",
    "month_to_grid",
    "quarter_labels",
]
