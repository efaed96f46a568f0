from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from .date_normalizer import (
    FieldRole,
    MonthToken,
    NormalizedDate,
    last_day_of_month,
    month_label,
    normalize,
    normalize_month,
)
from .grid_config import DISPLAY_MONTH_NAMES, LayoutConfig
from .grid_resolver import AnnotationBox, DateBounds, GridSpan, place_annotation, resolve_span
from .models import RoadmapChanges, RoadmapDocument, StoryRecord

logger = logging.getLogger("roadmap.layout")

BTL_EPIC_NAME = "BTL"
# Stories without an end sort as if they finished in March.
DEFAULT_SORT_END_MONTH = 3


@dataclass(frozen=True)
class StoryTimeSpan:
    start: Optional[NormalizedDate]
    end: Optional[NormalizedDate]
    roadmap_year: int


@dataclass
class StoryLayout:
    story: StoryRecord
    span: GridSpan
    annotation: Optional[AnnotationBox] = None
    annotation_items: int = 0

    @property
    def continuation(self) -> Optional[Tuple[str, str]]:
        """``("Feb", "26")`` for a story running past the roadmap window."""

        end = self.span.actual_end
        if not self.span.spans_next_year or not isinstance(end, date):
            return None
        return DISPLAY_MONTH_NAMES[end.month - 1], f"{end.year % 100:02d}"

    @property
    def continuation_label(self) -> Optional[str]:
        parts = self.continuation
        return " ".join(parts) if parts else None

    @property
    def start_label(self) -> Optional[str]:
        start = self.span.actual_start
        if not self.span.spans_previous_year or start is None:
            return None
        return month_label(start)


@dataclass
class EpicLayout:
    name: str
    stories: List[StoryLayout] = field(default_factory=list)


@dataclass
class RoadmapLayout:
    team_name: str
    roadmap_year: int
    epics: List[EpicLayout] = field(default_factory=list)
    btl_stories: List[StoryLayout] = field(default_factory=list)

    @property
    def total_stories(self) -> int:
        return sum(len(epic.stories) for epic in self.epics) + len(self.btl_stories)


def _normalize_field(
    raw: Optional[str],
    roadmap_year: int,
    role: FieldRole,
    *,
    allow_month: bool,
    title: str,
) -> Optional[NormalizedDate]:
    if not raw:
        return None
    if allow_month:
        token = normalize_month(raw)
        if token is not None:
            return token
    value = normalize(raw, roadmap_year, role)
    if value is None:
        logger.debug("Ignoring unparseable %s date %r on story %r", role, raw, title)
    return value


def _latest_change_end(changes: Optional[RoadmapChanges], roadmap_year: int) -> Optional[str]:
    if changes is None:
        return None

    latest: Optional[str] = None
    latest_key: Optional[Tuple[bool, date]] = None
    for change in changes.changes:
        if not change.new_end_date:
            continue
        parsed = normalize(change.date, roadmap_year)
        key = (parsed is not None, parsed or date.min)
        # Later entries win ties, matching the order teams append changes in.
        if latest_key is None or key >= latest_key:
            latest, latest_key = change.new_end_date, key
    return latest


def effective_end_value(story: StoryRecord, roadmap_year: int) -> Optional[str]:
    """The end a story currently commits to, after any timeline changes."""

    return _latest_change_end(story.roadmap_changes, roadmap_year) or story.end_date or story.end_month


def story_time_span(story: StoryRecord, roadmap_year: int) -> StoryTimeSpan:
    if story.start_date:
        start = _normalize_field(story.start_date, roadmap_year, "start", allow_month=False, title=story.title)
    else:
        start = _normalize_field(story.start_month, roadmap_year, "start", allow_month=True, title=story.title)

    end_value = effective_end_value(story, roadmap_year)
    # Only an explicit endDate is always read as a calendar date.
    end = _normalize_field(
        end_value,
        roadmap_year,
        "end",
        allow_month=end_value != story.end_date,
        title=story.title,
    )

    return StoryTimeSpan(start=start, end=end, roadmap_year=roadmap_year)


def _year_of(value: Optional[NormalizedDate], roadmap_year: int) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, MonthToken):
        return roadmap_year
    return value.year


def should_display_story(time_span: StoryTimeSpan) -> bool:
    """Whether a story is active at some point during the roadmap year."""

    year = time_span.roadmap_year
    start_year = _year_of(time_span.start, year)
    end_year = _year_of(time_span.end, year)

    if start_year is not None and end_year is not None:
        return start_year <= year <= end_year
    if start_year is not None:
        return start_year <= year
    if end_year is not None:
        return end_year >= year
    return True


def count_annotation_items(changes: Optional[RoadmapChanges]) -> int:
    if changes is None:
        return 0

    count = len(changes.changes)
    for info in (
        changes.done_info,
        changes.cancel_info,
        changes.at_risk_info,
        changes.new_story_info,
        changes.transferred_out_info,
        changes.transferred_in_info,
        changes.proposed_info,
    ):
        if info is not None and info.has_content:
            count += 1
    return count + len(changes.info_entries)


def _as_sort_date(value: Optional[NormalizedDate], roadmap_year: int, role: FieldRole) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, MonthToken):
        day = last_day_of_month(roadmap_year, value.month) if role == "end" else 1
        return date(roadmap_year, value.month, day)
    return value


def sort_stories(stories: Iterable[StoryRecord], roadmap_year: int) -> List[StoryRecord]:
    """Stable sort by start date, then by effective end date."""

    default_start = date(roadmap_year, 1, 1)
    default_end = date(roadmap_year, DEFAULT_SORT_END_MONTH, last_day_of_month(roadmap_year, DEFAULT_SORT_END_MONTH))

    def key(story: StoryRecord) -> Tuple[date, date]:
        time_span = story_time_span(story, roadmap_year)
        start = _as_sort_date(time_span.start, roadmap_year, "start") or default_start
        end = _as_sort_date(time_span.end, roadmap_year, "end") or default_end
        return start, end

    return sorted(stories, key=key)


def layout_story(
    story: StoryRecord,
    roadmap_year: int,
    config: Optional[LayoutConfig] = None,
    bounds: Optional[DateBounds] = None,
    *,
    below_the_line: bool = False,
) -> Optional[StoryLayout]:
    """Resolve one story to grid columns; ``None`` when it is hidden this year."""

    config = config or LayoutConfig()
    time_span = story_time_span(story, roadmap_year)
    if not should_display_story(time_span):
        return None

    span = resolve_span(time_span.start, time_span.end, roadmap_year, bounds=bounds)

    if below_the_line:
        item_count = 1 if story.date_added else 0
    else:
        item_count = count_annotation_items(story.roadmap_changes)

    annotation = None
    if item_count:
        annotation = place_annotation(span, item_count, config, roadmap_year=roadmap_year)
        span = replace(span, placement=annotation.placement)
    return StoryLayout(story=story, span=span, annotation=annotation, annotation_items=item_count)


def _bounds_from_document(document: RoadmapDocument) -> Optional[DateBounds]:
    search_range = document.search_range
    if search_range is None or (search_range.start_date is None and search_range.end_date is None):
        return None
    return DateBounds(start=search_range.start_date, end=search_range.end_date)


def _layout_many(
    stories: Sequence[StoryRecord],
    roadmap_year: int,
    config: LayoutConfig,
    bounds: Optional[DateBounds],
    below_the_line: bool,
) -> List[StoryLayout]:
    laid_out: List[StoryLayout] = []
    for story in stories:
        story_layout = layout_story(story, roadmap_year, config, bounds, below_the_line=below_the_line)
        if story_layout is not None:
            laid_out.append(story_layout)
    return laid_out


def layout_roadmap(
    document: RoadmapDocument,
    roadmap_year: int,
    config: Optional[LayoutConfig] = None,
    bounds: Optional[DateBounds] = None,
) -> RoadmapLayout:
    config = config or LayoutConfig()
    if bounds is None:
        bounds = _bounds_from_document(document)

    epics: List[EpicLayout] = []
    for epic in document.epics:
        stories = sort_stories(epic.stories, roadmap_year) if config.sort_stories else list(epic.stories)
        epics.append(EpicLayout(name=epic.name, stories=_layout_many(stories, roadmap_year, config, bounds, False)))

    btl_stories = _layout_many(document.btl_stories, roadmap_year, config, bounds, True)

    layout = RoadmapLayout(
        team_name=document.team_name,
        roadmap_year=roadmap_year,
        epics=epics,
        btl_stories=btl_stories,
    )
    logger.debug("Laid out %d stories for %r (%d)", layout.total_stories, document.team_name, roadmap_year)
    return layout


__all__ = [
    "BTL_EPIC_NAME",
    "EpicLayout",
    "RoadmapLayout",
    "StoryLayout",
    "StoryTimeSpan",
    "count_annotation_items",
    "effective_end_value",
    "layout_roadmap",
    "layout_story",
    "should_display_story",
    "sort_stories",
    "story_time_span",
]
