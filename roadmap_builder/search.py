from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional, Sequence

from .date_normalizer import FieldRole, normalize
from .models import RoadmapDocument, SearchMode, StoryHit
from .roadmap_layout import BTL_EPIC_NAME

EXACT_WINDOW = timedelta(days=7)
ALL_IMO = "all"


def extract_stories(document: RoadmapDocument, default_year: Optional[int] = None) -> List[StoryHit]:
    """Flatten a roadmap into search hits; untitled stories are skipped."""

    roadmap_year = document.roadmap_year or default_year
    hits: List[StoryHit] = []
    for epic in document.epics:
        for story in epic.stories:
            if not story.title.strip():
                continue
            hits.append(
                StoryHit(
                    team_name=document.team_name,
                    epic_name=epic.name,
                    source_type="epic",
                    roadmap_year=roadmap_year,
                    story=story,
                )
            )
    for story in document.btl_stories:
        if not story.title.strip():
            continue
        hits.append(
            StoryHit(
                team_name=document.team_name,
                epic_name=BTL_EPIC_NAME,
                source_type="btl",
                roadmap_year=roadmap_year,
                story=story,
            )
        )
    return hits


def search_stories_by_title(hits: Sequence[StoryHit], text: str) -> List[StoryHit]:
    needle = text.strip().casefold()
    if not needle:
        return list(hits)
    return [hit for hit in hits if needle in hit.story.title.casefold()]


def filter_stories_by_imo(hits: Sequence[StoryHit], imo: str) -> List[StoryHit]:
    """Match an IMO tag exactly (ignoring case); ``"all"`` keeps every tagged story."""

    wanted = imo.strip().casefold()
    if not wanted:
        return list(hits)
    if wanted == ALL_IMO:
        return [hit for hit in hits if hit.story.imo]
    return [hit for hit in hits if hit.story.imo and hit.story.imo.casefold() == wanted]


def _story_date(hit: StoryHit, role: FieldRole) -> Optional[date]:
    story = hit.story
    raw = (story.start_date or story.start_month) if role == "start" else (story.end_date or story.end_month)
    roadmap_year = hit.roadmap_year or date.today().year
    return normalize(raw, roadmap_year, role)


def _within(value: Optional[date], lower: date, upper: date) -> bool:
    return value is not None and lower <= value <= upper


def _matches_dates(hit: StoryHit, start: Optional[date], end: Optional[date], mode: SearchMode) -> bool:
    story_start = _story_date(hit, "start")
    story_end = _story_date(hit, "end")

    if mode == "exact":
        if start and story_start != start:
            return False
        if end and story_end != end:
            return False
        return True

    if mode == "exact-7days":
        # Starts only look forward; ends look both ways.
        if start and not _within(story_start, start, start + EXACT_WINDOW):
            return False
        if end and not _within(story_end, end - EXACT_WINDOW, end + EXACT_WINDOW):
            return False
        return True

    if start and end:
        if story_start is None and story_end is None:
            return False
        if story_start is not None and story_start < start:
            return False
        if story_end is not None and story_end > end:
            return False
        return True
    if start:
        return story_start is not None and story_start >= start
    return story_end is not None and story_end <= end


def search_stories_by_date_range(
    hits: Sequence[StoryHit],
    start: Optional[date] = None,
    end: Optional[date] = None,
    mode: SearchMode = "exact",
) -> List[StoryHit]:
    if start is None and end is None:
        return []
    return [hit for hit in hits if _matches_dates(hit, start, end, mode)]


def search_stories(
    documents: Sequence[RoadmapDocument],
    *,
    title: Optional[str] = None,
    imo: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    mode: SearchMode = "exact",
    max_results: int,
    default_year: Optional[int] = None,
) -> tuple[int, List[StoryHit]]:
    """Search stories across roadmaps.

    Returns the number of stories searched and the matching hits, capped at
    ``max_results``. Filters combine with AND.
    """

    hits: List[StoryHit] = []
    for document in documents:
        hits.extend(extract_stories(document, default_year))
    total = len(hits)

    if title:
        hits = search_stories_by_title(hits, title)
    if imo:
        hits = filter_stories_by_imo(hits, imo)
    if start or end:
        hits = search_stories_by_date_range(hits, start, end, mode)
    return total, hits[:max_results]


__all__ = [
    "extract_stories",
    "filter_stories_by_imo",
    "search_stories",
    "search_stories_by_date_range",
    "search_stories_by_title",
]
