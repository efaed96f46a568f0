from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from .date_normalizer import MonthToken
from .grid_config import (
    LayoutConfig,
    POSITION_LIMIT,
    annotation_width,
    exceeds_grid,
    month_base_column,
    month_to_grid,
    quarter_labels,
)
from .grid_resolver import (
    DateBounds,
    GridSpan,
    bucket_offset,
    end_column,
    place_annotation,
    resolve_span,
    start_column,
)

MARCH_START_COLUMNS = {
    **{day: 21 for day in range(1, 4)},
    **{day: 22 for day in range(4, 11)},
    **{day: 25 for day in range(11, 21)},
    **{day: 28 for day in range(21, 28)},
    **{day: 31 for day in range(28, 32)},
}

MARCH_END_COLUMNS = {
    **{day: 21 for day in range(1, 4)},
    **{day: 24 for day in range(4, 11)},
    **{day: 27 for day in range(11, 21)},
    **{day: 30 for day in range(21, 26)},
    **{day: 31 for day in range(26, 32)},
}


@pytest.mark.parametrize("day, expected", sorted(MARCH_START_COLUMNS.items()))
def test_start_column_for_every_day_of_march(day, expected):
    assert start_column(date(2025, 3, day)) == expected


@pytest.mark.parametrize("day, expected", sorted(MARCH_END_COLUMNS.items()))
def test_end_column_for_every_day_of_march(day, expected):
    assert end_column(date(2025, 3, day)) == expected


def test_month_table_and_lookup():
    assert month_to_grid("JAN") == 1
    assert month_to_grid("dec") == 111
    assert month_to_grid("August") == 71
    assert month_to_grid("Smarch") == 1
    assert month_base_column(3) == 21
    assert exceeds_grid(121)
    assert not exceeds_grid(120)


def test_bucket_offsets():
    assert [bucket_offset(day) for day in (1, 3, 4, 10, 11, 20, 21, 31)] == [0, 0, 3, 3, 6, 6, 9, 9]


def test_year_edges():
    assert start_column(date(2025, 12, 28)) == 120
    assert start_column(date(2025, 12, 31)) == 120
    assert start_column(date(2025, 1, 2)) == 1
    assert end_column(date(2025, 1, 2)) == 1
    assert end_column(date(2025, 12, 31)) == 121


def test_month_tokens_take_whole_month():
    assert start_column(MonthToken(8)) == 71
    assert end_column(MonthToken(8)) == 81


def test_resolve_span_basic():
    span = resolve_span(date(2025, 1, 15), date(2025, 3, 31), 2025)
    assert (span.start_column, span.end_column) == (5, 31)
    assert not span.spans_previous_year
    assert not span.spans_next_year


def test_resolve_span_continues_into_next_year():
    span = resolve_span(date(2025, 11, 1), date(2026, 2, 1), 2025)
    assert span.end_column == 121
    assert span.spans_next_year
    assert span.actual_end == date(2026, 2, 1)


def test_resolve_span_started_in_previous_year():
    span = resolve_span(date(2024, 11, 1), date(2025, 3, 15), 2025)
    assert span.start_column == 1
    assert span.spans_previous_year
    assert span.actual_start == date(2024, 11, 1)
    assert span.end_column == 27


def test_resolve_span_fallbacks():
    assert (resolve_span(None, date(2025, 3, 31), 2025).start_column) == 21
    assert (resolve_span(None, date(2025, 1, 5), 2025).start_column) == 1
    only_start = resolve_span(MonthToken(8), None, 2025)
    assert (only_start.start_column, only_start.end_column) == (71, 81)
    neither = resolve_span(None, None, 2025)
    assert (neither.start_column, neither.end_column) == (1, 11)


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (date(2025, 3, 28), date(2025, 3, 31), (31, 32)),
        (date(2025, 3, 29), date(2025, 4, 2), (31, 32)),
        (date(2025, 3, 30), MonthToken(3), (31, 32)),
        (date(2024, 12, 1), date(2025, 1, 2), (1, 2)),
        (date(2025, 12, 29), date(2025, 12, 31), (120, 121)),
    ],
)
def test_resolve_span_keeps_short_spans_visible(start, end, expected):
    span = resolve_span(start, end, 2025)
    assert (span.start_column, span.end_column) == expected
    assert span.end_column > span.start_column


def test_resolve_span_passes_inverted_spans_through():
    span = resolve_span(date(2025, 6, 15), date(2025, 3, 15), 2025)
    assert span.start_column > span.end_column
    assert (span.start_column, span.end_column) == (55, 27)


def test_resolve_span_narrows_with_search_range():
    bounds = DateBounds(start=date(2025, 3, 1), end=date(2025, 6, 30))
    span = resolve_span(date(2025, 2, 10), date(2025, 8, 15), 2025, bounds=bounds)
    assert span.start_column == 1
    assert span.spans_previous_year
    assert span.end_column == 121
    assert span.spans_next_year


def test_resolve_span_uses_injected_lookup():
    shifted = {"JAN": 2, "MAR": 22, "DEC": 112}
    span = resolve_span(date(2025, 3, 2), None, 2025, month_to_grid=lambda name: shifted.get(name, month_to_grid(name)))
    assert span.start_column == 22


def test_resolve_span_is_idempotent():
    first = resolve_span(date(2025, 4, 12), date(2025, 9, 30), 2025)
    second = resolve_span(date(2025, 4, 12), date(2025, 9, 30), 2025)
    assert first == second


def test_annotation_widths():
    assert [annotation_width(count) for count in range(1, 8)] == [16, 26, 38, 50, 62, 74, 85]
    assert annotation_width(8) == 97
    assert annotation_width(0) == 16


def test_annotation_stays_on_row_when_it_fits():
    box = place_annotation(GridSpan(start_column=11, end_column=31), 1)
    assert box.placement.row == 1
    assert (box.start_column, box.end_column) == (33, 49)


def test_annotation_moves_below_when_too_wide():
    box = place_annotation(GridSpan(start_column=41, end_column=115), 5)
    assert box.below
    assert (box.start_column, box.end_column) == (41, 103)
    assert box.placement.horizontal_offset == 0


def test_annotation_below_shifts_left_to_fit_grid():
    box = place_annotation(GridSpan(start_column=100, end_column=110), 5)
    assert box.below
    assert (box.start_column, box.end_column) == (58, 120)
    assert box.placement.horizontal_offset == 42


def test_annotation_for_continuing_story_goes_below():
    span = resolve_span(date(2025, 3, 1), date(2026, 2, 1), 2025)
    box = place_annotation(span, 1, roadmap_year=2025)
    assert box.below
    assert box.start_column == span.start_column


def test_annotation_for_late_year_ending_is_behind_flag():
    span = resolve_span(date(2025, 9, 1), date(2025, 10, 10), 2025)
    assert place_annotation(span, 1, roadmap_year=2025).below
    relaxed = LayoutConfig(flip_late_year_endings=False)
    box = place_annotation(span, 1, relaxed, roadmap_year=2025)
    assert box.placement.row == 1
    assert (box.start_column, box.end_column) == (96, 112)


def test_forced_and_tighter_placement():
    span = resolve_span(date(2025, 1, 15), date(2025, 3, 31), 2025)
    assert place_annotation(span, 1, LayoutConfig(force_annotations_below=True)).below

    mid_year = resolve_span(date(2025, 9, 1), date(2025, 9, 20), 2025)
    assert place_annotation(mid_year, 2, roadmap_year=2025).placement.row == 1
    tight = LayoutConfig(same_row_limit=POSITION_LIMIT)
    assert place_annotation(mid_year, 2, tight, roadmap_year=2025).below


def test_layout_config_from_settings_applies_overrides():
    settings = SimpleNamespace(
        force_annotations_below=False,
        sort_stories=True,
        annotation_same_row_limit=109,
        flip_late_year_endings=False,
    )
    config = LayoutConfig.from_settings(settings, force_annotations_below=True, sort_stories=None)
    assert config.force_annotations_below is True
    assert config.sort_stories is True
    assert config.same_row_limit == 109
    assert config.flip_late_year_endings is False


def test_quarter_labels():
    assert quarter_labels(2025) == ["Q1'25", "Q2'25", "Q3'25", "Q4'25"]
