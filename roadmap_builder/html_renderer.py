from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from html import escape
from typing import List, Optional, Tuple

from .date_normalizer import date_sort_key, is_early_delivery, to_european_text
from .grid_config import DISPLAY_MONTH_NAMES, GRID_COLUMNS, MONTH_NAMES, month_to_grid, quarter_labels
from .models import RoadmapChanges, StatusInfo, StoryRecord
from .roadmap_layout import BTL_EPIC_NAME, RoadmapLayout, StoryLayout

EARLY_COLOR = "#28a745"
DELAY_COLOR = "red"

# (attribute, css class, icon, date color) per status info.
STATUS_ENTRIES: List[Tuple[str, str, str, str]] = [
    ("done_info", "done", "✓", "#28a745"),
    ("cancel_info", "cancelled", "✖", "#dc3545"),
    ("at_risk_info", "at-risk", "⚠", "#e0a800"),
    ("new_story_info", "new", "🌟", "#005a8b"),
    ("transferred_out_info", "transferred-out", "➡️", "#555"),
    ("transferred_in_info", "transferred-in", "➡️", "#555"),
    ("proposed_info", "proposed", "💡", "#005a8b"),
]


@dataclass
class _AnnotationEntry:
    sort_key: Tuple[int, date]
    html: str


def story_icons(story: StoryRecord) -> List[Tuple[str, str]]:
    """Status icons as ``(css class, glyph)`` pairs, at most one per corner.

    Bottom right: cancelled > done > at risk > transferred out.
    Top right: proposed > new.
    Bottom left: info > transferred in.
    """

    icons: List[Tuple[str, str]] = []
    if story.is_cancelled:
        icons.append(("cancel-icon", "X"))
    elif story.is_done:
        icons.append(("done-icon", "✅"))
    elif story.is_at_risk:
        icons.append(("atrisk-icon", "⚠"))
    elif story.is_transferred_out:
        icons.append(("transferredout-icon", "➡️"))

    if story.is_proposed:
        icons.append(("proposed-icon", "💡"))
    elif story.is_new_story:
        icons.append(("newstory-icon", "🌟"))

    if story.is_info:
        icons.append(("info-icon", "ℹ️"))
    elif story.is_transferred_in:
        icons.append(("transferredin-icon", "➡️"))
    return icons


def _status_entry(css_class: str, icon: str, color: str, info: StatusInfo, roadmap_year: int) -> _AnnotationEntry:
    html = (
        "<div class=\"annotation-entry status-" + css_class + "\">"
        + "<div class=\"entry-head\"><span class=\"entry-icon\">" + icon + "</span>"
        + "<span class=\"entry-date\" style=\"color: " + color + ";\">"
        + escape(to_european_text(info.date, roadmap_year)) + "</span></div>"
        + "<div class=\"entry-notes\">" + escape(info.notes) + "</div>"
        + "</div>"
    )
    return _AnnotationEntry(sort_key=date_sort_key(info.date, roadmap_year), html=html)


def annotation_entries(changes: Optional[RoadmapChanges], roadmap_year: int) -> List[str]:
    """HTML fragments for timeline changes and status notes, oldest first."""

    if changes is None:
        return []

    entries: List[_AnnotationEntry] = []
    for change in changes.changes:
        early = is_early_delivery(change.prev_end_date, change.new_end_date, roadmap_year)
        color = EARLY_COLOR if early else DELAY_COLOR
        previous = escape(to_european_text(change.prev_end_date, roadmap_year))
        new = escape(to_european_text(change.new_end_date, roadmap_year))
        movement = (new + " &lt;- " + previous) if early else (previous + " -&gt; " + new)
        kind = "early" if early else "delay"
        html = (
            "<div class=\"annotation-entry change-" + kind + "\">"
            + "<div class=\"entry-head\"><span class=\"entry-icon\">🕐</span>"
            + "<span class=\"entry-date\" style=\"color: " + color + ";\">"
            + escape(to_european_text(change.date, roadmap_year)) + "</span></div>"
            + "<div class=\"entry-notes\"><span class=\"entry-movement\" style=\"color: " + color + ";\">"
            + movement + "</span> " + escape(change.description) + "</div>"
            + "</div>"
        )
        entries.append(_AnnotationEntry(sort_key=date_sort_key(change.date, roadmap_year), html=html))

    for attribute, css_class, icon, color in STATUS_ENTRIES:
        info = getattr(changes, attribute)
        if info is not None and info.has_content:
            entries.append(_status_entry(css_class, icon, color, info, roadmap_year))
    for info in changes.info_entries:
        entries.append(_status_entry("info", "ℹ️", "#005a8b", info, roadmap_year))

    entries.sort(key=lambda entry: entry.sort_key)
    return [entry.html for entry in entries]


def _btl_entries(story: StoryRecord, roadmap_year: int) -> List[str]:
    if not story.date_added:
        return []
    return [
        "<div class=\"annotation-entry status-added\">"
        + "<div class=\"entry-head\"><span class=\"entry-icon\">📌</span>"
        + "<span class=\"entry-date\">" + escape(to_european_text(story.date_added, roadmap_year)) + "</span></div>"
        + "<div class=\"entry-notes\">" + escape(story.date_added_description) + "</div>"
        + "</div>"
    ]


def _render_story(parts: List[str], story_layout: StoryLayout, row: int, roadmap_year: int, below_the_line: bool) -> None:
    story = story_layout.story
    span = story_layout.span

    classes = ["story-item"]
    if story.is_cancelled:
        classes.append("story-cancelled")
    if story.is_proposed:
        classes.append("story-proposed")
    if span.spans_next_year:
        classes.append("story-continues")
    if span.spans_previous_year:
        classes.append("story-started-earlier")

    parts.append(
        "        <div class=\"" + " ".join(classes) + "\" style=\"--start: " + str(span.start_column)
        + "; --end: " + str(span.end_column) + "; grid-row: " + str(row) + ";\">"
    )
    for css_class, glyph in story_icons(story):
        parts.append("            <div class=\"" + css_class + "\">" + glyph + "</div>")
    if story.country_flags:
        parts.append("            <div class=\"country-flags\">" + escape(", ".join(story.country_flags)) + "</div>")

    continuation = story_layout.continuation
    if continuation is not None:
        month, year = continuation
        parts.append("            <div class=\"continuation-indicator\">")
        parts.append("                <div class=\"continuation-month\">" + month + "</div>")
        parts.append("                <div class=\"continuation-year\">" + year + "</div>")
        parts.append("            </div>")

    if story.imo:
        parts.append("            <div class=\"imo-tag\">(" + escape(story.imo) + ")</div>")

    title = escape(story.title)
    start_label = story_layout.start_label
    if start_label:
        title += " <span class=\"start-info\">(starts " + escape(start_label) + ")</span>"
    parts.append("            <div class=\"task-title\">" + title + "</div>")

    if story.bullets:
        parts.append("            <ul class=\"bullets\">")
        for bullet in story.bullets:
            parts.append("                <li>" + escape(bullet) + "</li>")
        parts.append("            </ul>")
    parts.append("        </div>")

    box = story_layout.annotation
    if box is None:
        return
    entries = _btl_entries(story, roadmap_year) if below_the_line else annotation_entries(story.roadmap_changes, roadmap_year)
    if not entries:
        return
    annotation_row = row + box.placement.row - 1
    parts.append(
        "        <div class=\"roadmap-changes\" style=\"--start: " + str(box.start_column)
        + "; --end: " + str(box.end_column) + "; grid-row: " + str(annotation_row) + ";\">"
    )
    for entry in entries:
        parts.append("            " + entry)
    parts.append("        </div>")


def _render_swimlane(parts: List[str], name: str, stories: List[StoryLayout], roadmap_year: int, below_the_line: bool) -> None:
    css_class = "swimlane btl-swimlane" if below_the_line else "swimlane"
    parts.append("    <section class=\"" + css_class + "\">")
    parts.append("        <div class=\"epic-name\">" + escape(name) + "</div>")
    row = 1
    for story_layout in stories:
        _render_story(parts, story_layout, row, roadmap_year, below_the_line)
        below = story_layout.annotation is not None and story_layout.annotation.below
        row += 2 if below else 1
    parts.append("    </section>")


def render_roadmap_html(layout: RoadmapLayout, title: Optional[str] = None) -> str:
    """Render a laid out roadmap as a single printable HTML page."""

    heading = title or (layout.team_name + " Roadmap " + str(layout.roadmap_year)).strip()

    parts: List[str] = []
    parts.append("<!DOCTYPE html>")
    parts.append("<html lang=\"en\">")
    parts.append("<head>")
    parts.append("    <meta charset=\"utf-8\" />")
    parts.append("    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />")
    parts.append("    <title>" + escape(heading) + "</title>")
    parts.append("    <style>")
    parts.append("        @page { size: A3 landscape; margin: 10mm; }")
    parts.append("        body { font-family: system-ui, -apple-system, 'Segoe UI', sans-serif; color: #222; }")
    parts.append("        .grid, .swimlane { display: grid; grid-template-columns: repeat(" + str(GRID_COLUMNS) + ", 1fr); }")
    parts.append("        .quarter-header { grid-column: span 30; font-weight: bold; text-align: center; border-bottom: 1px solid #999; }")
    parts.append("        .month-header { grid-column: span 10; text-align: center; font-size: 9pt; color: #555; }")
    parts.append("        .swimlane { border-top: 1px solid #ccc; padding: 4pt 0; position: relative; }")
    parts.append("        .epic-name { grid-column: 1 / -1; font-weight: bold; font-size: 10pt; }")
    parts.append("        .story-item, .roadmap-changes { grid-column: var(--start) / var(--end); position: relative; }")
    parts.append("        .story-item { background: #e8f0fe; border-radius: 4px; padding: 2pt 4pt; margin: 2pt 0; font-size: 9pt; }")
    parts.append("        .story-cancelled .task-title { text-decoration: line-through; }")
    parts.append("        .story-proposed { border: 1px dashed #005a8b; }")
    parts.append("        .continuation-indicator { position: absolute; right: 2pt; top: 2pt; font-size: 7pt; text-align: center; }")
    parts.append("        .start-info { font-size: smaller; font-style: italic; font-weight: normal; }")
    parts.append("        .roadmap-changes { display: flex; gap: 4pt; font-size: 8pt; }")
    parts.append("        .annotation-entry { flex: 0 0 auto; max-width: 110px; }")
    parts.append("        .entry-date { font-weight: bold; margin-left: 2px; }")
    parts.append("        .footer { margin-top: 12pt; font-size: 8pt; color: #999; text-align: right; }")
    parts.append("    </style>")
    parts.append("</head>")
    parts.append("<body>")
    parts.append("    <h1>" + escape(heading) + "</h1>")
    parts.append("    <div class=\"grid header\">")
    for label in quarter_labels(layout.roadmap_year):
        parts.append("        <div class=\"quarter-header\">" + escape(label) + "</div>")
    for month_name, display_name in zip(MONTH_NAMES, DISPLAY_MONTH_NAMES):
        parts.append(
            "        <div class=\"month-header\" data-column=\"" + str(month_to_grid(month_name)) + "\">"
            + display_name + "</div>"
        )
    parts.append("    </div>")

    for epic in layout.epics:
        _render_swimlane(parts, epic.name, epic.stories, layout.roadmap_year, False)
    if layout.btl_stories:
        _render_swimlane(parts, BTL_EPIC_NAME, layout.btl_stories, layout.roadmap_year, True)

    parts.append("    <div class=\"footer\">" + str(layout.total_stories) + " stories</div>")
    parts.append("</body>")
    parts.append("</html>")

    return "\n".join(parts)


__all__ = ["annotation_entries", "render_roadmap_html", "story_icons"]
