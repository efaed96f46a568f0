from __future__ import annotations

from .html_renderer import annotation_entries, render_roadmap_html, story_icons
from .models import RoadmapChanges, RoadmapDocument, StoryRecord
from .roadmap_layout import layout_roadmap


def _render(stories, btl_stories=None, title=None) -> str:
    document = RoadmapDocument.model_validate(
        {
            "teamName": "Platform",
            "roadmapYear": 2025,
            "epics": [{"name": "Core <API>", "stories": stories}],
            "btlStories": {"stories": btl_stories or []},
        }
    )
    return render_roadmap_html(layout_roadmap(document, 2025), title)


def test_render_roadmap_basic_html():
    html = _render([{"title": "Ledger rewrite", "startDate": "15/01/25", "endDate": "31/03/25", "bullets": ["Phase 1"]}])

    assert "<!DOCTYPE html>" in html
    assert "Platform Roadmap 2025" in html
    assert "Q1&#x27;25" in html
    assert ">Jan</div>" in html and ">Dec</div>" in html
    assert "--start: 5; --end: 31;" in html
    assert "Ledger rewrite" in html
    assert "<li>Phase 1</li>" in html


def test_render_escapes_user_text():
    html = _render([{"title": "<script>alert(1)</script>", "startMonth": "Mar"}], title="A & B")
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "Core &lt;API&gt;" in html
    assert "<title>A &amp; B</title>" in html


def test_render_continuation_and_start_info():
    html = _render([{"title": "Migration", "startDate": "15/08/24", "endDate": "01/02/26"}])
    assert "story-continues" in html
    assert "<div class=\"continuation-month\">Feb</div>" in html
    assert "<div class=\"continuation-year\">26</div>" in html
    assert "(starts Aug 2024)" in html


def test_render_annotation_row_below_story():
    html = _render(
        [
            {
                "title": "Late",
                "startDate": "01/09/25",
                "endDate": "10/10/25",
                "roadmapChanges": {"doneInfo": {"date": "10/10/25", "notes": "Done"}},
            }
        ]
    )
    assert "class=\"roadmap-changes\" style=\"--start: 81; --end: 97; grid-row: 2;\"" in html


def test_render_btl_swimlane_with_date_added():
    html = _render(
        [],
        btl_stories=[{"title": "Idea", "startMonth": "Apr", "dateAdded": "2025-02-01", "dateAddedDescription": "Raised"}],
    )
    assert "btl-swimlane" in html
    assert "01/02/25" in html
    assert "Raised" in html


def test_story_icons_follow_precedence():
    story = StoryRecord.model_validate(
        {"title": "x", "isCancelled": True, "isDone": True, "isNewStory": True, "isProposed": True, "isTransferredIn": True}
    )
    classes = [css_class for css_class, _glyph in story_icons(story)]
    assert classes == ["cancel-icon", "proposed-icon", "transferredin-icon"]

    done = StoryRecord.model_validate({"title": "y", "isDone": True, "isAtRisk": True, "isInfo": True, "isTransferredIn": True})
    assert [css_class for css_class, _glyph in story_icons(done)] == ["done-icon", "info-icon"]


def test_annotation_entries_sorted_and_coloured():
    changes = RoadmapChanges.model_validate(
        {
            "changes": [
                {"date": "10/03/25", "prevEndDate": "30/06/25", "newEndDate": "15/06/25", "description": "Pulled in"},
                {"date": "01/02/25", "prevEndDate": "31/03/25", "newEndDate": "30/04/25", "description": "Slipped"},
            ],
            "atRiskInfo": {"date": "20/02/25", "notes": "Vendor"},
        }
    )
    entries = annotation_entries(changes, 2025)
    assert len(entries) == 3
    assert "Slipped" in entries[0]
    assert "Vendor" in entries[1]
    assert "Pulled in" in entries[2]
    assert "change-delay" in entries[0] and "31/03/25 -&gt; 30/04/25" in entries[0]
    assert "change-early" in entries[2] and "#28a745" in entries[2]
    assert "15/06/25 &lt;- 30/06/25" in entries[2]
