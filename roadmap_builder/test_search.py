from __future__ import annotations

from datetime import date

from .models import RoadmapDocument
from .search import (
    extract_stories,
    filter_stories_by_imo,
    search_stories,
    search_stories_by_date_range,
    search_stories_by_title,
)


def _documents():
    payments = RoadmapDocument.model_validate(
        {
            "teamName": "Payments",
            "roadmapYear": 2025,
            "epics": [
                {
                    "name": "Checkout",
                    "stories": [
                        {"title": "Card vault", "startDate": "01/03/25", "endDate": "30/06/25", "imo": "IMO-7"},
                        {"title": "Wallet support", "startDate": "05/03/25", "endDate": "05/07/25", "imo": 42},
                        {"title": "", "startDate": "01/03/25"},
                    ],
                }
            ],
            "btlSwimlane": {"stories": [{"title": "Crypto", "startMonth": "Aug", "endMonth": "Oct"}]},
        }
    )
    search = RoadmapDocument.model_validate(
        {
            "teamData": {
                "teamName": "Search",
                "epics": [{"name": "Relevance", "stories": [{"title": "Vault audit", "startDate": "2025-03-02"}]}],
            }
        }
    )
    return [payments, search]


def _titles(hits):
    return [hit.story.title for hit in hits]


def test_extract_stories_skips_untitled_and_marks_btl():
    hits = extract_stories(_documents()[0])
    assert _titles(hits) == ["Card vault", "Wallet support", "Crypto"]
    assert hits[-1].epic_name == "BTL"
    assert hits[-1].source_type == "btl"
    assert hits[0].team_name == "Payments"
    assert hits[0].roadmap_year == 2025


def test_extract_stories_falls_back_to_default_year():
    hits = extract_stories(_documents()[1], default_year=2025)
    assert hits[0].roadmap_year == 2025


def test_search_by_title_is_case_insensitive():
    hits = extract_stories(_documents()[0])
    assert _titles(search_stories_by_title(hits, "VAULT")) == ["Card vault"]


def test_filter_by_imo():
    hits = extract_stories(_documents()[0])
    assert _titles(filter_stories_by_imo(hits, "imo-7")) == ["Card vault"]
    assert _titles(filter_stories_by_imo(hits, "42")) == ["Wallet support"]
    assert _titles(filter_stories_by_imo(hits, "all")) == ["Card vault", "Wallet support"]


def test_date_search_modes():
    hits = extract_stories(_documents()[0])

    assert _titles(search_stories_by_date_range(hits, start=date(2025, 3, 1))) == ["Card vault"]
    assert _titles(search_stories_by_date_range(hits, end=date(2025, 10, 31))) == ["Crypto"]

    seven_days = search_stories_by_date_range(hits, start=date(2025, 3, 1), mode="exact-7days")
    assert _titles(seven_days) == ["Card vault", "Wallet support"]
    assert search_stories_by_date_range(hits, start=date(2025, 3, 6), mode="exact-7days") == []
    around_end = search_stories_by_date_range(hits, end=date(2025, 6, 24), mode="exact-7days")
    assert _titles(around_end) == ["Card vault"]

    in_range = search_stories_by_date_range(hits, date(2025, 3, 1), date(2025, 7, 1), mode="range")
    assert _titles(in_range) == ["Card vault"]
    from_date = search_stories_by_date_range(hits, start=date(2025, 3, 2), mode="range")
    assert _titles(from_date) == ["Wallet support", "Crypto"]


def test_date_search_without_criteria_is_empty():
    hits = extract_stories(_documents()[0])
    assert search_stories_by_date_range(hits) == []


def test_search_stories_combines_filters_and_caps_results():
    total, hits = search_stories(_documents(), title="vault", max_results=10)
    assert total == 4
    assert _titles(hits) == ["Card vault", "Vault audit"]

    _total, capped = search_stories(_documents(), title="vault", max_results=1)
    assert len(capped) == 1

    _total, combined = search_stories(_documents(), title="vault", imo="all", max_results=10)
    assert _titles(combined) == ["Card vault"]
