from __future__ import annotations

import json
import logging

import pytest

from .roadmap_loader import load_roadmap_file, scan_roadmap_directory


def _write(path, payload) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_load_roadmap_file_accepts_legacy_wrapper(tmp_path):
    target = tmp_path / "legacy.json"
    _write(target, {"teamData": {"teamName": "Legacy", "roadmapYear": 2024, "btlStories": {"stories": [{"title": "Idea"}]}}})

    document = load_roadmap_file(target)
    assert document.team_name == "Legacy"
    assert document.roadmap_year == 2024
    assert [story.title for story in document.btl_stories] == ["Idea"]


def test_scan_roadmap_directory_sorts_and_skips_invalid(tmp_path, caplog):
    _write(tmp_path / "b-team.json", {"teamName": "Bravo", "epics": []})
    _write(tmp_path / "a-team.json", {"teamName": "Alpha", "epics": [{"name": "E", "stories": []}]})
    _write(tmp_path / "nameless.json", {"epics": []})
    _write(tmp_path / "bad-shape.json", {"teamName": "Broken", "epics": "not a list"})
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="roadmap.loader"):
        roadmaps = scan_roadmap_directory(tmp_path)

    assert [roadmap.file_name for roadmap in roadmaps] == ["a-team.json", "b-team.json"]
    assert [roadmap.document.team_name for roadmap in roadmaps] == ["Alpha", "Bravo"]
    skipped = " ".join(record.getMessage() for record in caplog.records)
    assert "broken.json" in skipped
    assert "bad-shape.json" in skipped
    assert "nameless.json" in skipped


def test_scan_roadmap_directory_requires_existing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_roadmap_directory(tmp_path / "missing")
