from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from .models import RoadmapDocument

logger = logging.getLogger("roadmap.loader")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class RoadmapFile:
    path: Path
    document: RoadmapDocument

    @property
    def file_name(self) -> str:
        return self.path.name


def load_roadmap_file(path: PathLike) -> RoadmapDocument:
    """Parse one team roadmap JSON file.

    Raises ``OSError`` when the file cannot be read, ``ValueError`` for
    malformed JSON and ``pydantic.ValidationError`` for a bad shape.
    """

    text = Path(path).read_text(encoding="utf-8")
    return RoadmapDocument.model_validate(json.loads(text))


def scan_roadmap_directory(directory: PathLike) -> List[RoadmapFile]:
    """Load every ``*.json`` roadmap in ``directory`` that names a team, by file name."""

    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Roadmap directory not found: {root}")

    roadmaps: List[RoadmapFile] = []
    for path in sorted(root.glob("*.json"), key=lambda candidate: candidate.name):
        if not path.is_file():
            continue
        try:
            document = load_roadmap_file(path)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Skipping unreadable roadmap file %s: %s", path.name, exc)
            continue
        if not document.team_name:
            logger.warning("Skipping %s: no teamName", path.name)
            continue
        roadmaps.append(RoadmapFile(path=path, document=document))
    return roadmaps


__all__ = ["RoadmapFile", "load_roadmap_file", "scan_roadmap_directory"]
