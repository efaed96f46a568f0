from __future__ import annotations

import json
import logging
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .grid_config import GRID_COLUMNS, POSITION_LIMIT


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROADMAP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_title: str = Field(default="Roadmap Builder API", description="FastAPI application title")
    app_description: str = Field(
        default="Lays out team roadmaps on a 120-column yearly grid and renders them as HTML.",
        description="OpenAPI description",
    )
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by CORS (JSON list, comma-separated or *)",
    )
    log_level: str = Field(
        default="INFO",
        description="Application log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)",
    )
    host: str = Field(default="127.0.0.1", description="Interface the uvicorn server binds to")
    port: int = Field(default=8000, ge=1, le=65535, description="Port the uvicorn server listens on")
    enable_request_logging: bool = Field(
        default=True,
        description="Log one line per handled request",
    )
    default_roadmap_year: Optional[int] = Field(
        default=None,
        ge=1,
        le=9999,
        description="Roadmap year used when neither the request nor the document names one",
    )
    force_annotations_below: bool = Field(
        default=False,
        description="Always place annotation boxes on the row below their story",
    )
    sort_stories: bool = Field(
        default=False,
        description="Sort stories inside each epic by start, then end date",
    )
    annotation_same_row_limit: int = Field(
        default=GRID_COLUMNS,
        ge=POSITION_LIMIT,
        le=GRID_COLUMNS,
        description="Right-most column a same-row annotation box may reach",
    )
    flip_late_year_endings: bool = Field(
        default=True,
        description="Move annotations below stories ending on or after 4 October",
    )
    roadmap_dir: str = Field(
        default="",
        description="Directory of team roadmap JSON files served by /api/roadmaps",
    )
    static_dir: str = Field(
        default="",
        description="Directory of static front-end files mounted at /",
    )
    max_search_results: int = Field(
        default=500,
        description="Upper bound on the number of stories a search returns",
        ge=50,
        le=5_000,
    )

    @field_validator("allowed_origins", mode="before")
    def _split_origins(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        raw = value.strip()
        if raw == "*":
            return ["*"]
        if raw.startswith("["):
            try:
                return json.loads(raw)
            except ValueError:
                pass
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @field_validator("log_level")
    def _normalise_log_level(cls, value: str) -> str:
        candidate = value.upper()
        if candidate not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            logging.getLogger("roadmap.settings").warning(
                "Unknown log level '%s', falling back to INFO.", value
            )
            return "INFO"
        return candidate


settings = Settings()
