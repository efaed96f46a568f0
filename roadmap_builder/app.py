from __future__ import annotations

import logging
import time
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from .date_normalizer import format_european, month_label, normalize
from .grid_config import LayoutConfig
from .grid_resolver import DateBounds
from .html_renderer import render_roadmap_html
from .models import (
    AnnotationBoxModel,
    EpicLayoutModel,
    LayoutOptions,
    LayoutRequest,
    LayoutResponse,
    NormalizeRequest,
    NormalizeResponse,
    RoadmapDocument,
    RoadmapFileSummary,
    RoadmapListResponse,
    SearchRange,
    StoryLayoutModel,
    StorySearchRequest,
    StorySearchResponse,
)
from .roadmap_layout import RoadmapLayout, StoryLayout, layout_roadmap
from .roadmap_loader import RoadmapFile, scan_roadmap_directory
from .search import search_stories
from .settings import settings

LOG_LEVEL = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("roadmap.app")
logger.setLevel(LOG_LEVEL)

ALLOWED_ORIGINS = settings.allowed_origins or ["*"]


app = FastAPI(
    title=settings.app_title,
    description=settings.app_description,
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _uptime_seconds() -> float:
    started_at = getattr(app.state, "started_at", None)
    if not started_at:
        return 0.0
    return max(0.0, (datetime.utcnow() - started_at).total_seconds())


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id
    start_time = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    if settings.enable_request_logging:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid4()))
    logger.exception(
        "Unhandled server error",
        extra={"request_id": request_id, "path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected server error occurred.",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )


@app.on_event("startup")
async def startup() -> None:
    app.state.started_at = datetime.utcnow()
    app.state.settings = settings


def _resolve_roadmap_year(requested: Optional[int], document: Optional[RoadmapDocument] = None) -> int:
    if requested:
        return requested
    if document is not None and document.roadmap_year:
        return document.roadmap_year
    if settings.default_roadmap_year:
        return settings.default_roadmap_year
    raise HTTPException(status_code=400, detail="A roadmap year is required (request, roadmap or default setting).")


def _layout_config(options: Optional[LayoutOptions] = None) -> LayoutConfig:
    options = options or LayoutOptions()
    return LayoutConfig.from_settings(
        settings,
        force_annotations_below=options.force_annotations_below,
        sort_stories=options.sort_stories,
        same_row_limit=options.same_row_limit,
    )


def _bounds(search_range: Optional[SearchRange]) -> Optional[DateBounds]:
    if search_range is None:
        return None
    return DateBounds(start=search_range.start_date, end=search_range.end_date)


def _display_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return month_label(value)


def _story_model(story_layout: StoryLayout) -> StoryLayoutModel:
    span = story_layout.span
    box = story_layout.annotation
    annotation = None
    if box is not None:
        annotation = AnnotationBoxModel(
            start_column=box.start_column,
            end_column=box.end_column,
            row=box.placement.row,
            horizontal_offset=box.placement.horizontal_offset,
            item_count=story_layout.annotation_items,
        )
    return StoryLayoutModel(
        title=story_layout.story.title,
        start_column=span.start_column,
        end_column=span.end_column,
        spans_previous_year=span.spans_previous_year,
        spans_next_year=span.spans_next_year,
        actual_start=_display_value(span.actual_start),
        actual_end=_display_value(span.actual_end),
        continuation_label=story_layout.continuation_label,
        start_label=story_layout.start_label,
        annotation=annotation,
    )


def _layout_response(layout: RoadmapLayout) -> LayoutResponse:
    return LayoutResponse(
        team_name=layout.team_name,
        roadmap_year=layout.roadmap_year,
        epics=[
            EpicLayoutModel(name=epic.name, stories=[_story_model(story) for story in epic.stories])
            for epic in layout.epics
        ],
        btl_stories=[_story_model(story) for story in layout.btl_stories],
        total_stories=layout.total_stories,
        generated_at=datetime.utcnow(),
    )


def _layout_from_request(request: LayoutRequest) -> RoadmapLayout:
    roadmap_year = _resolve_roadmap_year(request.roadmap_year, request.roadmap)
    return layout_roadmap(
        request.roadmap,
        roadmap_year,
        _layout_config(request.options),
        _bounds(request.search_range),
    )


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "uptime_seconds": round(_uptime_seconds(), 3),
        "version": app.version,
    }


@app.get("/health/live")
async def health_live() -> Dict[str, Any]:
    return {"status": "ok", "uptime_seconds": round(_uptime_seconds(), 3)}


@app.get("/health/ready")
async def health_ready() -> Dict[str, Any]:
    return {"status": "ok", "uptime_seconds": round(_uptime_seconds(), 3)}


@app.post("/api/normalize", response_model=NormalizeResponse)
async def normalize_date(request: NormalizeRequest) -> NormalizeResponse:
    parsed = normalize(request.value, request.roadmap_year, request.field_role)
    if parsed is None:
        return NormalizeResponse(value=request.value)
    return NormalizeResponse(
        value=request.value,
        date_iso=parsed.isoformat(),
        european=format_european(parsed),
    )


@app.post("/api/layout", response_model=LayoutResponse)
async def layout(request: LayoutRequest) -> LayoutResponse:
    return _layout_response(_layout_from_request(request))


@app.post("/api/render", response_class=HTMLResponse)
async def render(request: LayoutRequest) -> HTMLResponse:
    return HTMLResponse(content=render_roadmap_html(_layout_from_request(request)))


@app.post("/api/search", response_model=StorySearchResponse)
async def search(request: StorySearchRequest) -> StorySearchResponse:
    total, results = search_stories(
        request.roadmaps,
        title=request.title,
        imo=request.imo,
        start=request.start_date,
        end=request.end_date,
        mode=request.mode,
        max_results=min(request.max_results, settings.max_search_results),
        default_year=settings.default_roadmap_year,
    )
    return StorySearchResponse(
        total_stories=total,
        total_matches=len(results),
        results=results,
        generated_at=datetime.utcnow(),
    )


async def _scan_configured_directory() -> List[RoadmapFile]:
    if not settings.roadmap_dir:
        raise HTTPException(status_code=503, detail="No roadmap directory is configured.")
    try:
        return await run_in_threadpool(scan_roadmap_directory, settings.roadmap_dir)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@app.get("/api/roadmaps", response_model=RoadmapListResponse)
async def list_roadmaps() -> RoadmapListResponse:
    roadmaps = await _scan_configured_directory()
    return RoadmapListResponse(
        directory=settings.roadmap_dir,
        roadmaps=[
            RoadmapFileSummary(
                file_name=roadmap.file_name,
                team_name=roadmap.document.team_name,
                roadmap_year=roadmap.document.roadmap_year,
                total_stories=sum(len(epic.stories) for epic in roadmap.document.epics)
                + len(roadmap.document.btl_stories),
            )
            for roadmap in roadmaps
        ],
    )


@app.get("/api/roadmaps/{file_name}/render", response_class=HTMLResponse)
async def render_roadmap_file(file_name: str, roadmap_year: Optional[int] = Query(default=None, ge=1, le=9999)) -> HTMLResponse:
    roadmaps = await _scan_configured_directory()
    match = next((roadmap for roadmap in roadmaps if roadmap.file_name == file_name), None)
    if match is None:
        raise HTTPException(status_code=404, detail="Roadmap file not found.")

    year = _resolve_roadmap_year(roadmap_year, match.document)
    roadmap_layout = layout_roadmap(match.document, year, _layout_config())
    return HTMLResponse(content=render_roadmap_html(roadmap_layout))


if settings.static_dir and Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
