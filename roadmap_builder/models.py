from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

SearchMode = Literal["exact", "exact-7days", "range"]


class RoadmapModel(BaseModel):
    """Base for the team JSON format: camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StatusInfo(RoadmapModel):
    date: Optional[str] = None
    notes: str = ""

    @field_validator("notes", mode="before")
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def has_content(self) -> bool:
        return bool(self.date or self.notes)


class TimelineChange(RoadmapModel):
    date: Optional[str] = None
    prev_end_date: Optional[str] = Field(default=None, alias="prevEndDate")
    new_end_date: Optional[str] = Field(default=None, alias="newEndDate")
    description: str = ""

    @field_validator("date", "prev_end_date", "new_end_date", mode="before")
    def _scalar_dates_to_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("description", mode="before")
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RoadmapChanges(RoadmapModel):
    changes: List[TimelineChange] = Field(default_factory=list)
    done_info: Optional[StatusInfo] = Field(default=None, alias="doneInfo")
    cancel_info: Optional[StatusInfo] = Field(default=None, alias="cancelInfo")
    at_risk_info: Optional[StatusInfo] = Field(default=None, alias="atRiskInfo")
    new_story_info: Optional[StatusInfo] = Field(default=None, alias="newStoryInfo")
    info_info: Union[List[StatusInfo], StatusInfo, None] = Field(default=None, alias="infoInfo")
    transferred_out_info: Optional[StatusInfo] = Field(default=None, alias="transferredOutInfo")
    transferred_in_info: Optional[StatusInfo] = Field(default=None, alias="transferredInInfo")
    proposed_info: Optional[StatusInfo] = Field(default=None, alias="proposedInfo")

    @property
    def info_entries(self) -> List[StatusInfo]:
        if self.info_info is None:
            return []
        if isinstance(self.info_info, list):
            return [entry for entry in self.info_info if entry.has_content]
        return [self.info_info] if self.info_info.has_content else []


class StoryRecord(RoadmapModel):
    """One story bar as authored by a team."""

    title: str = ""
    start_date: Optional[str] = Field(default=None, alias="startDate")
    start_month: Optional[str] = Field(default=None, alias="startMonth")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    end_month: Optional[str] = Field(default=None, alias="endMonth")
    bullets: List[str] = Field(default_factory=list)
    imo: Optional[str] = None
    is_done: bool = Field(default=False, alias="isDone")
    is_cancelled: bool = Field(default=False, alias="isCancelled")
    is_at_risk: bool = Field(default=False, alias="isAtRisk")
    is_new_story: bool = Field(default=False, alias="isNewStory")
    is_info: bool = Field(default=False, alias="isInfo")
    is_transferred_out: bool = Field(default=False, alias="isTransferredOut")
    is_transferred_in: bool = Field(default=False, alias="isTransferredIn")
    is_proposed: bool = Field(default=False, alias="isProposed")
    country_flags: List[str] = Field(default_factory=list, alias="countryFlags")
    date_added: Optional[str] = Field(default=None, alias="dateAdded")
    date_added_description: str = Field(default="", alias="dateAddedDescription")
    roadmap_changes: Optional[RoadmapChanges] = Field(default=None, alias="roadmapChanges")

    @field_validator("imo", mode="before")
    def _imo_to_text(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("start_date", "start_month", "end_date", "end_month", "date_added", mode="before")
    def _blank_dates_are_absent(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not value.strip():
            return None
        return value

    @field_validator("title", "date_added_description", mode="before")
    def _none_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator(
        "is_done",
        "is_cancelled",
        "is_at_risk",
        "is_new_story",
        "is_info",
        "is_transferred_out",
        "is_transferred_in",
        "is_proposed",
        mode="before",
    )
    def _null_flags_are_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("bullets", mode="before")
    def _drop_empty_bullets(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [bullet for bullet in value if isinstance(bullet, str) and bullet.strip()]
        return value

    @field_validator("country_flags", mode="before")
    def _null_country_flags(cls, value: Any) -> Any:
        return [] if value is None else value


class Epic(RoadmapModel):
    name: str = ""
    stories: List[StoryRecord] = Field(default_factory=list)

    @field_validator("name", mode="before")
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class BTLSwimlane(RoadmapModel):
    stories: List[StoryRecord] = Field(default_factory=list)


class SearchRange(RoadmapModel):
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")


class RoadmapDocument(RoadmapModel):
    """A team roadmap file. The legacy ``{"teamData": {...}}`` wrapper is unwrapped."""

    team_name: str = Field(default="", alias="teamName")
    roadmap_year: Optional[int] = Field(default=None, alias="roadmapYear", ge=1, le=9999)
    em: str = ""
    pm: str = ""
    description: str = ""
    epics: List[Epic] = Field(default_factory=list)
    btl_swimlane: Optional[BTLSwimlane] = Field(
        default=None,
        validation_alias=AliasChoices("btlSwimlane", "btlStories", "btl_swimlane"),
        serialization_alias="btlSwimlane",
    )
    search_range: Optional[SearchRange] = Field(default=None, alias="searchRange")

    @model_validator(mode="before")
    @classmethod
    def _unwrap_team_data(cls, values: Any) -> Any:
        if isinstance(values, dict) and isinstance(values.get("teamData"), dict):
            return values["teamData"]
        return values

    @property
    def btl_stories(self) -> List[StoryRecord]:
        return self.btl_swimlane.stories if self.btl_swimlane else []


class LayoutOptions(BaseModel):
    """Per-request overrides of the configured layout switches."""

    force_annotations_below: Optional[bool] = Field(
        default=None,
        description="Always place annotation boxes on the row below the story.",
    )
    sort_stories: Optional[bool] = Field(
        default=None,
        description="Sort stories inside each epic by start, then end date.",
    )
    same_row_limit: Optional[int] = Field(
        default=None,
        ge=1,
        le=120,
        description="Right-most column an annotation may reach while staying on the story's row.",
    )


class NormalizeRequest(BaseModel):
    value: str = Field(..., max_length=100, description="Date text as typed by a team")
    roadmap_year: int = Field(..., ge=1, le=9999, description="Year used for yearless input")
    field_role: Literal["start", "end"] = Field(
        default="start",
        description="Bare month names resolve to the 1st for starts and the last day for ends.",
    )


class NormalizeResponse(BaseModel):
    value: str
    date_iso: Optional[str] = None
    european: Optional[str] = None


class LayoutRequest(BaseModel):
    roadmap: RoadmapDocument
    roadmap_year: Optional[int] = Field(default=None, ge=1, le=9999)
    search_range: Optional[SearchRange] = None
    options: LayoutOptions = Field(default_factory=LayoutOptions)


class AnnotationBoxModel(BaseModel):
    start_column: int
    end_column: int
    row: int
    horizontal_offset: int
    item_count: int


class StoryLayoutModel(BaseModel):
    title: str
    start_column: int
    end_column: int
    spans_previous_year: bool
    spans_next_year: bool
    actual_start: Optional[str] = Field(default=None, description="ISO date or month name")
    actual_end: Optional[str] = Field(default=None, description="ISO date or month name")
    continuation_label: Optional[str] = None
    start_label: Optional[str] = None
    annotation: Optional[AnnotationBoxModel] = None


class EpicLayoutModel(BaseModel):
    name: str
    stories: List[StoryLayoutModel]


class LayoutResponse(BaseModel):
    team_name: str
    roadmap_year: int
    epics: List[EpicLayoutModel]
    btl_stories: List[StoryLayoutModel]
    total_stories: int
    generated_at: datetime


class StorySearchRequest(BaseModel):
    roadmaps: List[RoadmapDocument] = Field(..., min_length=1, max_length=500)
    title: Optional[str] = Field(default=None, max_length=200)
    imo: Optional[str] = Field(default=None, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    mode: SearchMode = "exact"
    max_results: int = Field(default=200, ge=1, le=5_000)

    @field_validator("title", "imo")
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _require_criteria(self) -> "StorySearchRequest":
        if not (self.title or self.imo or self.start_date or self.end_date):
            raise ValueError("Provide at least one of title, imo, start_date or end_date.")
        return self


class StoryHit(BaseModel):
    team_name: str
    epic_name: str
    source_type: Literal["epic", "btl"]
    roadmap_year: Optional[int] = None
    story: StoryRecord


class StorySearchResponse(BaseModel):
    total_stories: int
    total_matches: int
    results: List[StoryHit]
    generated_at: datetime


class RoadmapFileSummary(BaseModel):
    file_name: str
    team_name: str
    roadmap_year: Optional[int] = None
    total_stories: int


class RoadmapListResponse(BaseModel):
    directory: str
    roadmaps: List[RoadmapFileSummary]
