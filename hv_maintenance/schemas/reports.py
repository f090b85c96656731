# Report search criteria, tabular rows, slide-deck descriptions

from typing import List, Literal, Optional, Union
from datetime import date as date_type
from pydantic import BaseModel, Field, model_validator

from .maintenance import EvidenceSlot, MaintenanceStatus

# --- SEARCH ---
class ReportCriteria(BaseModel):
    search_text: Optional[str] = None
    municipality_id: Optional[str] = None
    service_type: Optional[str] = None
    date_start: Optional[date_type] = None
    date_end: Optional[date_type] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.date_start and self.date_end and self.date_start > self.date_end:
            raise ValueError("date_start must not be after date_end")
        return self

# =================================================================
# TABULAR REPORT
# =================================================================
SUMMARY_FIELDS = (
    "record_id", "date", "municipality", "region", "technician",
    "title", "nature", "status", "description", "ai_notes",
)
DETAIL_FIELDS = (
    "record_id", "date", "municipality", "stage_id", "stage_name",
    "stage_description", "evidence_count",
)

class SummaryRow(BaseModel):
    record_id: str
    date: date_type
    municipality: str
    region: str
    technician: str
    title: str
    nature: str
    status: MaintenanceStatus
    description: str = ""
    ai_notes: str = ""

class DetailRow(BaseModel):
    record_id: str
    date: date_type
    municipality: str
    stage_id: str
    stage_name: str
    stage_description: str = ""
    evidence_count: int = Field(ge=0, le=3)

class TableReport(BaseModel):
    summary_rows: List[SummaryRow] = []
    detail_rows: List[DetailRow] = []
    skipped_record_ids: List[str] = []

# =================================================================
# SLIDE DECK
# =================================================================
class Box(BaseModel):
    """Position on the slide in inches, origin at the top-left corner."""
    x: float
    y: float
    w: float
    h: float

class EvidencePlaceholder(BaseModel):
    slot: EvidenceSlot
    label: str
    box: Box
    image_id: Optional[str] = None
    image_data: Optional[bytes] = Field(default=None, exclude=True)
    mime_type: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.image_data is None

class CoverSlide(BaseModel):
    kind: Literal["cover"] = "cover"
    title: str
    subtitle: str
    record_count: int
    generated_on: date_type

class OverviewSlide(BaseModel):
    kind: Literal["overview"] = "overview"
    record_id: str
    title: str
    municipality: str
    region: str
    technician: str
    date: date_type
    category: str
    status: MaintenanceStatus
    description: str

class StageSlide(BaseModel):
    kind: Literal["stage"] = "stage"
    record_id: str
    stage_id: str
    stage_name: str
    description: str
    placeholders: List[EvidencePlaceholder]

Slide = Union[CoverSlide, OverviewSlide, StageSlide]

class SlideDeck(BaseModel):
    generated_on: date_type
    width_in: float
    height_in: float
    slides: List[Slide] = Field(default_factory=list)
    skipped_record_ids: List[str] = []
