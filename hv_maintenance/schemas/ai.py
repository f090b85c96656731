# AI actions, edit session

from typing import Optional
from pydantic import BaseModel, Field
from .maintenance import EvidenceSlot, RecordOut

class ImproveTextRequest(BaseModel):
    text: str

class ImproveTextResponse(BaseModel):
    text: str
    applied: bool
    notice: Optional[str] = None

class GenerateImageRequest(BaseModel):
    prompt: str = Field(min_length=1)

class AnalyzeStageImageRequest(BaseModel):
    slot: EvidenceSlot = EvidenceSlot.BEFORE

class AIActionResult(BaseModel):
    applied: bool
    notice: Optional[str] = None
    record: Optional[RecordOut] = None

class SummaryResponse(BaseModel):
    summary: str = ""
    applied: bool
    notice: Optional[str] = None

# --- EDIT SESSION ---
class EditSessionOut(BaseModel):
    record_id: Optional[str] = None
    is_open: bool
