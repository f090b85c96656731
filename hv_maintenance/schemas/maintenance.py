# Municipalities, Records, Stages, Evidence images
from typing import List, Optional
from datetime import datetime, date as date_type
from enum import Enum
from pydantic import BaseModel, computed_field, field_serializer, model_validator

from hv_maintenance.utils import DEFAULT_IMAGE_MIME, parse_data_url, to_data_url

# --- ENUMS ---
class Region(str, Enum):
    SOLIMOES = "Rio Solimões"
    JAPURA = "Rio Japurá"
    JURUA = "Rio Juruá"

class ServiceType(str, Enum):
    TYPE_50A = "Serviço tipo 50A"
    TYPE_50B = "Serviço tipo 50B"
    OTHER = "Outro"

class MaintenanceNature(str, Enum):
    PREVENTIVE_PROGRAMMED = "Manutenção Preventiva Programada"
    CORRECTIVE_PROGRAMMED = "Manutenção Corretiva Programada"
    CORRECTIVE_EMERGENCY = "Manutenção Corretiva Emergencial"
    OTHER = "Outra"

class MaintenanceStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"

class EvidenceSlot(str, Enum):
    BEFORE = "before"
    DURING = "during"
    AFTER = "after"

# Left-to-right order used everywhere evidence is laid out
EVIDENCE_SLOTS = (EvidenceSlot.BEFORE, EvidenceSlot.DURING, EvidenceSlot.AFTER)

# --- MUNICIPALITY (static reference data) ---
class Municipality(BaseModel):
    id: str
    name: str
    region: Region
    lat: float
    lng: float
    class Config: frozen = True

# =================================================================
# IMAGES
# =================================================================
class ImageBase(BaseModel):
    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def decode_data_url(cls, values):
        # JSON clients send the payload as a data URL; ORM rows already hold bytes
        if isinstance(values, dict) and isinstance(values.get("data"), str):
            payload, mime = parse_data_url(values["data"])
            values = {**values, "data": payload}
            if mime and not values.get("mime_type"):
                values["mime_type"] = mime
        return values

    @field_serializer("data", when_used="json")
    def encode_data_url(self, data: bytes, _info):
        return to_data_url(data, self.mime_type)

class ImageCreate(ImageBase):
    id: Optional[str] = None

class ImageOut(ImageBase):
    id: str
    class Config: from_attributes = True

# =================================================================
# STAGES
# =================================================================
class StageBase(BaseModel):
    name: str
    description: str = ""

class StageIn(StageBase):
    id: Optional[str] = None
    before: Optional[ImageCreate] = None
    during: Optional[ImageCreate] = None
    after: Optional[ImageCreate] = None

class StageOut(StageBase):
    id: str
    before: Optional[ImageOut] = None
    during: Optional[ImageOut] = None
    after: Optional[ImageOut] = None
    class Config: from_attributes = True

    def slot(self, slot: EvidenceSlot) -> Optional[ImageOut]:
        return getattr(self, EvidenceSlot(slot).value)

    @computed_field
    @property
    def evidence_count(self) -> int:
        return sum(1 for s in EVIDENCE_SLOTS if self.slot(s) is not None)

# =================================================================
# RECORDS
# =================================================================
class RecordBase(BaseModel):
    municipality_id: Optional[str] = None
    title: str = ServiceType.TYPE_50A.value
    nature: str = MaintenanceNature.PREVENTIVE_PROGRAMMED.value
    description: str = ""
    date: Optional[date_type] = None
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    technician: Optional[str] = None
    ai_notes: Optional[str] = None

class RecordCreate(RecordBase):
    # Companion free text, used when title/nature is the "Other" sentinel
    custom_title: Optional[str] = None
    custom_nature: Optional[str] = None
    # None -> default three-stage template, [] -> no stages
    stages: Optional[List[StageIn]] = None

class RecordUpdate(BaseModel):
    municipality_id: Optional[str] = None
    title: Optional[str] = None
    custom_title: Optional[str] = None
    nature: Optional[str] = None
    custom_nature: Optional[str] = None
    description: Optional[str] = None
    date: Optional[date_type] = None
    status: Optional[MaintenanceStatus] = None
    technician: Optional[str] = None
    ai_notes: Optional[str] = None
    stages: Optional[List[StageIn]] = None

class RecordOut(BaseModel):
    id: str
    municipality_id: Optional[str] = None
    title: str
    nature: str
    description: str = ""
    date: date_type
    status: MaintenanceStatus
    technician: str
    ai_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    stages: List[StageOut] = []
    class Config: from_attributes = True

    @computed_field
    @property
    def title_is_custom(self) -> bool:
        return self.title not in {t.value for t in ServiceType}

    @computed_field
    @property
    def nature_is_custom(self) -> bool:
        return self.nature not in {n.value for n in MaintenanceNature}
