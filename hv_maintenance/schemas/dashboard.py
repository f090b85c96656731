# Dashboard tabs, drill-down, map markers, KPIs

from typing import List, Optional
from pydantic import BaseModel
from .maintenance import Municipality, MaintenanceStatus, Region, RecordOut

# --- TABS ---
class TabCounts(BaseModel):
    pending: int
    completed: int

class DashboardRecords(BaseModel):
    status: MaintenanceStatus
    municipality_id: Optional[str] = None
    tab_counts: TabCounts  # always over the full collection
    records: List[RecordOut]

# --- DRILL-DOWN ---
class MunicipalityDrilldown(BaseModel):
    municipality: Municipality
    pending: List[RecordOut]
    completed: List[RecordOut]

# --- MAP ---
class MunicipalityMarker(BaseModel):
    id: str
    name: str
    region: Region
    lat: float
    lng: float
    pending: int = 0
    completed: int = 0
    is_selected: bool = False

# --- KPI ---
class KPIStats(BaseModel):
    total_records: int
    pending: int
    completed: int
    completion_rate: float
    municipalities_served: int
