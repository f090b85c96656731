# hv_maintenance/routers/dashboard.py

from fastapi import APIRouter, Depends
from typing import List, Optional

from hv_maintenance import schemas
from hv_maintenance.constants import MUNICIPALITIES
from hv_maintenance.dependencies import get_repository
from hv_maintenance.domain import resolve_municipality
from hv_maintenance.exceptions import IncompleteRecord, NotFound
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services import views

router = APIRouter(
    prefix="/api/v1/dashboard-data",
    tags=["Dashboard Data"]
)

# 1. TABS - list follows the municipality filter, counts never do
@router.get("/records", response_model=schemas.DashboardRecords)
def get_dashboard_records(
    status: schemas.MaintenanceStatus = schemas.MaintenanceStatus.PENDING,
    municipality_id: Optional[str] = None,
    repo: RecordRepository = Depends(get_repository)
):
    records = repo.snapshot()
    return {
        "status": status,
        "municipality_id": municipality_id,
        "tab_counts": views.tab_counts(records),
        "records": views.by_status_and_municipality(records, status, municipality_id),
    }

# 2. DRILL-DOWN - one municipality, split by status
@router.get("/municipalities/{municipality_id}", response_model=schemas.MunicipalityDrilldown)
def get_municipality_drilldown(municipality_id: str, repo: RecordRepository = Depends(get_repository)):
    try:
        municipality = resolve_municipality(municipality_id)
    except IncompleteRecord:
        raise NotFound(f"Municipality '{municipality_id}' not found") from None

    grouped = views.by_municipality_grouped(repo.snapshot(), municipality_id)
    return {"municipality": municipality, **grouped}

# 3. MAP MARKERS - a click on the selected municipality clears the selection
@router.get("/markers", response_model=List[schemas.MunicipalityMarker])
def get_map_markers(
    selected_id: Optional[str] = None,
    clicked: Optional[str] = None,
    repo: RecordRepository = Depends(get_repository)
):
    if clicked:
        selected_id = views.toggle_municipality(selected_id, clicked)
    return views.municipality_markers(repo.snapshot(), MUNICIPALITIES, selected_id)

# 4. KPIs
@router.get("/kpis", response_model=schemas.KPIStats)
def get_dashboard_kpis(repo: RecordRepository = Depends(get_repository)):
    records = repo.snapshot()
    counts = views.tab_counts(records)
    return {
        "total_records": len(records),
        "pending": counts.pending,
        "completed": counts.completed,
        "completion_rate": views.completion_rate(records),
        "municipalities_served": len({r.municipality_id for r in records}),
    }
