from fastapi import APIRouter, Depends, HTTPException, status, Response
from pydantic import ValidationError
from typing import List, Optional
from datetime import date

from hv_maintenance import schemas
from hv_maintenance.config import get_settings
from hv_maintenance.constants import MUNICIPALITIES
from hv_maintenance.dependencies import get_repository
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services import views
from hv_maintenance.utils import slide_deck, table_export

router = APIRouter(
    prefix="/api/v1/reports",
    tags=['Reports API']
)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"


def get_report_criteria(
    search_text: Optional[str] = None,
    municipality_id: Optional[str] = None,
    service_type: Optional[str] = None,
    date_start: Optional[date] = None,
    date_end: Optional[date] = None,
) -> schemas.ReportCriteria:
    try:
        return schemas.ReportCriteria(
            search_text=search_text,
            municipality_id=municipality_id,
            service_type=service_type,
            date_start=date_start,
            date_end=date_end,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False, include_context=False))


def _selected_records(repo: RecordRepository, criteria: schemas.ReportCriteria):
    return views.by_report_criteria(repo.snapshot(), criteria)


def _download(content: bytes, media_type: str, stem: str, extension: str) -> Response:
    filename = f"{stem}_{date.today().isoformat()}.{extension}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

# =================================================================================
# SEARCH
# =================================================================================
@router.get("/records", response_model=List[schemas.RecordOut])
def search_records(
    criteria: schemas.ReportCriteria = Depends(get_report_criteria),
    repo: RecordRepository = Depends(get_repository)
):
    return _selected_records(repo, criteria)

@router.get("/table", response_model=schemas.TableReport)
def get_table_report(
    criteria: schemas.ReportCriteria = Depends(get_report_criteria),
    repo: RecordRepository = Depends(get_repository)
):
    return table_export.to_table(_selected_records(repo, criteria), MUNICIPALITIES)

# =================================================================================
# EXPORTS
# =================================================================================
@router.get("/export/summary.csv")
def export_summary_csv(
    criteria: schemas.ReportCriteria = Depends(get_report_criteria),
    repo: RecordRepository = Depends(get_repository)
):
    report = table_export.to_table(_selected_records(repo, criteria), MUNICIPALITIES)
    return _download(table_export.summary_csv(report), CSV_MEDIA_TYPE, "hv_maintenance_summary", "csv")

@router.get("/export/details.csv")
def export_details_csv(
    criteria: schemas.ReportCriteria = Depends(get_report_criteria),
    repo: RecordRepository = Depends(get_repository)
):
    report = table_export.to_table(_selected_records(repo, criteria), MUNICIPALITIES)
    return _download(table_export.detail_csv(report), CSV_MEDIA_TYPE, "hv_maintenance_details", "csv")

@router.get("/export/report.xlsx")
def export_xlsx(
    criteria: schemas.ReportCriteria = Depends(get_report_criteria),
    repo: RecordRepository = Depends(get_repository)
):
    report = table_export.to_table(_selected_records(repo, criteria), MUNICIPALITIES)
    return _download(table_export.render_xlsx(report), XLSX_MEDIA_TYPE, "hv_maintenance_report", "xlsx")

@router.get("/export/slides.pdf")
def export_slides(
    criteria: schemas.ReportCriteria = Depends(get_report_criteria),
    repo: RecordRepository = Depends(get_repository)
):
    deck = slide_deck.to_slides(_selected_records(repo, criteria), MUNICIPALITIES)
    content = slide_deck.render_slide_deck(deck, header=get_settings().REPORT_HEADER)
    return _download(content, PDF_MEDIA_TYPE, "hv_maintenance_slides", "pdf")
