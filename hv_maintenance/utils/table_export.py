# hv_maintenance/utils/table_export.py

import csv
import io
import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from hv_maintenance import schemas
from hv_maintenance.constants import NOT_AVAILABLE
from hv_maintenance.domain import evidence_count, plain_value

logger = logging.getLogger(__name__)

SUMMARY_SHEET = "Summary"
DETAIL_SHEET = "Stage Details"

Municipalities = Union[Mapping[str, schemas.Municipality], Iterable[schemas.Municipality]]


def municipality_lookup(municipalities: Municipalities) -> Dict[str, schemas.Municipality]:
    if isinstance(municipalities, Mapping):
        return dict(municipalities)
    return {m.id: m for m in municipalities}


def _summary_row(record, municipality) -> schemas.SummaryRow:
    return schemas.SummaryRow(
        record_id=record.id,
        date=record.date,
        municipality=municipality.name if municipality else NOT_AVAILABLE,
        region=plain_value(municipality.region) if municipality else NOT_AVAILABLE,
        technician=record.technician or "",
        title=record.title,
        nature=record.nature,
        status=plain_value(record.status),
        description=record.description or "",
        ai_notes=record.ai_notes or "",
    )


def _detail_rows(record, municipality) -> List[schemas.DetailRow]:
    return [
        schemas.DetailRow(
            record_id=record.id,
            date=record.date,
            municipality=municipality.name if municipality else NOT_AVAILABLE,
            stage_id=stage.id,
            stage_name=stage.name,
            stage_description=stage.description or "",
            evidence_count=evidence_count(stage),
        )
        for stage in record.stages
    ]


def to_table(records: Sequence, municipalities: Municipalities) -> schemas.TableReport:
    """
    Flattens a record set into one summary row per record and one detail
    row per (record, stage). An unresolvable municipality renders as "N/A";
    a record that cannot be flattened at all is skipped and reported.
    """
    lookup = municipality_lookup(municipalities)
    report = schemas.TableReport()

    for record in records:
        try:
            municipality = lookup.get(record.municipality_id)
            summary = _summary_row(record, municipality)
            details = _detail_rows(record, municipality)
        except (AttributeError, TypeError, ValueError) as e:
            record_id = str(getattr(record, "id", "?"))
            logger.warning("Skipping record %s in tabular export: %s", record_id, e)
            report.skipped_record_ids.append(record_id)
            continue

        report.summary_rows.append(summary)
        report.detail_rows.extend(details)

    return report


# =================================================================================
# CSV (UTF-8 with BOM, comma separated, CRLF rows)
# =================================================================================
def render_csv(rows: Iterable[Any], fieldnames: Sequence[str]) -> bytes:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=list(fieldnames), lineterminator="\r\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row.model_dump(mode="json"))

    csv_data = output.getvalue()
    output.close()
    return csv_data.encode("utf-8-sig")


def summary_csv(report: schemas.TableReport) -> bytes:
    return render_csv(report.summary_rows, schemas.SUMMARY_FIELDS)


def detail_csv(report: schemas.TableReport) -> bytes:
    return render_csv(report.detail_rows, schemas.DETAIL_FIELDS)


# =================================================================================
# XLSX (one sheet per section)
# =================================================================================
_THIN = Side(style="thin")
_HEADER_STYLE = {
    "font": Font(bold=True, color="FFFFFF"),
    "fill": PatternFill(start_color="0F172A", end_color="0F172A", fill_type="solid"),
    "alignment": Alignment(horizontal="center", vertical="center"),
    "border": Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN),
}
_DATA_STYLE = {
    "font": Font(size=10),
    "alignment": Alignment(horizontal="left", vertical="top", wrap_text=True),
    "border": Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN),
}


def _apply_style(cell, style: Dict[str, Any]):
    for attr, value in style.items():
        setattr(cell, attr, value)


def _add_sheet(workbook: Workbook, name: str, rows: Iterable[Any], fieldnames: Sequence[str]):
    ws = workbook.create_sheet(title=name)

    for col, header in enumerate(fieldnames, 1):
        _apply_style(ws.cell(row=1, column=col, value=header), _HEADER_STYLE)

    for row_idx, row in enumerate(rows, 2):
        values = row.model_dump(mode="json")
        for col, field in enumerate(fieldnames, 1):
            _apply_style(ws.cell(row=row_idx, column=col, value=values[field]), _DATA_STYLE)

    # Auto-adjust column widths
    for column_cells in ws.columns:
        length = max(len(str(cell.value or "")) for cell in column_cells)
        ws.column_dimensions[get_column_letter(column_cells[0].column)].width = min(length + 2, 60)

    ws.freeze_panes = "A2"


def render_xlsx(report: schemas.TableReport) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)

    _add_sheet(workbook, SUMMARY_SHEET, report.summary_rows, schemas.SUMMARY_FIELDS)
    _add_sheet(workbook, DETAIL_SHEET, report.detail_rows, schemas.DETAIL_FIELDS)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
