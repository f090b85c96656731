# hv_maintenance/services/views.py
"""
Derived views over a record collection.

Everything here is a pure function of its arguments: the dashboard,
drill-down and report screens recompute their lists on every call.
Records can be ORM rows or ``RecordOut`` schemas; only attributes are read.
"""

from typing import Iterable, List, Optional, Sequence

from hv_maintenance import schemas
from hv_maintenance.domain import plain_value

PENDING = schemas.MaintenanceStatus.PENDING.value
COMPLETED = schemas.MaintenanceStatus.COMPLETED.value


def _status(record) -> str:
    return plain_value(record.status)


def tab_counts(records: Iterable) -> schemas.TabCounts:
    """Counts for the dashboard tab labels, always over the full collection."""
    pending = completed = 0
    for record in records:
        if _status(record) == PENDING:
            pending += 1
        elif _status(record) == COMPLETED:
            completed += 1
    return schemas.TabCounts(pending=pending, completed=completed)


def by_status_and_municipality(records: Iterable, status, municipality_id: Optional[str] = None) -> List:
    status = plain_value(status)
    return [
        r for r in records
        if _status(r) == status and (not municipality_id or r.municipality_id == municipality_id)
    ]


def by_municipality_grouped(records: Iterable, municipality_id: str) -> dict:
    grouped = {"pending": [], "completed": []}
    for record in records:
        if record.municipality_id != municipality_id:
            continue
        if _status(record) == PENDING:
            grouped["pending"].append(record)
        elif _status(record) == COMPLETED:
            grouped["completed"].append(record)
    return grouped


def matches_criteria(record, criteria: schemas.ReportCriteria) -> bool:
    # Plain substring match; surrounding whitespace is part of the needle
    needle = (criteria.search_text or "").lower()
    if needle:
        haystack = (record.technician or "", record.title or "", record.description or "")
        if not any(needle in field.lower() for field in haystack):
            return False

    if criteria.municipality_id and record.municipality_id != criteria.municipality_id:
        return False

    if criteria.service_type and record.title != plain_value(criteria.service_type):
        return False

    # Inclusive range, each bound optional
    if criteria.date_start and record.date < criteria.date_start:
        return False
    if criteria.date_end and record.date > criteria.date_end:
        return False

    return True


def by_report_criteria(records: Iterable, criteria: Optional[schemas.ReportCriteria] = None) -> List:
    if criteria is None:
        return list(records)
    return [r for r in records if matches_criteria(r, criteria)]


def toggle_municipality(current: Optional[str], clicked: str) -> Optional[str]:
    """Map click: select a municipality, or clear the filter when it is already selected."""
    return None if clicked == current else clicked


def municipality_markers(records: Sequence, municipalities: Iterable[schemas.Municipality], selected_id: Optional[str] = None) -> List[schemas.MunicipalityMarker]:
    markers = []
    for municipality in municipalities:
        grouped = by_municipality_grouped(records, municipality.id)
        markers.append(schemas.MunicipalityMarker(
            id=municipality.id,
            name=municipality.name,
            region=municipality.region,
            lat=municipality.lat,
            lng=municipality.lng,
            pending=len(grouped["pending"]),
            completed=len(grouped["completed"]),
            is_selected=municipality.id == selected_id,
        ))
    return markers


def completion_rate(records: Sequence) -> float:
    if not records:
        return 0.0
    counts = tab_counts(records)
    return round(counts.completed / len(records), 4)
