from datetime import date

import pytest

from hv_maintenance import schemas
from hv_maintenance.constants import MUNICIPALITIES
from hv_maintenance.services import views


@pytest.fixture()
def records(repo):
    repo.create({"municipality_id": "m1", "status": "PENDING", "technician": "João Silva", "date": "2024-03-01"})
    repo.create({"municipality_id": "m1", "status": "COMPLETED", "technician": "Maria", "date": "2024-06-10",
                 "description": "Relatório enviado por SILVA"})
    repo.create({"municipality_id": "m3", "status": "PENDING", "technician": "Pedro", "date": "2023-12-31"})
    repo.create({"municipality_id": "m8", "status": "PENDING", "technician": "Ana", "date": "2024-01-01",
                 "title": "Serviço tipo 50B"})
    repo.create({"municipality_id": "m8", "status": "COMPLETED", "technician": "silvano", "date": "2025-01-01"})
    return repo.snapshot()


def test_tab_counts_ignore_municipality_filter(records):
    counts = views.tab_counts(records)
    assert (counts.pending, counts.completed) == (3, 2)

    # The list follows the filter, the counts do not
    listed = views.by_status_and_municipality(records, schemas.MaintenanceStatus.PENDING, "m8")
    assert len(listed) == 1
    assert views.tab_counts(records) == counts


def test_status_filter_without_municipality(records):
    completed = views.by_status_and_municipality(records, "COMPLETED")
    assert {r.technician for r in completed} == {"Maria", "silvano"}


def test_grouped_by_municipality(records):
    grouped = views.by_municipality_grouped(records, "m1")
    assert [r.technician for r in grouped["pending"]] == ["João Silva"]
    assert [r.technician for r in grouped["completed"]] == ["Maria"]
    assert views.by_municipality_grouped(records, "m10") == {"pending": [], "completed": []}


def test_search_is_case_insensitive_across_fields(records):
    criteria = schemas.ReportCriteria(search_text="silva", date_start=date(2024, 1, 1), date_end=date(2024, 12, 31))
    found = views.by_report_criteria(records, criteria)
    assert {r.technician for r in found} == {"João Silva", "Maria"}


def test_search_text_is_matched_as_given(records):
    # The leading space is part of the needle, so "silvano" does not match
    found = views.by_report_criteria(records, schemas.ReportCriteria(search_text=" SILVA"))
    assert sorted(r.technician for r in found) == ["João Silva", "Maria"]

    found = views.by_report_criteria(records, schemas.ReportCriteria(search_text="silva"))
    assert sorted(r.technician for r in found) == ["João Silva", "Maria", "silvano"]


def test_date_range_is_inclusive(records):
    criteria = schemas.ReportCriteria(date_start=date(2024, 1, 1), date_end=date(2024, 3, 1))
    found = views.by_report_criteria(records, criteria)
    assert sorted(r.technician for r in found) == ["Ana", "João Silva"]


def test_service_type_and_municipality_filters(records):
    criteria = schemas.ReportCriteria(municipality_id="m8", service_type="Serviço tipo 50B")
    assert [r.technician for r in views.by_report_criteria(records, criteria)] == ["Ana"]


def test_no_criteria_returns_everything_in_order(records):
    assert views.by_report_criteria(records) == records


def test_reversed_date_range_is_rejected():
    with pytest.raises(ValueError):
        schemas.ReportCriteria(date_start=date(2024, 2, 1), date_end=date(2024, 1, 1))


def test_toggle_municipality():
    assert views.toggle_municipality(None, "m1") == "m1"
    assert views.toggle_municipality("m1", "m3") == "m3"
    assert views.toggle_municipality("m3", "m3") is None


def test_markers_and_completion_rate(records):
    markers = {m.id: m for m in views.municipality_markers(records, MUNICIPALITIES, "m8")}
    assert len(markers) == len(MUNICIPALITIES)
    assert (markers["m8"].pending, markers["m8"].completed) == (1, 1)
    assert markers["m8"].is_selected and not markers["m1"].is_selected
    assert views.completion_rate(records) == 0.4
    assert views.completion_rate([]) == 0.0
