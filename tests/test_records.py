import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from hv_maintenance import models, schemas
from hv_maintenance.constants import (
    DEFAULT_STAGE_NAMES, SAMPLE_RECORDS, SERVICE_TEMPLATES, UNASSIGNED_TECHNICIAN
)
from hv_maintenance.domain import CustomChoice, KnownChoice, validate_record
from hv_maintenance.exceptions import DuplicateStage, IncompleteRecord, InvalidSentinel, NotFound
from hv_maintenance.repository import RecordRepository, seed_records


# --- Validation ---

def test_validate_known_and_custom_choices():
    result = validate_record({
        "municipality_id": "m3",
        "title": "Serviço tipo 50B",
        "nature": "Outra",
        "custom_nature": "  Inspeção termográfica ",
    })
    assert result.municipality.name == "Coari"
    assert isinstance(result.title, KnownChoice)
    assert isinstance(result.nature, CustomChoice)
    assert result.nature.text == "Inspeção termográfica"


def test_sentinel_without_text_is_rejected():
    with pytest.raises(InvalidSentinel):
        validate_record({"municipality_id": "m1", "title": "Outro", "custom_title": "   ", "nature": "Outra", "custom_nature": "x"})


def test_missing_or_unknown_municipality_is_incomplete():
    with pytest.raises(IncompleteRecord):
        validate_record({"municipality_id": None, "title": "Serviço tipo 50A", "nature": "Outra", "custom_nature": "x"})
    with pytest.raises(IncompleteRecord):
        validate_record({"municipality_id": "m4", "title": "Serviço tipo 50A", "nature": "Outra", "custom_nature": "x"})



def test_padded_sentinel_is_still_the_sentinel(repo):
    with pytest.raises(InvalidSentinel):
        repo.create({"municipality_id": "m1", "title": "Outro "})
    with pytest.raises(InvalidSentinel):
        repo.create({"municipality_id": "m1", "nature": "Outra\n"})
    assert repo.count() == 0


def test_sentinel_is_not_a_custom_text(repo):
    with pytest.raises(InvalidSentinel):
        repo.create({"municipality_id": "m1", "title": "Outro", "custom_title": " Outro "})

    record = repo.create({"municipality_id": "m1", "title": " Outro", "custom_title": "Poda de árvores"})
    assert record.title == "Poda de árvores"


def test_update_rejects_padded_sentinel(repo):
    record = repo.create({"municipality_id": "m1"})
    with pytest.raises(InvalidSentinel):
        repo.update(record.id, {"title": "Outro\t"})
    with pytest.raises(InvalidSentinel):
        repo.update(record.id, {"nature": " Outra "})

    current = repo.get(record.id)
    assert current.title == "Serviço tipo 50A"
    assert current.nature == "Manutenção Preventiva Programada"


# --- Create ---

def test_create_applies_defaults(repo):
    record = repo.create({"municipality_id": "m1"})

    assert record.id.startswith("rec-")
    assert record.status == "PENDING"
    assert record.technician == UNASSIGNED_TECHNICIAN
    assert record.date == date.today()
    assert [s.name for s in record.stages] == list(DEFAULT_STAGE_NAMES)
    # Empty description is pre-filled from the service template
    assert record.description == SERVICE_TEMPLATES[schemas.ServiceType.TYPE_50A]


def test_create_with_explicit_empty_stages(repo):
    record = repo.create({"municipality_id": "m1", "stages": []})
    assert record.stages == []


def test_create_stores_custom_title_text(repo):
    record = repo.create({"municipality_id": "m2", "title": "Outro", "custom_title": "Troca de chave fusível"})
    out = schemas.RecordOut.model_validate(record)
    assert out.title == "Troca de chave fusível"
    assert out.title_is_custom is True
    assert out.nature_is_custom is False


def test_create_rejects_sentinel(repo):
    with pytest.raises(InvalidSentinel):
        repo.create({"municipality_id": "m1", "title": "Outro"})
    assert repo.count() == 0


def test_list_is_most_recent_first(repo):
    first = repo.create({"municipality_id": "m1"})
    second = repo.create({"municipality_id": "m2"})
    assert [r.id for r in repo.list()] == [second.id, first.id]


# --- Update ---

def test_update_keeps_stages_when_not_supplied(repo):
    record = repo.create({"municipality_id": "m1"})
    updated = repo.update(record.id, {"status": "COMPLETED", "technician": "Ana"})

    assert updated.status == "COMPLETED"
    assert updated.technician == "Ana"
    assert len(updated.stages) == 3


def test_update_replaces_stages_wholesale(repo):
    record = repo.create({"municipality_id": "m1"})
    updated = repo.update(record.id, {"stages": [{"id": "s1", "name": "Only stage"}]})
    assert [(s.id, s.name) for s in updated.stages] == [("s1", "Only stage")]


def test_update_failure_leaves_record_untouched(repo):
    record = repo.create({"municipality_id": "m1", "description": "original"})
    with pytest.raises(DuplicateStage):
        repo.update(record.id, {
            "description": "changed",
            "stages": [{"id": "dup", "name": "A"}, {"id": "dup", "name": "B"}],
        })
    repo.db.rollback()
    current = repo.get(record.id)
    assert current.description == "original"
    assert len(current.stages) == 3


def test_update_unknown_record(repo):
    with pytest.raises(NotFound):
        repo.update("rec-missing", {"status": "COMPLETED"})


# --- Clone / delete ---

def test_clone_deep_copies_stages(repo, png_bytes):
    record = repo.create({
        "municipality_id": "m7",
        "title": "Outro",
        "custom_title": "Troca de para-raios",
        "nature": "Manutenção Corretiva Emergencial",
        "description": "Para-raios danificado por descarga",
        "technician": "Ana Souza",
        "ai_notes": "Isolador trincado",
        "status": "COMPLETED",
        "date": "2023-01-10",
        "stages": [
            {"id": "s1", "name": "Inspection", "description": "Antes da troca",
             "before": {"id": "img-a", "data": png_bytes, "mime_type": "image/png", "description": "fissura"}},
            {"id": "s2", "name": "Execution", "description": "Troca feita",
             "after": {"id": "img-b", "data": png_bytes}},
        ],
    })
    source = schemas.RecordOut.model_validate(record)
    copy = schemas.RecordOut.model_validate(repo.clone(record.id))

    assert copy.id != source.id
    assert copy.title == "Troca de para-raios (copy)"
    assert copy.status == schemas.MaintenanceStatus.PENDING
    assert copy.date == date.today()

    # Everything else is carried over as it was at clone time
    for field in ("municipality_id", "nature", "description", "technician", "ai_notes"):
        assert getattr(copy, field) == getattr(source, field), field
    assert copy.stages == source.stages
    assert [s.before.id if s.before else None for s in copy.stages] == ["img-a", None]
    assert copy.stages[1].after.id == "img-b"

    # Editing the copy does not touch the original
    repo.clear_image(copy.id, "s1", schemas.EvidenceSlot.BEFORE)
    assert repo.get(record.id).stages[0].before is not None


def test_remove_cascades(repo, png_bytes):
    record = repo.create({
        "municipality_id": "m1",
        "stages": [{"id": "s1", "name": "Inspection", "after": {"data": png_bytes}}],
    })
    repo.remove(record.id)

    assert repo.find(record.id) is None
    assert repo.db.query(models.MaintenanceStage).count() == 0
    assert repo.db.query(models.MaintenanceImage).count() == 0


# --- Stages and evidence slots ---

def test_add_duplicate_stage(repo):
    record = repo.create({"municipality_id": "m1", "stages": [{"id": "s1", "name": "A"}]})
    with pytest.raises(DuplicateStage):
        repo.add_stage(record.id, schemas.StageIn(id="s1", name="B"))


def test_remove_stage_renumbers(repo):
    record = repo.create({"municipality_id": "m1", "stages": [
        {"id": "a", "name": "A"}, {"id": "b", "name": "B"}, {"id": "c", "name": "C"},
    ]})
    updated = repo.remove_stage(record.id, "b")
    assert [(s.id, s.position) for s in updated.stages] == [("a", 0), ("c", 1)]


def test_set_image_replaces_slot(repo, png_bytes):
    record = repo.create({"municipality_id": "m1", "stages": [{"id": "s1", "name": "A"}]})
    repo.set_image(record.id, "s1", schemas.EvidenceSlot.DURING, schemas.ImageCreate(data=b"first"))
    updated = repo.set_image(record.id, "s1", schemas.EvidenceSlot.DURING, schemas.ImageCreate(data=png_bytes, mime_type="image/png"))

    stage = updated.stages[0]
    assert len(stage.images) == 1
    assert stage.during.data == png_bytes
    assert stage.before is None and stage.after is None


def test_image_accepts_data_url():
    image = schemas.ImageCreate(data="data:image/png;base64,aGVsbG8=")
    assert image.data == b"hello"
    assert image.mime_type == "image/png"


def test_seed_only_fills_empty_repository(repo):
    assert seed_records(repo, SAMPLE_RECORDS) == 1
    assert seed_records(repo, SAMPLE_RECORDS) == 0
    sample = repo.list()[0]
    assert sample.technician == "João Silva"
    assert [s.id for s in sample.stages] == ["stg1", "stg2"]


# --- Concurrent sessions ---

def test_concurrent_creates_keep_order_and_all_succeed(session_factory):
    def create(n):
        db = session_factory()
        try:
            return RecordRepository(db).create({"municipality_id": "m1", "technician": f"T{n}"}).id
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(create, range(24)))

    db = session_factory()
    try:
        records = RecordRepository(db).list()
    finally:
        db.close()

    assert sorted(r.id for r in records) == sorted(created)
    seqs = [r.seq for r in records]
    assert len(set(seqs)) == len(seqs)
    assert seqs == sorted(seqs, reverse=True)


def test_open_unit_of_work_holds_off_other_sessions(session_factory):
    first = RecordRepository(session_factory())
    second = RecordRepository(session_factory())
    started = threading.Event()
    errors = []

    def create_second():
        started.set()
        try:
            second.create({"municipality_id": "m2", "technician": "second"})
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=create_second)
    with first.atomic():
        first.create({"municipality_id": "m1", "technician": "first"})
        worker.start()
        started.wait(timeout=5)
        worker.join(timeout=0.2)
        # The other session waits instead of committing or rolling back our work
        assert worker.is_alive()
    worker.join(timeout=5)

    assert not worker.is_alive()
    assert errors == []
    assert [r.technician for r in first.list()] == ["second", "first"]
    first.db.close()
    second.db.close()


def test_seq_stays_monotonic_after_deleting_newest(repo):
    first = repo.create({"municipality_id": "m1"})
    newest = repo.create({"municipality_id": "m1"})
    newest_seq = newest.seq
    repo.remove(newest.id)

    latest = repo.create({"municipality_id": "m1"})
    assert latest.seq > newest_seq
    assert [r.id for r in repo.list()] == [latest.id, first.id]
