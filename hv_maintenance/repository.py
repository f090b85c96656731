import functools
import logging
from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from hv_maintenance import models, schemas
from hv_maintenance.database import DB_LOCK
from hv_maintenance.constants import (
    COPY_SUFFIX, DEFAULT_STAGE_NAMES, SERVICE_TEMPLATES, UNASSIGNED_TECHNICIAN
)
from hv_maintenance.domain import KnownChoice, plain_value, validate_record
from hv_maintenance.exceptions import DuplicateStage, NotFound
from hv_maintenance.utils import new_image_id, new_record_id, new_stage_id

logger = logging.getLogger(__name__)

Predicate = Callable[[models.MaintenanceRecord], bool]


def default_stages() -> List[schemas.StageIn]:
    return [schemas.StageIn(id=new_stage_id(), name=name) for name in DEFAULT_STAGE_NAMES]


def unit_of_work(method):
    """Runs a repository method inside :meth:`RecordRepository.atomic`."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.atomic():
            return method(self, *args, **kwargs)
    return wrapper


class RecordRepository:
    """
    Authoritative collection of maintenance records.

    Every public method is one unit of work: it holds ``DB_LOCK`` and ends
    its transaction (commit, or rollback on error) before returning, so a
    caller never observes a half-applied edit. Records come back
    most-recent-first.
    """

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def atomic(self):
        """
        Groups several calls into one unit of work. Nested uses join the
        outermost one, which alone commits or rolls back.
        """
        with DB_LOCK:
            self._depth += 1
            try:
                yield self
                if self._depth == 1:
                    self.db.commit()
            except Exception:
                if self._depth == 1:
                    self.db.rollback()
                raise
            finally:
                self._depth -= 1

    # =================================================================================
    # READ
    # =================================================================================
    def _query(self):
        # Other sessions may have committed since this one last loaded a row
        return self.db.query(models.MaintenanceRecord).options(
            selectinload(models.MaintenanceRecord.stages).selectinload(models.MaintenanceStage.images)
        ).populate_existing()

    @unit_of_work
    def find(self, record_id: str) -> Optional[models.MaintenanceRecord]:
        return self._query().filter(models.MaintenanceRecord.id == record_id).first()

    @unit_of_work
    def get(self, record_id: str) -> models.MaintenanceRecord:
        record = self.find(record_id)
        if not record:
            raise NotFound(f"Maintenance record '{record_id}' not found")
        return record

    @unit_of_work
    def list(self, predicate: Optional[Predicate] = None) -> List[models.MaintenanceRecord]:
        records = self._query().order_by(models.MaintenanceRecord.seq.desc()).all()
        if predicate is None:
            return records
        return [r for r in records if predicate(r)]

    @unit_of_work
    def snapshot(self, predicate: Optional[Predicate] = None) -> List[schemas.RecordOut]:
        """Detached copies of the listed records, for views and exports."""
        return [schemas.RecordOut.model_validate(r) for r in self.list(predicate)]

    @unit_of_work
    def count(self) -> int:
        return self.db.query(func.count(models.MaintenanceRecord.id)).scalar() or 0

    # =================================================================================
    # CREATE
    # =================================================================================
    @unit_of_work
    def create(self, data: Union[schemas.RecordCreate, dict]) -> models.MaintenanceRecord:
        record_in = data if isinstance(data, schemas.RecordCreate) else schemas.RecordCreate.model_validate(data)

        # 1. Validate (raises IncompleteRecord / InvalidSentinel)
        result = validate_record(record_in.model_dump(exclude={"stages"}))

        # 2. Pre-fill the description from the service template
        description = record_in.description
        if not description.strip() and isinstance(result.title, KnownChoice):
            description = SERVICE_TEMPLATES.get(schemas.ServiceType(result.title.value), "")

        # 3. Build the record graph
        record = models.MaintenanceRecord(
            id=new_record_id(),
            municipality_id=result.municipality.id,
            title=result.title.text,
            nature=result.nature.text,
            description=description,
            date=record_in.date or date.today(),
            status=plain_value(record_in.status),
            technician=self._technician(record_in.technician),
            ai_notes=record_in.ai_notes,
        )
        stages_in = record_in.stages if record_in.stages is not None else default_stages()
        record.stages = self._build_stages(stages_in)

        self.db.add(record)
        self.db.commit()
        logger.info("Created record %s (%s stages)", record.id, len(stages_in))
        return self.get(record.id)

    @unit_of_work
    def clone(self, record_id: str) -> models.MaintenanceRecord:
        source = self.get(record_id)

        copy = models.MaintenanceRecord(
            id=new_record_id(),
            municipality_id=source.municipality_id,
            title=f"{source.title}{COPY_SUFFIX}",
            nature=source.nature,
            description=source.description,
            date=date.today(),
            status=schemas.MaintenanceStatus.PENDING.value,
            technician=source.technician,
            ai_notes=source.ai_notes,
        )
        copy.stages = [
            models.MaintenanceStage(
                id=stage.id,
                position=index,
                name=stage.name,
                description=stage.description,
                images=[
                    models.MaintenanceImage(
                        slot=image.slot,
                        id=image.id,
                        data=image.data,
                        mime_type=image.mime_type,
                        description=image.description,
                    )
                    for image in stage.images
                ],
            )
            for index, stage in enumerate(source.stages)
        ]

        self.db.add(copy)
        self.db.commit()
        logger.info("Cloned record %s into %s", source.id, copy.id)
        return self.get(copy.id)

    # =================================================================================
    # UPDATE
    # =================================================================================
    @unit_of_work
    def update(self, record_id: str, data: Union[schemas.RecordUpdate, dict]) -> models.MaintenanceRecord:
        record = self.get(record_id)
        update_in = data if isinstance(data, schemas.RecordUpdate) else schemas.RecordUpdate.model_validate(data)

        # id / created_at are not part of RecordUpdate, so they can never be overwritten
        patch = update_in.model_dump(exclude_unset=True, exclude={"stages"})
        patch = {k: v for k, v in patch.items() if v is not None or k == "ai_notes"}

        merged = {
            "municipality_id": record.municipality_id,
            "title": record.title,
            "nature": record.nature,
            **patch,
        }
        result = validate_record(merged)
        new_stages = None
        if "stages" in update_in.model_fields_set and update_in.stages is not None:
            new_stages = self._build_stages(update_in.stages)

        record.municipality_id = result.municipality.id
        record.title = result.title.text
        record.nature = result.nature.text
        for key in ("description", "date", "ai_notes"):
            if key in patch:
                setattr(record, key, patch[key])
        if "status" in patch:
            record.status = plain_value(patch["status"])
        if "technician" in patch:
            record.technician = self._technician(patch["technician"])

        # Stages are replaced wholesale, and only when supplied
        if new_stages is not None:
            record.stages.clear()
            self.db.flush()
            record.stages = new_stages

        self.db.commit()
        logger.info("Updated record %s (%s)", record_id, ", ".join(sorted(update_in.model_fields_set)) or "no fields")
        return self.get(record_id)

    # =================================================================================
    # DELETE
    # =================================================================================
    @unit_of_work
    def remove(self, record_id: str) -> None:
        record = self.get(record_id)
        # Stages and images go with it (delete-orphan + ON DELETE CASCADE)
        self.db.delete(record)
        self.db.commit()
        logger.info("Deleted record %s", record_id)

    # =================================================================================
    # STAGES & EVIDENCE SLOTS
    # =================================================================================
    def get_stage(self, record: models.MaintenanceRecord, stage_id: str) -> models.MaintenanceStage:
        for stage in record.stages:
            if stage.id == stage_id:
                return stage
        raise NotFound(f"Stage '{stage_id}' not found in record '{record.id}'")

    @unit_of_work
    def add_stage(self, record_id: str, stage_in: schemas.StageIn) -> models.MaintenanceRecord:
        record = self.get(record_id)
        stage_id = stage_in.id or new_stage_id()
        if any(s.id == stage_id for s in record.stages):
            raise DuplicateStage(f"Stage '{stage_id}' already exists in record '{record_id}'")

        record.stages.append(self._build_stage(stage_in, stage_id, len(record.stages)))
        self.db.commit()
        logger.info("Added stage %s to record %s", stage_id, record_id)
        return self.get(record_id)

    @unit_of_work
    def replace_stage(self, record_id: str, stage_id: str, stage_in: schemas.StageIn) -> models.MaintenanceRecord:
        record = self.get(record_id)
        stage = self.get_stage(record, stage_id)

        stage.name = stage_in.name
        stage.description = stage_in.description
        stage.images.clear()
        self.db.flush()
        stage.images = self._build_images(stage_in)

        self.db.commit()
        logger.info("Replaced stage %s of record %s", stage_id, record_id)
        return self.get(record_id)

    @unit_of_work
    def remove_stage(self, record_id: str, stage_id: str) -> models.MaintenanceRecord:
        record = self.get(record_id)
        stage = self.get_stage(record, stage_id)

        record.stages.remove(stage)
        for index, remaining in enumerate(record.stages):
            remaining.position = index

        self.db.commit()
        logger.info("Removed stage %s from record %s", stage_id, record_id)
        return self.get(record_id)

    @unit_of_work
    def set_image(self, record_id: str, stage_id: str, slot: schemas.EvidenceSlot, image_in: schemas.ImageCreate) -> models.MaintenanceRecord:
        record = self.get(record_id)
        stage = self.get_stage(record, stage_id)
        slot = schemas.EvidenceSlot(slot).value

        existing = stage.image_in(slot)
        if existing is not None:
            stage.images.remove(existing)
            self.db.flush()

        image_id = image_in.id or new_image_id()
        if any(image.id == image_id for image in stage.images):
            image_id = new_image_id()
        stage.images.append(self._build_image(slot, image_in, image_id))

        self.db.commit()
        logger.info("Set %s image on stage %s of record %s", slot, stage_id, record_id)
        return self.get(record_id)

    @unit_of_work
    def clear_image(self, record_id: str, stage_id: str, slot: schemas.EvidenceSlot) -> models.MaintenanceRecord:
        record = self.get(record_id)
        stage = self.get_stage(record, stage_id)
        slot = schemas.EvidenceSlot(slot).value

        existing = stage.image_in(slot)
        if existing is not None:
            stage.images.remove(existing)
            self.db.commit()
            logger.info("Cleared %s image on stage %s of record %s", slot, stage_id, record_id)
        return self.get(record_id)

    # =================================================================================
    # HELPERS
    # =================================================================================
    @staticmethod
    def _technician(name: Optional[str]) -> str:
        return (name or "").strip() or UNASSIGNED_TECHNICIAN

    def _build_stages(self, stages_in: Iterable[schemas.StageIn]) -> List[models.MaintenanceStage]:
        stages = []
        seen = set()
        for index, stage_in in enumerate(stages_in):
            stage_id = stage_in.id or new_stage_id()
            if stage_id in seen:
                raise DuplicateStage(f"Stage id '{stage_id}' is used more than once")
            seen.add(stage_id)
            stages.append(self._build_stage(stage_in, stage_id, index))
        return stages

    def _build_stage(self, stage_in: schemas.StageIn, stage_id: str, position: int) -> models.MaintenanceStage:
        return models.MaintenanceStage(
            id=stage_id,
            position=position,
            name=stage_in.name,
            description=stage_in.description,
            images=self._build_images(stage_in),
        )

    def _build_images(self, stage_in: schemas.StageIn) -> List[models.MaintenanceImage]:
        images = []
        seen = set()
        for slot in schemas.EVIDENCE_SLOTS:
            image_in = getattr(stage_in, slot.value)
            if image_in is None:
                continue
            image_id = image_in.id or new_image_id()
            if image_id in seen:
                image_id = new_image_id()
            seen.add(image_id)
            images.append(self._build_image(slot.value, image_in, image_id))
        return images

    @staticmethod
    def _build_image(slot: str, image_in: schemas.ImageCreate, image_id: str) -> models.MaintenanceImage:
        return models.MaintenanceImage(
            slot=slot,
            id=image_id,
            data=image_in.data,
            mime_type=image_in.mime_type,
            description=image_in.description,
        )


def seed_records(repo: RecordRepository, samples: Iterable[dict]) -> int:
    """Loads sample records into an empty repository. Returns how many were added."""
    with repo.atomic():
        if repo.count():
            return 0
        added = 0
        # Oldest first so the repository ends up most-recent-first
        for sample in reversed(list(samples)):
            repo.create(sample)
            added += 1
        return added
