# hv_maintenance/services/ai_results.py
"""
AI results travel back as messages tagged with the record/stage they
belong to. The target is looked up again when the message is applied, so a
result that arrives after its record or stage was deleted is dropped.
"""
import logging
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from hv_maintenance import models, schemas
from hv_maintenance.exceptions import AIBridgeError
from hv_maintenance.repository import RecordRepository

logger = logging.getLogger(__name__)


class AIResultTarget(str, Enum):
    RECORD_NOTES = "record.ai_notes"
    RECORD_DESCRIPTION = "record.description"
    STAGE_DESCRIPTION = "stage.description"
    STAGE_IMAGE = "stage.image"


class AIResultMessage(BaseModel):
    target: AIResultTarget
    record_id: str
    stage_id: Optional[str] = None
    slot: Optional[schemas.EvidenceSlot] = None
    text: Optional[str] = None
    image: Optional[schemas.ImageCreate] = None


def _stage_as_input(stage: models.MaintenanceStage, description: str) -> schemas.StageIn:
    current = schemas.StageOut.model_validate(stage)
    return schemas.StageIn.model_validate({**current.model_dump(), "description": description})


def apply_ai_result(repo: RecordRepository, message: AIResultMessage) -> Optional[models.MaintenanceRecord]:
    """Applies the message if its target still exists. Returns the updated record, or None when dropped."""
    # The existence check and the write form one unit of work
    with repo.atomic():
        return _apply(repo, message)


def _apply(repo: RecordRepository, message: AIResultMessage) -> Optional[models.MaintenanceRecord]:
    record = repo.find(message.record_id)
    if record is None:
        logger.info("Dropping %s result: record %s no longer exists", message.target.value, message.record_id)
        return None

    stage = None
    if message.stage_id is not None:
        stage = next((s for s in record.stages if s.id == message.stage_id), None)
        if stage is None:
            logger.info("Dropping %s result: stage %s no longer exists in record %s",
                        message.target.value, message.stage_id, message.record_id)
            return None

    if message.target == AIResultTarget.RECORD_NOTES:
        return repo.update(record.id, {"ai_notes": message.text})
    if message.target == AIResultTarget.RECORD_DESCRIPTION:
        return repo.update(record.id, {"description": message.text or ""})
    if message.target == AIResultTarget.STAGE_DESCRIPTION:
        return repo.replace_stage(record.id, stage.id, _stage_as_input(stage, message.text or ""))
    if message.target == AIResultTarget.STAGE_IMAGE:
        return repo.set_image(record.id, stage.id, message.slot, message.image)

    raise ValueError(f"Unsupported AI result target: {message.target}")


async def run_image_analysis(
    bridge,
    session_factory: Callable[[], Session],
    record_id: str,
    stage_id: str,
    image_bytes: bytes,
    mime_type: str,
    context_text: str,
) -> bool:
    """
    Fire-and-forget task: analyzes one evidence photo and stores the
    result as the record's AI note. Failures leave the record untouched.
    """
    try:
        text = await bridge.analyze_image(image_bytes, context_text, mime_type)
    except AIBridgeError as e:
        logger.warning("Image analysis for record %s failed: %s", record_id, e)
        return False

    if not text:
        return False

    db = session_factory()
    try:
        message = AIResultMessage(target=AIResultTarget.RECORD_NOTES, record_id=record_id, stage_id=stage_id, text=text)
        return apply_ai_result(RecordRepository(db), message) is not None
    finally:
        db.close()
