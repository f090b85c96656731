import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from hv_maintenance import schemas
from hv_maintenance.database import get_session_factory
from hv_maintenance.dependencies import get_ai_bridge, get_repository
from hv_maintenance.exceptions import AIBridgeError, NoImageProduced
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services.ai_bridge import GeminiBridge
from hv_maintenance.services.ai_results import (
    AIResultMessage, AIResultTarget, apply_ai_result, run_image_analysis
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/ai",
    tags=['AI Assistant API']
)

AI_UNAVAILABLE_NOTICE = "AI assistant unavailable right now; nothing was changed."
NO_IMAGE_NOTICE = "The AI did not return an image; the slot was left unchanged."


def _record_out(record):
    return schemas.RecordOut.model_validate(record) if record is not None else None


def _notice(e: AIBridgeError) -> str:
    logger.warning("AI call failed: %s", e)
    return NO_IMAGE_NOTICE if isinstance(e, NoImageProduced) else AI_UNAVAILABLE_NOTICE

# =================================================================================
# TEXT CLEANUP (form helper, nothing is stored)
# =================================================================================
@router.post("/improve-text", response_model=schemas.ImproveTextResponse)
async def improve_text(payload: schemas.ImproveTextRequest, bridge: GeminiBridge = Depends(get_ai_bridge)):
    try:
        improved = await bridge.improve_text(payload.text)
    except AIBridgeError as e:
        return {"text": payload.text, "applied": False, "notice": _notice(e)}
    return {"text": improved, "applied": improved != payload.text}

@router.post("/records/{record_id}/improve-description", response_model=schemas.AIActionResult)
async def improve_record_description(
    record_id: str,
    repo: RecordRepository = Depends(get_repository),
    bridge: GeminiBridge = Depends(get_ai_bridge)
):
    record = repo.get(record_id)
    original = record.description
    try:
        improved = await bridge.improve_text(original)
    except AIBridgeError as e:
        return {"applied": False, "notice": _notice(e), "record": _record_out(repo.find(record_id))}

    if improved == original:
        return {"applied": False, "record": _record_out(record)}

    updated = apply_ai_result(repo, AIResultMessage(
        target=AIResultTarget.RECORD_DESCRIPTION, record_id=record_id, text=improved
    ))
    if updated is None:
        return {"applied": False, "notice": "The record was deleted before the AI answered."}
    return {"applied": True, "record": _record_out(updated)}

# =================================================================================
# IMAGE ANALYSIS (fire-and-forget)
# =================================================================================
@router.post("/records/{record_id}/stages/{stage_id}/analyze", status_code=status.HTTP_202_ACCEPTED, response_model=schemas.AIActionResult)
def analyze_stage_image(
    record_id: str,
    stage_id: str,
    payload: schemas.AnalyzeStageImageRequest,
    background_tasks: BackgroundTasks,
    repo: RecordRepository = Depends(get_repository),
    bridge: GeminiBridge = Depends(get_ai_bridge),
    session_factory=Depends(get_session_factory)
):
    record = repo.get(record_id)
    stage = repo.get_stage(record, stage_id)
    image = stage.image_in(payload.slot.value)
    if image is None:
        raise HTTPException(status_code=400, detail=f"No '{payload.slot.value}' image on stage '{stage_id}'.")

    context = f"{record.title} - {stage.name}: {stage.description or record.description}"
    background_tasks.add_task(
        run_image_analysis, bridge, session_factory,
        record_id, stage_id, image.data, image.mime_type, context
    )
    return {"applied": False, "notice": "Analysis scheduled; the AI note will appear on the record.", "record": _record_out(record)}

# =================================================================================
# IMAGE GENERATION
# =================================================================================
@router.post("/records/{record_id}/stages/{stage_id}/images/{slot}/generate", response_model=schemas.AIActionResult)
async def generate_stage_image(
    record_id: str,
    stage_id: str,
    slot: schemas.EvidenceSlot,
    payload: schemas.GenerateImageRequest,
    repo: RecordRepository = Depends(get_repository),
    bridge: GeminiBridge = Depends(get_ai_bridge)
):
    # Fail fast on unknown targets before spending an AI call
    repo.get_stage(repo.get(record_id), stage_id)

    try:
        data, mime_type = await bridge.generate_image(payload.prompt)
    except AIBridgeError as e:
        return {"applied": False, "notice": _notice(e), "record": _record_out(repo.find(record_id))}

    updated = apply_ai_result(repo, AIResultMessage(
        target=AIResultTarget.STAGE_IMAGE,
        record_id=record_id,
        stage_id=stage_id,
        slot=slot,
        image=schemas.ImageCreate(data=data, mime_type=mime_type, description=payload.prompt),
    ))
    if updated is None:
        return {"applied": False, "notice": "The stage was removed before the image was ready."}
    return {"applied": True, "record": _record_out(updated)}

# =================================================================================
# SUPERVISOR SUMMARY
# =================================================================================
@router.post("/summary", response_model=schemas.SummaryResponse)
async def generate_summary(
    repo: RecordRepository = Depends(get_repository),
    bridge: GeminiBridge = Depends(get_ai_bridge)
):
    try:
        summary = await bridge.generate_summary(repo.snapshot())
    except AIBridgeError as e:
        return {"applied": False, "notice": _notice(e)}
    return {"summary": summary, "applied": True}
