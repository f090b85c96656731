from fastapi import APIRouter, Depends, status, Response
from typing import List

from hv_maintenance import schemas
from hv_maintenance.dependencies import get_edit_session, get_repository
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services.edit_session import EditSession

router = APIRouter(
    prefix="/api/v1/records",
    tags=['Maintenance Records API']
)

# =================================================================================
# CREATE
# =================================================================================
@router.post("/", status_code=status.HTTP_201_CREATED, response_model=schemas.RecordOut)
def create_record(
    record_data: schemas.RecordCreate,
    repo: RecordRepository = Depends(get_repository)
):
    return repo.create(record_data)

# =================================================================================
# READ
# =================================================================================
@router.get("/", response_model=List[schemas.RecordOut])
def get_all_records(repo: RecordRepository = Depends(get_repository)):
    # Most recent first
    return repo.list()

@router.get("/{record_id}", response_model=schemas.RecordOut)
def get_record(record_id: str, repo: RecordRepository = Depends(get_repository)):
    return repo.get(record_id)

# =================================================================================
# UPDATE
# =================================================================================
@router.put("/{record_id}", response_model=schemas.RecordOut)
def update_record(
    record_id: str,
    record_update: schemas.RecordUpdate,
    repo: RecordRepository = Depends(get_repository)
):
    return repo.update(record_id, record_update)

# =================================================================================
# CLONE
# =================================================================================
@router.post("/{record_id}/clone", status_code=status.HTTP_201_CREATED, response_model=schemas.RecordOut)
def clone_record(record_id: str, repo: RecordRepository = Depends(get_repository)):
    return repo.clone(record_id)

# =================================================================================
# DELETE
# =================================================================================
@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(
    record_id: str,
    repo: RecordRepository = Depends(get_repository),
    edit_session: EditSession = Depends(get_edit_session)
):
    repo.remove(record_id)

    # The edit form must not keep pointing at a deleted record
    edit_session.close_if_editing(record_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)

# =================================================================================
# STAGES
# =================================================================================
@router.post("/{record_id}/stages", status_code=status.HTTP_201_CREATED, response_model=schemas.RecordOut)
def add_stage(
    record_id: str,
    stage_data: schemas.StageIn,
    repo: RecordRepository = Depends(get_repository)
):
    return repo.add_stage(record_id, stage_data)

@router.put("/{record_id}/stages/{stage_id}", response_model=schemas.RecordOut)
def replace_stage(
    record_id: str,
    stage_id: str,
    stage_data: schemas.StageIn,
    repo: RecordRepository = Depends(get_repository)
):
    return repo.replace_stage(record_id, stage_id, stage_data)

@router.delete("/{record_id}/stages/{stage_id}", response_model=schemas.RecordOut)
def remove_stage(record_id: str, stage_id: str, repo: RecordRepository = Depends(get_repository)):
    return repo.remove_stage(record_id, stage_id)

# =================================================================================
# EVIDENCE SLOTS (before / during / after)
# =================================================================================
@router.put("/{record_id}/stages/{stage_id}/images/{slot}", response_model=schemas.RecordOut)
def set_stage_image(
    record_id: str,
    stage_id: str,
    slot: schemas.EvidenceSlot,
    image_data: schemas.ImageCreate,
    repo: RecordRepository = Depends(get_repository)
):
    return repo.set_image(record_id, stage_id, slot, image_data)

@router.delete("/{record_id}/stages/{stage_id}/images/{slot}", response_model=schemas.RecordOut)
def clear_stage_image(
    record_id: str,
    stage_id: str,
    slot: schemas.EvidenceSlot,
    repo: RecordRepository = Depends(get_repository)
):
    return repo.clear_image(record_id, stage_id, slot)
