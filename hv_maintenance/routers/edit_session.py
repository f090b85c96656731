from fastapi import APIRouter, Depends

from hv_maintenance import schemas
from hv_maintenance.dependencies import get_edit_session, get_repository
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services.edit_session import EditSession

router = APIRouter(
    prefix="/api/v1/edit-session",
    tags=['Edit Session API']
)

def _state(session: EditSession) -> dict:
    return {"record_id": session.record_id, "is_open": session.is_open}

@router.get("/", response_model=schemas.EditSessionOut)
def get_edit_session_state(session: EditSession = Depends(get_edit_session)):
    return _state(session)

@router.put("/{record_id}", response_model=schemas.EditSessionOut)
def open_edit_session(
    record_id: str,
    session: EditSession = Depends(get_edit_session),
    repo: RecordRepository = Depends(get_repository)
):
    # Only existing records can be opened
    repo.get(record_id)
    session.open(record_id)
    return _state(session)

@router.delete("/", response_model=schemas.EditSessionOut)
def close_edit_session(session: EditSession = Depends(get_edit_session)):
    session.close()
    return _state(session)
