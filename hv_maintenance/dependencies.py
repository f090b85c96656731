from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from hv_maintenance.config import get_settings
from hv_maintenance.database import get_db
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services.ai_bridge import GeminiBridge
from hv_maintenance.services.edit_session import EditSession


def get_repository(db: Session = Depends(get_db)) -> RecordRepository:
    return RecordRepository(db)


@lru_cache()
def get_edit_session() -> EditSession:
    # One per process, like the record collection itself
    return EditSession()


@lru_cache()
def get_ai_bridge() -> GeminiBridge:
    return GeminiBridge.from_settings(get_settings())
