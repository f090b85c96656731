from fastapi import APIRouter
from typing import List

from hv_maintenance import schemas
from hv_maintenance.constants import MUNICIPALITIES, MUNICIPALITIES_BY_ID
from hv_maintenance.exceptions import NotFound

router = APIRouter(
    prefix="/api/v1/municipalities",
    tags=['Municipalities API']
)

@router.get("/", response_model=List[schemas.Municipality])
def get_all_municipalities():
    return list(MUNICIPALITIES)

@router.get("/{municipality_id}", response_model=schemas.Municipality)
def get_municipality(municipality_id: str):
    municipality = MUNICIPALITIES_BY_ID.get(municipality_id)
    if not municipality:
        raise NotFound(f"Municipality '{municipality_id}' not found")
    return municipality
