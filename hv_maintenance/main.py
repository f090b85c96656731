import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hv_maintenance.config import get_settings
from hv_maintenance.constants import SAMPLE_RECORDS
from hv_maintenance.database import engine, Base, SessionLocal
from hv_maintenance.exceptions import MaintenanceError
from hv_maintenance.repository import RecordRepository, seed_records

# Import Routers
from hv_maintenance.routers import (
    records, dashboard, reports, ai, municipality, edit_session
)

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize DB
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SEED_SAMPLE_DATA:
        db = SessionLocal()
        try:
            added = seed_records(RecordRepository(db), SAMPLE_RECORDS)
            if added:
                logger.info("Seeded %s sample record(s)", added)
        finally:
            db.close()
    yield


app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MaintenanceError)
async def maintenance_error_handler(request: Request, exc: MaintenanceError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

# =================================================================
# REGISTER API ROUTERS
# =================================================================
app.include_router(records.router)
app.include_router(edit_session.router)

# --- VIEWS ---
app.include_router(dashboard.router)
app.include_router(municipality.router)
app.include_router(reports.router)

# --- AI ASSISTANT ---
app.include_router(ai.router)


@app.get("/")
async def root():
    return {"app": settings.APP_NAME, "status": "ok"}
