import logging

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import get_db
from app.core.config import settings
from app.routers import engine as engine_router
from app.routers import quests as quests_router
from app.routers import ranking as ranking_router
from app.core.errors import (
    HunterException,
    hunter_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from app.schemas.common import HealthResponse
from app.services.leveling import validate_level_curve

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# The level curve must be positive and non-decreasing before serving.
validate_level_curve(settings.LEVEL_CURVE_CHECK_LEVELS)

app = FastAPI(
    title="Hunter Engine API",
    description=(
        "**Progression & Assessment Engine**\n\n"
        "Scores daily quests into XP, levels and streaks, and ranks self-reported "
        "metrics against category benchmarks (F → S).\n\n"
        "User-scoped endpoints read the caller from the `X-User-Id` header.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(HunterException, hunter_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(engine_router.router)
app.include_router(quests_router.router)
app.include_router(ranking_router.router)


@app.get(
    "/health",
    tags=["health"],
    summary="Health check",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse, "description": "Database unreachable."}},
)
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        logging.getLogger(__name__).warning("Health check: database unreachable", exc_info=True)
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
