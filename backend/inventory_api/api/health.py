from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from inventory_api.db import engine
from inventory_api.utils.logging import get_logger

router = APIRouter()
log = get_logger("health")


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError:
        log.exception("Health check could not reach the database")

    return {
        "status": "ok" if db_ok else "degraded",
        "db": db_ok,
    }
