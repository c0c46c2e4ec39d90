"""Health and readiness endpoints."""

import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness: responde ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready():
    """Readiness: comprueba conectividad con la BD."""
    try:
        from common.db import get_engine

        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logging.getLogger(__name__).exception("Readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")
