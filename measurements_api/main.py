from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from common.config import get_settings
from common.db import get_engine
from .endpoints import (
    gateways_router,
    health_router,
    measurements_router,
    networks_router,
    sensors_router,
)
from .errors import MeasurementsError, NotFoundError
from .infrastructure.persistence import ensure_schema
from .schemas import ErrorOut

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.auto_create_schema:
        ensure_schema(get_engine())
    yield


async def measurements_error_handler(request: Request, exc: MeasurementsError) -> JSONResponse:
    if isinstance(exc, NotFoundError) and exc.reason is not None:
        # El motivo real (p.ej. gateway de otra red) solo va al log.
        logger.debug(
            "[API] %s %s not found reason=%s mismatch=%s",
            request.method,
            request.url.path,
            exc.reason.value,
            exc.is_hierarchy_mismatch,
        )
    body = ErrorOut(code=exc.status_code, name=exc.name, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_app() -> FastAPI:
    configure_logging(get_settings().log_level)

    app = FastAPI(title="Measurements Analytics Service", version="1.0.0", lifespan=lifespan)
    app.add_exception_handler(MeasurementsError, measurements_error_handler)

    app.include_router(health_router)
    app.include_router(networks_router)
    app.include_router(gateways_router)
    app.include_router(sensors_router)
    app.include_router(measurements_router)
    return app


app = create_app()
