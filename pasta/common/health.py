"""Health and readiness probes."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pasta.paste.errors import PasteError
from pasta.paste.routes import get_paste_service
from pasta.paste.service import PasteService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


class HealthStatus(BaseModel):
    status: str
    version: str = "0.1.0"


@router.get("/health", response_model=HealthStatus)
def health_check():
    return HealthStatus(status="ok")


@router.get("/ready", response_model=HealthStatus)
def readiness_check(service: PasteService = Depends(get_paste_service)):
    try:
        ready = service.ping()
    except PasteError as exc:
        logger.warning(f"Readiness check failed: {exc}")
        ready = False
    if not ready:
        return JSONResponse(status_code=503, content=HealthStatus(status="unavailable").model_dump())
    return HealthStatus(status="ok")
