from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from pasta.paste.errors import DecodeError, PasteError, error_response
from pasta.paste.service import PasteService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["paste"])


def get_paste_service(request: Request) -> PasteService:
    service = getattr(request.app.state, "paste_service", None)
    if service is None:
        raise RuntimeError("paste service is not configured on this app")
    return service


async def read_paste_body(request: Request) -> bytes:
    return await request.body()


@router.post("/paste", response_class=PlainTextResponse)
def create_paste(
    content: bytes = Depends(read_paste_body),
    service: PasteService = Depends(get_paste_service),
):
    try:
        content.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.error(f"Rejected paste body that is not valid UTF-8: {exc}")
        raise DecodeError(exc) from exc
    return service.create(content)


@router.get("/paste/{key}", response_class=PlainTextResponse)
def get_paste(key: str, service: PasteService = Depends(get_paste_service)):
    return service.fetch_text(key)


async def _paste_error_handler(request: Request, exc: PasteError):
    status_code, body = error_response(exc)
    return PlainTextResponse(content=body, status_code=status_code)


def register_error_handlers(target_app: FastAPI) -> None:
    target_app.add_exception_handler(PasteError, _paste_error_handler)
