"""Liveness, status and language list endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from codeswitch.api.deps import get_registry
from codeswitch.schemas.http import LanguageOption, StatusResponse
from codeswitch.services.language.languages import supported_languages
from codeswitch.services.relay.registry import ConnectionRegistry

router = APIRouter(tags=["health"])

LIVENESS_MESSAGE = "Mixed-Language Translator Server is running!"


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return LIVENESS_MESSAGE


@router.get("/status", response_model=StatusResponse)
async def status(registry: ConnectionRegistry = Depends(get_registry)) -> StatusResponse:
    return StatusResponse(
        status="ok",
        connections=registry.count,
        uptime=round(registry.uptime, 3),
    )


@router.get("/api/languages", response_model=list[LanguageOption])
async def languages() -> list[LanguageOption]:
    """Languages offered in the UI picker, auto-detect first."""
    return [LanguageOption(**entry) for entry in supported_languages()]
