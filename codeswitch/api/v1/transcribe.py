"""Audio upload transcription endpoint."""

import structlog
from fastapi import APIRouter, Depends, File, UploadFile

from codeswitch.api.deps import get_transcriber
from codeswitch.core.exceptions import EmptyInputError
from codeswitch.schemas.http import ErrorResponse, TranscribeResponse
from codeswitch.services.speech.transcriber import Transcriber

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["transcription"])


@router.post(
    "/transcribe",
    response_model=TranscribeResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def transcribe(
    audio_file: UploadFile | None = File(None, alias="audioFile"),
    transcriber: Transcriber = Depends(get_transcriber),
) -> TranscribeResponse:
    """Transcribe the multipart ``audioFile`` field.

    Errors are raised as CodeswitchError subclasses and rendered as
    ``{"error": ...}`` by the application's exception handler.
    """
    if audio_file is None:
        raise EmptyInputError("No audio file uploaded.")

    content = await audio_file.read()
    logger.info(
        "transcribe_request",
        filename=audio_file.filename,
        size=len(content),
    )
    text = await transcriber.transcribe(content, audio_file.filename)
    return TranscribeResponse(transcribed_text=text)
