"""Speech-to-text for uploaded audio clips.

Unlike mapping and translation there is no safe placeholder for speech that
could not be recognised, so a failing capability raises TranscriptionError
and the caller decides how to tell the user.

The live variant stages each clip in a uniquely named temporary file (the
OpenAI-compatible SDK uploads files, not buffers). The file is deleted on
every exit path.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import openai
import structlog
from openai import AsyncOpenAI

from codeswitch.core.exceptions import EmptyInputError, TranscriptionError

logger = structlog.get_logger(__name__)

DEFAULT_FILENAME = "audio.webm"
MOCK_TRANSCRIPTION = (
    "Mocked transcription (speech-to-text not configured): "
    "The quick brown fox jumps over the lazy dog."
)


@dataclass(frozen=True)
class AudioClip:
    """Raw audio bytes plus the client's filename, used as a format hint."""

    data: bytes
    filename: str | None = None

    @property
    def suffix(self) -> str:
        suffix = Path(self.filename or DEFAULT_FILENAME).suffix
        return suffix if suffix else Path(DEFAULT_FILENAME).suffix

    def ensure_not_empty(self) -> None:
        if not self.data:
            raise EmptyInputError("Audio buffer is empty or undefined.")


class Transcriber(ABC):
    """Turns an audio clip into text."""

    @abstractmethod
    async def transcribe(self, audio: bytes, filename_hint: str | None = None) -> str:
        """Return the recognised text verbatim.

        Raises:
            EmptyInputError: ``audio`` is empty; no capability is called.
            TranscriptionError: The speech-to-text capability failed.
        """


class FallbackTranscriber(Transcriber):
    """Returns a fixed, clearly marked sentence when no capability is set up."""

    def __init__(self, delay_ms: int = 0) -> None:
        self._delay = max(delay_ms, 0) / 1000

    async def transcribe(self, audio: bytes, filename_hint: str | None = None) -> str:
        AudioClip(audio, filename_hint).ensure_not_empty()
        logger.warning("transcription_not_configured_returning_mock", size=len(audio))
        if self._delay:
            await asyncio.sleep(self._delay)
        return MOCK_TRANSCRIPTION


def _write_temp_clip(clip: AudioClip) -> str:
    fd, path = tempfile.mkstemp(prefix="codeswitch_audio_", suffix=clip.suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(clip.data)
    except BaseException:
        _remove_temp_clip(path)
        raise
    return path


def _remove_temp_clip(path: str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
        logger.debug("transcription_temp_file_deleted", path=path)
    except OSError as e:
        logger.error("transcription_temp_file_delete_failed", path=path, error=str(e))


def _discard_staged_clip(write: "asyncio.Future[str]") -> None:
    # The caller was cancelled while the write thread was still running.
    if not write.cancelled() and write.exception() is None:
        _remove_temp_clip(write.result())


async def _stage_clip(clip: AudioClip) -> str:
    """Write ``clip`` to a temp file off the event loop and return its path.

    Raises:
        TranscriptionError: The file could not be written.
    """
    write = asyncio.ensure_future(asyncio.to_thread(_write_temp_clip, clip))
    try:
        return await asyncio.shield(write)
    except asyncio.CancelledError:
        write.add_done_callback(_discard_staged_clip)
        raise
    except OSError as e:
        logger.error("transcription_staging_failed", error=str(e))
        raise TranscriptionError(f"Could not stage audio for transcription: {e}") from e


class LiveTranscriber(Transcriber):
    """Whisper-style transcription through an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        model: str = "whisper-1",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url or None)
        self._model = model
        logger.info("live_transcriber_initialized", model=model, base_url=base_url or "default")

    async def transcribe(self, audio: bytes, filename_hint: str | None = None) -> str:
        clip = AudioClip(audio, filename_hint)
        clip.ensure_not_empty()

        path = await _stage_clip(clip)
        try:
            logger.info("transcription_started", size=len(clip.data), suffix=clip.suffix)
            # The SDK reads a path asynchronously when building the upload.
            transcription = await self._client.audio.transcriptions.create(
                file=Path(path),
                model=self._model,
            )
            logger.info("transcription_ok", size=len(clip.data))
            return transcription.text
        except openai.APIStatusError as e:
            logger.error(
                "transcription_api_error",
                status=e.status_code,
                error=e.message,
            )
            raise TranscriptionError(
                f"Speech-to-text API error: {e.message} (Status: {e.status_code})"
            ) from e
        except Exception as e:
            logger.error("transcription_failed", error=str(e))
            raise TranscriptionError(f"Speech-to-text failed: {e}") from e
        finally:
            await asyncio.to_thread(_remove_temp_clip, path)

    async def aclose(self) -> None:
        await self._client.close()
