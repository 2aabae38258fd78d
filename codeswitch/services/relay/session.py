"""Per-connection session relay.

Each inbound event is turned into an async stream of emissions for the same
connection:

    sendText         -> receiveAnnotatedText, receiveTranslation
    detectLanguages  -> languageDetected
    audio (binary)   -> receiveTranscription, then as sendText

Any failure becomes a named error event (translationError,
languageDetectionError, transcriptionError, error); the connection stays
open. Requests are not single-flight: a new sendText does not cancel an
earlier one, so every emission carries the request's ``seq`` and clients
drop stale echoes.
"""

from __future__ import annotations

import itertools
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator

import structlog
from pydantic import ValidationError

from codeswitch.core.exceptions import (
    EmptyInputError,
    TranscriptionError,
    TranslationUnavailableError,
)
from codeswitch.schemas.relay import (
    AnnotatedTextPayload,
    DetectLanguagesPayload,
    Envelope,
    LanguageDetectedPayload,
    SendTextPayload,
    TranscriptionPayload,
)
from codeswitch.services.language.languages import AUTO_DETECT, DEFAULT_TARGET_LANGUAGE
from codeswitch.services.language.pipeline import TranslationPipeline, TranslationRequest
from codeswitch.services.speech.transcriber import Transcriber

logger = structlog.get_logger(__name__)

TRANSLATION_FAILED_MESSAGE = "Failed to translate text. Please try again."
TRANSLATION_UNAVAILABLE_MESSAGE = "Translation service is unavailable. Text was not translated."
DETECTION_FAILED_MESSAGE = "Failed to detect languages."


class ClientEvent(str, Enum):
    SEND_TEXT = "sendText"
    DETECT_LANGUAGES = "detectLanguages"
    AUDIO = "audio"


class ServerEvent(str, Enum):
    ANNOTATED_TEXT = "receiveAnnotatedText"
    TRANSLATION = "receiveTranslation"
    TRANSLATION_ERROR = "translationError"
    LANGUAGE_DETECTED = "languageDetected"
    LANGUAGE_DETECTION_ERROR = "languageDetectionError"
    TRANSCRIPTION = "receiveTranscription"
    TRANSCRIPTION_ERROR = "transcriptionError"
    ERROR = "error"


class RelayPhase(str, Enum):
    IDLE = "idle"
    AWAITING_TRANSCRIPTION = "awaiting_transcription"
    AWAITING_MAP = "awaiting_map"
    AWAITING_TRANSLATION = "awaiting_translation"


@dataclass(frozen=True)
class InboundEvent:
    name: str
    data: Any = None
    seq: int | None = None


@dataclass(frozen=True)
class Emission:
    """One server → client message."""

    event: ServerEvent
    data: Any
    seq: int | None = None

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"event": self.event.value, "data": self.data}
        if self.seq is not None:
            message["seq"] = self.seq
        return message

    def to_json(self) -> str:
        return json.dumps(self.to_message(), ensure_ascii=False)


def parse_frame(raw: str) -> InboundEvent:
    """Parse a JSON text frame into an InboundEvent.

    Raises:
        ValueError: The frame is not a valid envelope.
    """
    try:
        envelope = Envelope.model_validate_json(raw)
    except ValidationError as e:
        raise ValueError(f"Malformed message: {e.errors()[0]['msg']}") from e
    return InboundEvent(name=envelope.event, data=envelope.data, seq=envelope.seq)


class SessionRelay:
    """Drives mapper → translator (and transcriber) for one connection."""

    def __init__(
        self,
        pipeline: TranslationPipeline,
        transcriber: Transcriber,
        connection_id: str = "",
    ) -> None:
        self._pipeline = pipeline
        self._transcriber = transcriber
        self._connection_id = connection_id
        self._request_ids = itertools.count(1)
        self._phases: dict[int, RelayPhase] = {}
        # Audio frames carry no options; they reuse the connection's last target.
        self._target_language = DEFAULT_TARGET_LANGUAGE

    @property
    def phase(self) -> RelayPhase:
        """Phase of the most recent in-flight request, IDLE when none."""
        if not self._phases:
            return RelayPhase.IDLE
        return self._phases[max(self._phases)]

    @property
    def in_flight(self) -> int:
        return len(self._phases)

    async def handle(self, event: InboundEvent) -> AsyncIterator[Emission]:
        """Yield the emissions caused by ``event``, in order."""
        request_id = next(self._request_ids)
        try:
            if event.name == ClientEvent.SEND_TEXT.value:
                async for emission in self._send_text(request_id, event):
                    yield emission
            elif event.name == ClientEvent.DETECT_LANGUAGES.value:
                async for emission in self._detect_languages(request_id, event):
                    yield emission
            elif event.name == ClientEvent.AUDIO.value:
                async for emission in self._audio(request_id, event):
                    yield emission
            else:
                logger.warning(
                    "relay_unknown_event",
                    connection_id=self._connection_id,
                    event=event.name,
                )
                yield Emission(ServerEvent.ERROR, f"Unknown event: {event.name}", event.seq)
        finally:
            self._phases.pop(request_id, None)

    def _enter(self, request_id: int, phase: RelayPhase) -> None:
        self._phases[request_id] = phase
        logger.debug(
            "relay_phase",
            connection_id=self._connection_id,
            request_id=request_id,
            phase=phase.value,
        )

    async def _send_text(self, request_id: int, event: InboundEvent) -> AsyncIterator[Emission]:
        try:
            payload = SendTextPayload.from_wire(event.data)
        except ValidationError as e:
            logger.warning("relay_invalid_send_text", connection_id=self._connection_id, error=str(e))
            yield Emission(ServerEvent.TRANSLATION_ERROR, TRANSLATION_FAILED_MESSAGE, event.seq)
            return

        self._target_language = payload.target_language
        request = TranslationRequest(
            text=payload.text,
            languages=tuple(payload.languages),
            target_language=payload.target_language,
            seq=event.seq,
        )
        async for emission in self._translate(request_id, request):
            yield emission

    async def _translate(
        self,
        request_id: int,
        request: TranslationRequest,
    ) -> AsyncIterator[Emission]:
        seq = request.seq
        if request.is_empty:
            yield Emission(
                ServerEvent.ANNOTATED_TEXT,
                AnnotatedTextPayload().model_dump(by_alias=True),
                seq,
            )
            yield Emission(ServerEvent.TRANSLATION, "", seq)
            return

        logger.info(
            "relay_translation_started",
            connection_id=self._connection_id,
            seq=seq,
            text_len=len(request.text),
            languages=list(request.languages),
            target_language=request.target_language,
        )
        try:
            self._enter(request_id, RelayPhase.AWAITING_MAP)
            annotation = await self._pipeline.annotate(request)
            yield Emission(
                ServerEvent.ANNOTATED_TEXT,
                AnnotatedTextPayload(
                    annotated_text=annotation.mapped_text,
                    detected_languages=annotation.detected_languages,
                ).model_dump(by_alias=True),
                seq,
            )

            self._enter(request_id, RelayPhase.AWAITING_TRANSLATION)
            result = await self._pipeline.translate(request, annotation)
            yield Emission(ServerEvent.TRANSLATION, result.translated_text, seq)
        except TranslationUnavailableError:
            yield Emission(ServerEvent.TRANSLATION_ERROR, TRANSLATION_UNAVAILABLE_MESSAGE, seq)
        except Exception as e:
            logger.error(
                "relay_translation_failed",
                connection_id=self._connection_id,
                seq=seq,
                error=str(e),
            )
            yield Emission(ServerEvent.TRANSLATION_ERROR, TRANSLATION_FAILED_MESSAGE, seq)

    async def _detect_languages(
        self,
        request_id: int,
        event: InboundEvent,
    ) -> AsyncIterator[Emission]:
        try:
            payload = DetectLanguagesPayload.from_wire(event.data)
            self._enter(request_id, RelayPhase.AWAITING_MAP)
            tagged = await self._pipeline.detect(payload.text)
        except Exception as e:
            logger.error(
                "relay_language_detection_failed",
                connection_id=self._connection_id,
                error=str(e),
            )
            yield Emission(ServerEvent.LANGUAGE_DETECTION_ERROR, DETECTION_FAILED_MESSAGE, event.seq)
            return
        yield Emission(
            ServerEvent.LANGUAGE_DETECTED,
            LanguageDetectedPayload(tagged_text=tagged).model_dump(by_alias=True),
            event.seq,
        )

    async def _audio(self, request_id: int, event: InboundEvent) -> AsyncIterator[Emission]:
        audio = event.data if isinstance(event.data, (bytes, bytearray)) else b""
        try:
            self._enter(request_id, RelayPhase.AWAITING_TRANSCRIPTION)
            text = await self._transcriber.transcribe(bytes(audio))
        except (EmptyInputError, TranscriptionError) as e:
            logger.warning(
                "relay_transcription_failed",
                connection_id=self._connection_id,
                error=e.message,
            )
            yield Emission(ServerEvent.TRANSCRIPTION_ERROR, e.message, event.seq)
            return
        except Exception as e:
            logger.error(
                "relay_transcription_failed",
                connection_id=self._connection_id,
                error=str(e),
            )
            yield Emission(ServerEvent.TRANSCRIPTION_ERROR, "Failed to transcribe audio.", event.seq)
            return

        yield Emission(
            ServerEvent.TRANSCRIPTION,
            TranscriptionPayload(transcribed_text=text).model_dump(by_alias=True),
            event.seq,
        )
        request = TranslationRequest(
            text=text,
            languages=(AUTO_DETECT,),
            target_language=self._target_language,
            seq=event.seq,
        )
        async for emission in self._translate(request_id, request):
            yield emission
