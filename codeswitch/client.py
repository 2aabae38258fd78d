"""Async client for the ``/ws`` session relay.

The relay does not correlate requests with results, so the client does:
every request gets a monotonically increasing ``seq``, and annotation or
translation results older than the newest text request are dropped as stale
echoes. Keystroke bursts can be debounced so only the last edit is sent.

Usage::

    async with RelayClient("ws://localhost:3001/ws") as client:
        result = await client.translate("Hello [[FR]]bonjour", target_language="es")
        tagged = await client.detect_languages("hola my friend")  # None on timeout
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import os
from dataclasses import dataclass, field
from typing import Any

import structlog
import websockets
from pydantic import ValidationError

from codeswitch.schemas.relay import (
    AnnotatedTextPayload,
    LanguageDetectedPayload,
    TranscriptionPayload,
)

logger = structlog.get_logger(__name__)

DEFAULT_URL = "ws://localhost:3001/ws"
DETECTION_TIMEOUT_SEC = 5.0
DEBOUNCE_MS = 300


@dataclass
class ClientState:
    """What a UI would render: the latest non-stale results."""

    annotated_text: str = ""
    detected_languages: list[str] = field(default_factory=list)
    translated_text: str = ""
    transcribed_text: str = ""
    tagged_text: str = ""
    detecting: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass
class TranslationOutcome:
    seq: int
    annotated_text: str = ""
    detected_languages: list[str] = field(default_factory=list)
    translated_text: str | None = None
    error: str | None = None


class RelayClient:
    """Client for the relay WebSocket API."""

    def __init__(
        self,
        url: str | None = None,
        debounce_ms: int = DEBOUNCE_MS,
        detection_timeout: float = DETECTION_TIMEOUT_SEC,
        connection: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: WebSocket URL. If None, uses CODESWITCH_WS_URL env var.
            debounce_ms: Quiet period before a debounced send fires.
            detection_timeout: Seconds to wait for ``languageDetected``.
            connection: An already open connection (tests inject fakes).
        """
        self.url = url or os.getenv("CODESWITCH_WS_URL", DEFAULT_URL)
        self.debounce = debounce_ms / 1000
        self.detection_timeout = detection_timeout
        self.state = ClientState()
        self._ws = connection
        self._seq = itertools.count(1)
        self._latest_text_seq = 0
        self._pending: dict[int, TranslationOutcome] = {}
        self._translation_waiters: dict[int, asyncio.Future] = {}
        self._detection_waiters: dict[int, asyncio.Future] = {}
        self._debounce_task: asyncio.Task | None = None
        self._receiver: asyncio.Task | None = None

    async def __aenter__(self) -> "RelayClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._ws is None:
            self._ws = await websockets.connect(self.url)
        self._receiver = asyncio.create_task(self._receive_loop())

    async def close(self) -> None:
        for task in (self._debounce_task, self._receiver):
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        if self._ws is not None:
            await self._ws.close()

    def _next_seq(self) -> int:
        return next(self._seq)

    async def _send(self, event: str, data: Any, seq: int) -> None:
        await self._ws.send(json.dumps({"event": event, "data": data, "seq": seq}))

    async def send_text(
        self,
        text: str,
        languages: list[str] | None = None,
        target_language: str = "en",
    ) -> int:
        """Send a ``sendText`` request now and return its seq."""
        seq = self._next_seq()
        self._latest_text_seq = seq
        self._pending[seq] = TranslationOutcome(seq=seq)
        await self._send(
            "sendText",
            {
                "text": text,
                "languages": languages or ["auto"],
                "targetLanguage": target_language,
            },
            seq,
        )
        return seq

    def send_text_debounced(
        self,
        text: str,
        languages: list[str] | None = None,
        target_language: str = "en",
    ) -> asyncio.Task:
        """Schedule ``send_text``; a newer call within the window replaces it."""
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()

        async def fire() -> int:
            await asyncio.sleep(self.debounce)
            return await self.send_text(text, languages, target_language)

        self._debounce_task = asyncio.create_task(fire())
        return self._debounce_task

    async def translate(
        self,
        text: str,
        languages: list[str] | None = None,
        target_language: str = "en",
        timeout: float = 30.0,
    ) -> TranslationOutcome:
        """Send text and wait for its translation (or translation error)."""
        future = asyncio.get_running_loop().create_future()
        seq = self._next_seq()
        self._latest_text_seq = seq
        self._pending[seq] = TranslationOutcome(seq=seq)
        self._translation_waiters[seq] = future
        try:
            await self._send(
                "sendText",
                {
                    "text": text,
                    "languages": languages or ["auto"],
                    "targetLanguage": target_language,
                },
                seq,
            )
            return await asyncio.wait_for(future, timeout=timeout)
        finally:
            self._translation_waiters.pop(seq, None)
            self._pending.pop(seq, None)

    async def detect_languages(self, text: str, timeout: float | None = None) -> str | None:
        """Ask for tagged text; ``None`` when nothing arrives in time.

        ``state.detecting`` is cleared on every exit path, including timeout.
        """
        seq = self._next_seq()
        future = asyncio.get_running_loop().create_future()
        self._detection_waiters[seq] = future
        self.state.detecting = True
        try:
            await self._send("detectLanguages", {"text": text}, seq)
            return await asyncio.wait_for(future, timeout=timeout or self.detection_timeout)
        except asyncio.TimeoutError:
            logger.warning("relay_client_detection_timeout", seq=seq)
            return None
        finally:
            self._detection_waiters.pop(seq, None)
            self.state.detecting = False

    async def send_audio(self, audio: bytes) -> None:
        """Send a clip as a binary frame; results arrive without a seq."""
        await self._ws.send(audio)

    async def _receive_loop(self) -> None:
        try:
            async for raw in self._ws:
                if isinstance(raw, bytes):
                    continue
                try:
                    message = json.loads(raw)
                    if not isinstance(message, dict):
                        raise TypeError(f"expected an object, got {type(message).__name__}")
                    self.dispatch(message)
                except (json.JSONDecodeError, TypeError, ValidationError) as e:
                    logger.warning("relay_client_bad_message", error=str(e))
        except websockets.ConnectionClosed:
            logger.info("relay_client_connection_closed")

    def _is_stale(self, seq: int | None) -> bool:
        return seq is not None and seq < self._latest_text_seq

    def dispatch(self, message: dict[str, Any]) -> None:
        """Apply one server message to the client state.

        Raises:
            ValidationError: ``data`` does not match the event's payload.
        """
        event = message.get("event")
        data = message.get("data")
        seq = message.get("seq")

        if event == "receiveAnnotatedText":
            annotated = AnnotatedTextPayload.model_validate(data)
            outcome = self._pending.get(seq) if seq is not None else None
            if outcome is not None:
                outcome.annotated_text = annotated.annotated_text
                outcome.detected_languages = list(annotated.detected_languages)
            if self._is_stale(seq):
                logger.debug("relay_client_stale_annotation", seq=seq)
                return
            self.state.annotated_text = annotated.annotated_text
            self.state.detected_languages = list(annotated.detected_languages)
        elif event == "receiveTranslation":
            self._finish(seq, translated_text=data)
            if self._is_stale(seq):
                logger.debug("relay_client_stale_translation", seq=seq)
                return
            self.state.translated_text = data
        elif event == "translationError":
            self._finish(seq, error=data)
            self.state.errors.append(data)
        elif event == "languageDetected":
            waiter = self._detection_waiters.get(seq)
            self.state.tagged_text = LanguageDetectedPayload.model_validate(data).tagged_text
            if waiter is not None and not waiter.done():
                waiter.set_result(self.state.tagged_text)
        elif event == "languageDetectionError":
            waiter = self._detection_waiters.get(seq)
            self.state.errors.append(data)
            if waiter is not None and not waiter.done():
                waiter.set_result(None)
        elif event == "receiveTranscription":
            self.state.transcribed_text = TranscriptionPayload.model_validate(data).transcribed_text
        elif event in ("transcriptionError", "error"):
            self.state.errors.append(data)
        else:
            logger.debug("relay_client_unhandled_event", event_name=event)

    def _finish(
        self,
        seq: int | None,
        translated_text: str | None = None,
        error: str | None = None,
    ) -> None:
        outcome = self._pending.get(seq) if seq is not None else None
        if outcome is None:
            return
        outcome.translated_text = translated_text
        outcome.error = error
        waiter = self._translation_waiters.get(seq)
        if waiter is not None and not waiter.done():
            waiter.set_result(outcome)
        elif waiter is None:
            self._pending.pop(seq, None)
