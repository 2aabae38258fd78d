"""Integration tests for the HTTP endpoints and the /ws relay.

The app is built with fallback capabilities, so no test needs network
access or API keys.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from codeswitch.core.exceptions import TranscriptionError
from codeswitch.main import create_app
from codeswitch.services.capabilities import Capabilities
from codeswitch.services.language.mapper import FallbackLanguageMapper
from codeswitch.services.language.translator import FallbackTranslator
from codeswitch.services.speech.transcriber import MOCK_TRANSCRIPTION, Transcriber


class BrokenTranscriber(Transcriber):
    async def transcribe(self, audio, filename_hint=None):
        raise TranscriptionError("Speech-to-text API error: unsupported format (Status: 400)")


@pytest.fixture
def client(test_settings, fallback_capabilities):
    app = create_app(app_settings=test_settings, capabilities=fallback_capabilities)
    with TestClient(app) as test_client:
        yield test_client


class TestHttpEndpoints:
    def test_root(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Mixed-Language Translator Server is running!"

    def test_status_without_connections(self, client) -> None:
        body = client.get("/status").json()
        assert body["status"] == "ok"
        assert body["connections"] == 0
        assert body["uptime"] >= 0

    def test_languages(self, client) -> None:
        body = client.get("/api/languages").json()
        assert body[0]["code"] == "auto"
        codes = {entry["code"] for entry in body}
        assert {"en", "ru", "kk", "es"} <= codes

    def test_transcribe(self, client) -> None:
        response = client.post(
            "/api/transcribe",
            files={"audioFile": ("clip.webm", b"\x1a\x45\xdf\xa3", "audio/webm")},
        )
        assert response.status_code == 200
        assert response.json() == {"transcribedText": MOCK_TRANSCRIPTION}

    def test_transcribe_missing_file(self, client) -> None:
        response = client.post(
            "/api/transcribe",
            files={"somethingElse": ("note.txt", b"x", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "No audio file uploaded."

    def test_transcribe_empty_file(self, client) -> None:
        response = client.post(
            "/api/transcribe",
            files={"audioFile": ("clip.webm", b"", "audio/webm")},
        )
        assert response.status_code == 400
        assert response.json() == {
            "error": "Audio buffer is empty or undefined.",
            "code": "EMPTY_INPUT",
        }

    def test_transcribe_upstream_failure(self, test_settings) -> None:
        capabilities = Capabilities(
            mapper=FallbackLanguageMapper(),
            translator=FallbackTranslator(delay_ms=0),
            transcriber=BrokenTranscriber(),
        )
        app = create_app(app_settings=test_settings, capabilities=capabilities)
        with TestClient(app) as test_client:
            response = test_client.post(
                "/api/transcribe",
                files={"audioFile": ("clip.mp3", b"ID3", "audio/mpeg")},
            )
        assert response.status_code == 502
        assert response.json()["code"] == "TRANSCRIPTION_FAILED"
        assert "unsupported format" in response.json()["error"]

    def test_cors_preflight(self, client) -> None:
        response = client.options(
            "/api/transcribe",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestRelayWebSocket:
    def test_send_text_emits_annotation_then_translation(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json(
                {
                    "event": "sendText",
                    "data": {
                        "text": "Hello [[fr]]bonjour",
                        "languages": ["en", "fr"],
                        "targetLanguage": "es",
                    },
                    "seq": 1,
                }
            )
            annotated = ws.receive_json()
            translated = ws.receive_json()

        assert annotated == {
            "event": "receiveAnnotatedText",
            "data": {"annotatedText": "Hello [[FR]]bonjour", "detectedLanguages": ["FR"]},
            "seq": 1,
        }
        assert translated == {
            "event": "receiveTranslation",
            "data": "[MOCK TRANSLATION TO ES] [MOCK] ruojnob olleH",
            "seq": 1,
        }

    def test_status_counts_open_connection(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "detectLanguages", "data": {"text": "hola"}, "seq": 1})
            assert ws.receive_json()["event"] == "languageDetected"
            assert client.get("/status").json()["connections"] == 1

    def test_malformed_frame_keeps_connection_open(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("this is not json")
            error = ws.receive_json()
            assert error["event"] == "error"
            assert error["data"].startswith("Malformed message")

            ws.send_json({"event": "sendText", "data": "", "seq": 2})
            assert ws.receive_json() == {
                "event": "receiveAnnotatedText",
                "data": {"annotatedText": "", "detectedLanguages": []},
                "seq": 2,
            }
            assert ws.receive_json() == {"event": "receiveTranslation", "data": "", "seq": 2}

    def test_binary_audio_frame(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\x1a\x45\xdf\xa3")
            events = [ws.receive_json() for _ in range(3)]

        assert [e["event"] for e in events] == [
            "receiveTranscription",
            "receiveAnnotatedText",
            "receiveTranslation",
        ]
        assert events[0]["data"] == {"transcribedText": MOCK_TRANSCRIPTION}

    def test_empty_audio_frame(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"")
            assert ws.receive_json() == {
                "event": "transcriptionError",
                "data": "Audio buffer is empty or undefined.",
            }

    def test_unknown_event(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "dance", "seq": 5})
            assert ws.receive_json() == {"event": "error", "data": "Unknown event: dance", "seq": 5}

    def test_foreign_origin_rejected(self, client) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws", headers={"Origin": "http://evil.test"}):
                pass
        assert exc_info.value.code == 1008
