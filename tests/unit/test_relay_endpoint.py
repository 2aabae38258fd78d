"""Unit tests for the /ws handler with an in-memory socket.

TestClient cannot make a send fail halfway through a request, so these
tests drive ``relay_websocket`` directly.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import MagicMock

import pytest

import codeswitch.api.v1.relay as relay_module
from codeswitch.services.relay.registry import ConnectionRegistry


class FlakySocket:
    """Accepts, delivers queued frames, then fails every send."""

    def __init__(self, frames: list[dict[str, Any]], send_error: Exception | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.accepted = False
        self.sent: list[str] = []
        self.send_failed = asyncio.Event()
        self._frames = list(frames)
        self._send_error = send_error

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000) -> None:
        pass

    async def receive(self) -> dict[str, Any]:
        if self._frames:
            return self._frames.pop(0)
        await self.send_failed.wait()
        await asyncio.sleep(0.05)
        return {"type": "websocket.disconnect", "code": 1006}

    async def send_text(self, data: str) -> None:
        if self._send_error is not None:
            self.send_failed.set()
            raise self._send_error
        self.sent.append(data)
        self.send_failed.set()


def _text_frame(payload: dict[str, Any]) -> dict[str, Any]:
    return {"type": "websocket.receive", "text": json.dumps(payload)}


@pytest.mark.asyncio
class TestRelayWebSocketHandler:
    async def test_send_failure_is_logged_not_leaked(
        self, monkeypatch, test_settings, fallback_capabilities
    ) -> None:
        logger = MagicMock()
        monkeypatch.setattr(relay_module, "logger", logger)
        socket = FlakySocket(
            [_text_frame({"event": "sendText", "data": "hola", "seq": 1})],
            send_error=OSError("client disconnected"),
        )
        registry = ConnectionRegistry()

        await relay_module.relay_websocket(socket, fallback_capabilities, registry, test_settings)

        dropped = [
            call for call in logger.warning.call_args_list if call.args[0] == "relay_emission_dropped"
        ]
        assert len(dropped) == 1
        assert dropped[0].kwargs["error"] == "client disconnected"
        assert dropped[0].kwargs["event"] == "sendText"
        assert registry.count == 0

    async def test_emissions_reach_socket(self, test_settings, fallback_capabilities) -> None:
        socket = FlakySocket([_text_frame({"event": "detectLanguages", "data": {"text": "hi"}, "seq": 3})])
        registry = ConnectionRegistry()

        await relay_module.relay_websocket(socket, fallback_capabilities, registry, test_settings)

        assert socket.accepted
        assert [json.loads(raw) for raw in socket.sent] == [
            {"event": "languageDetected", "data": {"taggedText": "[[EN]]hi"}, "seq": 3}
        ]
        assert registry.count == 0
