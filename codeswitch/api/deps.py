"""Shared FastAPI dependencies.

The Capabilities bundle and the ConnectionRegistry are created once during
the FastAPI lifespan and stored on app.state. Route handlers retrieve them
through these helpers, never by direct import.
"""

from fastapi import Request, WebSocket

from codeswitch.core.config import Settings
from codeswitch.services.capabilities import Capabilities
from codeswitch.services.relay.registry import ConnectionRegistry
from codeswitch.services.speech.transcriber import Transcriber


def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.capabilities.transcriber


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_ws_capabilities(websocket: WebSocket) -> Capabilities:
    return websocket.app.state.capabilities


def get_ws_registry(websocket: WebSocket) -> ConnectionRegistry:
    return websocket.app.state.registry


def get_ws_settings(websocket: WebSocket) -> Settings:
    return websocket.app.state.settings


def origin_allowed(origin: str | None, allowed_origins: list[str]) -> bool:
    """CORS does not cover WebSocket handshakes, so the relay checks Origin itself.

    Non-browser clients send no Origin header and are accepted.
    """
    if not origin or "*" in allowed_origins:
        return True
    return origin.rstrip("/") in {o.rstrip("/") for o in allowed_origins}
