"""WebSocket endpoint for the session relay.

Each inbound frame is handled in its own task so a slow translation never
blocks the next keystroke batch or a language-detection request on the same
connection. Sends are serialised per connection. On disconnect in-flight
work is cancelled and its results are dropped.
"""

import asyncio
import contextlib

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from codeswitch.api.deps import (
    get_ws_capabilities,
    get_ws_registry,
    get_ws_settings,
    origin_allowed,
)
from codeswitch.core.config import Settings
from codeswitch.services.capabilities import Capabilities
from codeswitch.services.relay.registry import ConnectionRegistry
from codeswitch.services.relay.session import (
    ClientEvent,
    Emission,
    InboundEvent,
    ServerEvent,
    SessionRelay,
    parse_frame,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["relay"])


@router.websocket("/ws")
async def relay_websocket(
    websocket: WebSocket,
    capabilities: Capabilities = Depends(get_ws_capabilities),
    registry: ConnectionRegistry = Depends(get_ws_registry),
    app_settings: Settings = Depends(get_ws_settings),
) -> None:
    origin = websocket.headers.get("origin")
    if not origin_allowed(origin, app_settings.allowed_origins):
        logger.warning("relay_origin_rejected", origin=origin)
        await websocket.close(code=1008)
        return

    await websocket.accept()
    connection_id = await registry.register()
    relay = SessionRelay(capabilities.pipeline, capabilities.transcriber, connection_id)
    send_lock = asyncio.Lock()
    tasks: set[asyncio.Task] = set()
    logger.info("relay_connected", connection_id=connection_id, connections=registry.count)

    async def send(emission: Emission) -> None:
        async with send_lock:
            await websocket.send_text(emission.to_json())

    async def run(event: InboundEvent) -> None:
        try:
            async with contextlib.aclosing(relay.handle(event)) as emissions:
                async for emission in emissions:
                    await send(emission)
        except Exception as e:
            # Usually the client went away mid-request; the result has nowhere to go.
            logger.warning(
                "relay_emission_dropped",
                connection_id=connection_id,
                event=event.name,
                error=str(e),
            )

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                event = InboundEvent(name=ClientEvent.AUDIO.value, data=message["bytes"])
            elif message.get("text") is not None:
                try:
                    event = parse_frame(message["text"])
                except ValueError as e:
                    logger.warning("relay_malformed_frame", connection_id=connection_id, error=str(e))
                    await send(Emission(ServerEvent.ERROR, str(e)))
                    continue
            else:
                continue

            task = asyncio.create_task(run(event))
            tasks.add(task)
            task.add_done_callback(tasks.discard)
    except WebSocketDisconnect:
        pass
    finally:
        if relay.in_flight:
            logger.info(
                "relay_requests_abandoned",
                connection_id=connection_id,
                in_flight=relay.in_flight,
                phase=relay.phase.value,
            )
        pending = list(tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await registry.unregister(connection_id)
        logger.info("relay_disconnected", connection_id=connection_id, connections=registry.count)
