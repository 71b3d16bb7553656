"""WebSocket transport: one JSON-RPC request per inbound frame."""

from __future__ import annotations

import logging

from starlette.websockets import WebSocket, WebSocketDisconnect

from k8s_pod_mcp.dispatcher import Dispatcher
from k8s_pod_mcp.protocol import decode, encode, internal_error

logger = logging.getLogger(__name__)


async def handle_connection(websocket: WebSocket, dispatcher: Dispatcher) -> None:
    """Serve one connection until the client disconnects.

    Malformed frames get an error frame back; the connection stays open.
    """
    await websocket.accept()
    logger.info("WebSocket client connected")
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""

            try:
                response = await dispatcher.dispatch(decode(raw))
            except ValueError as exc:
                logger.error("WebSocket error: %s", exc)
                response = internal_error(None, str(exc))
            except Exception as exc:  # noqa: BLE001
                logger.exception("WebSocket error")
                response = internal_error(None, str(exc))

            if response is not None:
                await websocket.send_text(encode(response))
    except WebSocketDisconnect:
        pass
    finally:
        logger.info("WebSocket client disconnected")
