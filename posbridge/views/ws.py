from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from posbridge.dependencies import WsSharedSession
from posbridge.models.printer import SessionState, SessionStatusResponse


ws_router = APIRouter(tags=["websocket"])

logger = logging.getLogger(__name__)


@ws_router.websocket("/ws/printer/status")
async def printer_status_stream(websocket: WebSocket, session: WsSharedSession) -> None:
    """WebSocket endpoint streaming the shared session's state transitions.

    The current status is sent on connect, then one message per transition.
    """
    await websocket.accept()

    updates: asyncio.Queue[tuple[SessionState, Exception | None]] = asyncio.Queue()

    def on_state_change(state: SessionState, error: Exception | None) -> None:
        updates.put_nowait((state, error))

    session.add_state_listener(on_state_change)
    await websocket.send_text(session.status().model_dump_json())

    receiver = asyncio.create_task(websocket.receive_text())
    try:
        while True:
            update = asyncio.create_task(updates.get())
            done, _pending = await asyncio.wait(
                {update, receiver}, return_when=asyncio.FIRST_COMPLETED
            )
            if receiver in done:
                update.cancel()
                # Raises WebSocketDisconnect once the client goes away
                receiver.result()
                receiver = asyncio.create_task(websocket.receive_text())
                continue

            state, error = update.result()
            message = SessionStatusResponse(
                state=state,
                host=session.host,
                port=session.port,
                error=str(error) if error else None,
            )
            await websocket.send_text(message.model_dump_json())
    except WebSocketDisconnect:
        logger.debug("Printer status websocket closed")
    finally:
        receiver.cancel()
        session.remove_state_listener(on_state_change)
