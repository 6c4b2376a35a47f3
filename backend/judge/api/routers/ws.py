import json, logging
from fastapi import APIRouter, Depends, WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from judge.api.deps import get_queue
from judge.queues.redis import event_channel
from judge.services.sessions import TERMINAL_STATUSES, get_session

router = APIRouter()
log = logging.getLogger("judge.api.ws")


@router.websocket("/runs/{session_id}/stream")
async def ws_stream(ws: WebSocket, session_id: str, r=Depends(get_queue)):
    """Send the current snapshot, then relay session events until a terminal status."""
    await ws.accept()
    channel = event_channel(session_id)
    pubsub = r.pubsub()
    # subscribe before reading the snapshot so no update falls in between
    await pubsub.subscribe(channel)
    try:
        snapshot = await get_session(r, session_id)
        if snapshot is None:
            await ws.send_json({"type": "error", "session_id": session_id, "error": "session not found"})
            return
        await ws.send_json({"type": "snapshot", **snapshot})
        if snapshot.get("status") in TERMINAL_STATUSES:
            return
        async for msg in pubsub.listen():
            if msg["type"] != "message":
                continue
            event = json.loads(msg["data"])
            await ws.send_json(event)
            if event.get("status") in TERMINAL_STATUSES:
                return
    except WebSocketDisconnect:
        log.debug("client left stream for session %s", session_id)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
        if ws.client_state == WebSocketState.CONNECTED:
            await ws.close()
