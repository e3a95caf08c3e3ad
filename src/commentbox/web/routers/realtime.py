"""WebSocket stream of comment events.

Connect with: ws://host/ws

Messages received:
- {"event": "comment:created" | "comment:updated" | "comment:deleted"
  | "comment:liked" | "comment:disliked", "data": {...}}
- {"type": "pong"} in answer to a ping

Messages you can send:
- {"type": "ping"}
"""

from typing import cast

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from commentbox.core.modules.realtime.notifier import WebSocketNotifier

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def comments_websocket(websocket: WebSocket) -> None:
    notifier = cast(WebSocketNotifier, websocket.app.state.notifier)
    await notifier.connect(websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    except ValueError as e:
        # Client sent something that is not JSON
        logger.warning("websocket_bad_message", error=str(e))
    finally:
        notifier.disconnect(websocket)
