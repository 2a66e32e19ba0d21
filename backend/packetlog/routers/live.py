from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..deps import get_hub
from ..hub import LiveBroadcastHub

router = APIRouter(tags=["live"])


@router.websocket("/ws")
async def live_feed(ws: WebSocket, hub: LiveBroadcastHub = Depends(get_hub)):
    await ws.accept()
    await hub.register(ws)
    try:
        # clients send nothing meaningful; reading only detects the disconnect
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unregister(ws)
