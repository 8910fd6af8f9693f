from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from invisible_body.api.services.engine import PerformanceEngine
from invisible_body.api.services.state import get_engine

router = APIRouter()

logger = logging.getLogger(__name__)


def _is_closed_send_error(exc: BaseException) -> bool:
    # Uvicorn raises this when an ASGI websocket.send happens after close.
    if not isinstance(exc, RuntimeError):
        return False
    msg = str(exc)
    return "Unexpected ASGI message 'websocket.send'" in msg or "response already completed" in msg


@router.get("/stream/video")
async def stream_video():
    """MJPEG stream of the projected overlay."""

    async def generator():
        engine: PerformanceEngine = await asyncio.to_thread(get_engine)
        async for chunk in engine.mjpeg_generator():
            yield chunk

    return StreamingResponse(
        generator(),
        media_type="multipart/x-mixed-replace; boundary=frame",
        headers={
            "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
            "Pragma": "no-cache",
            # Helps avoid proxy buffering (e.g., nginx) in front of the stream.
            "X-Accel-Buffering": "no",
        },
    )


@router.websocket("/stream/state")
async def stream_state(ws: WebSocket):
    """Push phase/action changes (with label stats) to connected clients."""

    await ws.accept()
    engine: PerformanceEngine = await asyncio.to_thread(get_engine)
    try:
        async for payload in engine.state_stream():
            try:
                await ws.send_json(payload)
            except Exception as e:
                if _is_closed_send_error(e) or isinstance(e, WebSocketDisconnect):
                    return
                raise
    except WebSocketDisconnect:
        return
    except Exception:
        logger.exception("State websocket crashed")
        try:
            await ws.close(code=1011)
        except Exception:
            pass
        return
