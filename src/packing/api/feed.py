"""Websocket push of per-job change notifications."""

import asyncio

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from packing.feed import get_feed

logger = structlog.get_logger(__name__)

feed_router = APIRouter(tags=["feed"])


async def _push(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        notification = await queue.get()
        await websocket.send_json(notification.to_dict())


async def _until_closed(websocket: WebSocket):
    # Clients never send anything meaningful; reading only detects the close
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@feed_router.websocket("/jobs/{job_id}/feed")
async def job_feed(websocket: WebSocket, job_id: str):
    """Stream every change notification of one job until the client leaves."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def deliver(notification):
        loop.call_soon_threadsafe(queue.put_nowait, notification)

    unsubscribe = get_feed().subscribe(job_id, deliver)
    tasks = []
    try:
        await websocket.accept()
        logger.info("feed_client_connected", job_id=job_id)
        tasks = [
            asyncio.create_task(_push(websocket, queue)),
            asyncio.create_task(_until_closed(websocket)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                raise error
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        unsubscribe()
        logger.info("feed_client_disconnected", job_id=job_id)
