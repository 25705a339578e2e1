"""
Viewer WebSocket feeds
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.metrics import WEBSOCKET_CONNECTIONS
from app.services.broadcaster import ALL_MATCHES_TOPIC, match_topic

logger = logging.getLogger(__name__)
router = APIRouter()

# Policy close code sent to a viewer dropped for falling behind
SLOW_CONSUMER_CLOSE_CODE = 1013


@router.websocket("/ws/matches")
async def all_matches_feed(websocket: WebSocket):
    """Every update for every match"""
    await _stream(websocket, ALL_MATCHES_TOPIC)


@router.websocket("/ws/matches/{match_id}")
async def match_feed(websocket: WebSocket, match_id: str):
    """Updates for one scoreboard"""
    await _stream(websocket, match_topic(match_id))


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


async def _stream(websocket: WebSocket, topic: str) -> None:
    broadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    subscription = broadcaster.subscribe(topic)
    WEBSOCKET_CONNECTIONS.inc()
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await websocket.send_json({"event": "subscribed", "topic": topic})
        while True:
            next_message = asyncio.create_task(subscription.get())
            done, _ = await asyncio.wait(
                {next_message, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnected in done:
                next_message.cancel()
                break
            message = next_message.result()
            if message is None:
                logger.info(f"Closing slow viewer on {topic}")
                await websocket.close(code=SLOW_CONSUMER_CLOSE_CODE)
                break
            await websocket.send_json(message)
    except WebSocketDisconnect:
        pass
    finally:
        disconnected.cancel()
        broadcaster.unsubscribe(subscription)
        WEBSOCKET_CONNECTIONS.dec()
        logger.debug(f"Viewer left {topic}")
