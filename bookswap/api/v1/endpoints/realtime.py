"""WebSocket endpoints pushing match and message snapshots."""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from bookswap.core.exceptions import TokenInvalidError
from bookswap.core.security import resolve_user_id
from bookswap.services.realtime_service import (
    FeedConsumer,
    MatchFeedConsumer,
    MessageFeedConsumer,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["realtime"])


async def _authenticate(websocket: WebSocket, token: str | None) -> UUID | None:
    try:
        return resolve_user_id(token)
    except TokenInvalidError as e:
        logger.info(f"Rejected realtime connection: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return None


async def _serve(websocket: WebSocket, consumer: FeedConsumer) -> None:
    """Run `consumer` for as long as the client stays connected."""
    try:
        await consumer.start()
        while True:
            # Client frames are only used to detect disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Realtime client {consumer.user_id} disconnected")
    finally:
        await consumer.close()


@router.websocket("/matches")
async def match_feed(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """Sends the full requested/received match lists whenever one of them changes."""
    user_id = await _authenticate(websocket, token)
    if user_id is None:
        return

    await websocket.accept()
    consumer = MatchFeedConsumer(websocket.app.state.change_feed, user_id, websocket.send_json)
    await _serve(websocket, consumer)


@router.websocket("/messages")
async def message_feed(
    websocket: WebSocket,
    token: str | None = Query(None),
    partner_id: UUID | None = Query(None),
):
    """Sends the unread count, and the open conversation with `partner_id` if given."""
    user_id = await _authenticate(websocket, token)
    if user_id is None:
        return

    await websocket.accept()
    consumer = MessageFeedConsumer(
        websocket.app.state.change_feed,
        user_id,
        websocket.send_json,
        partner_id=partner_id,
    )
    await _serve(websocket, consumer)
