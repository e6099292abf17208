"""Conversation WebSocket: pushes message.new / message.updated events to both participants."""
import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.domain.messaging.keying import conversation_key
from app.infra.db import base
from app.infra.db.repositories.user_repo import UserRepositoryImpl
from app.infra.realtime.conversation_ws_manager import conversation_ws_manager
from app.infra.security.jwt import decode_token
from app.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_user_id_from_token(token: str) -> str | None:
    """Extract user ID from a WebSocket access token."""
    payload = decode_token(token)
    if not payload:
        logger.warning("[WS] Token decode failed - invalid token or expired")
        return None
    if payload.get("type") != "access":
        logger.warning("[WS] Token type mismatch: expected 'access', got %r", payload.get("type"))
        return None
    return payload.get("sub")


@router.websocket("/ws/{partner_id}")
async def conversation_websocket(
    websocket: WebSocket,
    partner_id: str,
    token: str | None = None,
):
    """Live updates for the conversation between the token's user and partner_id."""
    if not token:
        token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return

    user_id = get_user_id_from_token(token)
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return

    # WebSocket routes cannot use Depends(get_db); open a short-lived session
    async with base.AsyncSessionLocal() as db:
        user_repo = UserRepositoryImpl(db)
        user = await user_repo.get_by_id(user_id)
        partner = await user_repo.get_by_id(partner_id)
    if not user or not user.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return
    if not partner or partner_id == user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unknown conversation partner")
        return

    key = conversation_key(user_id, partner_id)
    await conversation_ws_manager.connect(key, user_id, websocket)
    logger.info("[WS] User %s joined conversation %s", user_id, key)

    try:
        await websocket.send_json({"type": "connection.established", "conversation_key": key})
        interval = settings.websocket_heartbeat_interval
        idle = 0
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=interval)
            except asyncio.TimeoutError:
                idle += interval
                if idle >= settings.websocket_timeout:
                    logger.info("[WS] Closing idle connection %s for user %s", key, user_id)
                    await websocket.close(code=status.WS_1000_NORMAL_CLOSURE, reason="Idle timeout")
                    break
                await websocket.send_json({"type": "heartbeat"})
                continue
            idle = 0
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except (RuntimeError, ConnectionError) as e:
        logger.warning("[WS] Connection error on %s: %s", key, e)
    finally:
        await conversation_ws_manager.disconnect(key, user_id, websocket)
        logger.info("[WS] User %s left conversation %s", user_id, key)
