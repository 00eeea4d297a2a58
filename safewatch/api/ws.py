"""WebSocket alert feed with JWT auth."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from safewatch.core.security import decode_access_token
from safewatch.core.ws_manager import ws_manager
from safewatch.db.session import SessionLocal
from safewatch.services.auth_service import get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter()


def _authenticate_ws(token: str) -> tuple[int, str] | None:
    """Validate JWT and return (user_id, role), or None."""
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        return None
    db = SessionLocal()
    try:
        user = get_user_by_email(db, payload["sub"])
        if not user or not user.is_active:
            return None
        return user.id, user.role
    finally:
        db.close()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Live alert feed. Client connects with ?token=<jwt>.
    Server pushes: alert.created, alert.updated, alert.response, alert.emergency
    Responders get every alert; seekers only their own.
    """
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=4001, reason="Missing token")
        return

    identity = _authenticate_ws(token)
    if identity is None:
        await websocket.close(code=4003, reason="Invalid or expired token")
        return

    user_id, role = identity
    await ws_manager.connect(websocket, user_id, role)
    try:
        while True:
            data = await websocket.receive_text()
            # Heartbeat
            if data == "ping":
                await websocket.send_text('{"event":"pong"}')
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket, user_id)
