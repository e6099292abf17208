"""Messaging and skill exchange API routes."""
from fastapi import APIRouter

from app.api.messages import routes_messages, routes_ws

router = APIRouter()

router.include_router(routes_messages.router, prefix="/messages", tags=["messages"])
router.include_router(routes_ws.router, prefix="/messages", tags=["websocket"])
