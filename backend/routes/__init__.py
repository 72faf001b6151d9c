"""
HTTP and WebSocket routes, one module per area.
"""

from __future__ import annotations

from fastapi import APIRouter

from backend.routes import chat, children, health, realtime, styles, users, videos

router = APIRouter()
router.include_router(health.router, tags=["health"])
router.include_router(users.router, tags=["users"])
router.include_router(children.router, prefix="/add-child", tags=["children"])
router.include_router(chat.router, prefix="/chat", tags=["chat"])
router.include_router(styles.router, prefix="/styles", tags=["styles"])
router.include_router(videos.router, prefix="/videos", tags=["videos"])
router.include_router(realtime.router, tags=["realtime"])
