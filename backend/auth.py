"""
Firebase ID token authentication for HTTP routes and the realtime socket.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header
from firebase_admin import auth as firebase_auth

from backend.config import Settings, get_settings
from backend.errors import ApiError
from backend.firebase import get_firebase_app
from shared.types import AuthUser

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    authorization = authorization.strip()
    if not authorization.lower().startswith("bearer "):
        return ""
    return authorization[7:].strip()


def verify_token(token: str, settings: Settings) -> AuthUser:
    """
    Decodes a Firebase ID token into the calling user.

    With AUTH_DISABLED outside production the token itself is taken as the uid.
    """
    if not token:
        raise ApiError.access_denied()

    if settings.auth_disabled and not settings.is_production:
        return AuthUser(id=token)

    try:
        decoded = firebase_auth.verify_id_token(token, app=get_firebase_app())
    except Exception as e:
        logger.warning("Firebase token verification failed: %s", e)
        raise ApiError.access_denied()

    uid = (decoded.get("uid") or "").strip()
    if not uid:
        raise ApiError.access_denied()
    return AuthUser(id=uid, email=decoded.get("email"), name=decoded.get("name"))


def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> AuthUser:
    return verify_token(extract_bearer_token(authorization), settings)
