"""
Routes for registering and listing a parent's children.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.auth import get_current_user
from backend.db import DbClient
from backend.dependencies import get_db_client
from backend.errors import ApiError
from backend.schemas import AddChildRequest
from coach import children
from shared.types import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
def add_child(
    payload: AddChildRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    logger.info(
        "AddChild request received (user=%s, has_name=%s, has_gender=%s)",
        user.id,
        bool(payload.name),
        bool(payload.gender),
    )
    try:
        child = children.add_child(db, user, payload.model_dump())
    except children.ChildValidationError as e:
        raise ApiError.invalid_request(str(e))
    except Exception:
        logger.exception("AddChild failed for %s", user.id)
        raise ApiError.internal("AddChild failed")
    return {"success": True, "child": child}


@router.get("")
def list_children(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        items = children.list_children(db, user.id)
    except Exception:
        logger.exception("List children failed for %s", user.id)
        raise ApiError.internal("List children failed")
    logger.info("Children list loaded (user=%s, count=%d)", user.id, len(items))
    return {"success": True, "children": items}
