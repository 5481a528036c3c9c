# api/v1/community.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_user_id, get_chat_hub
from api.v1.schemas import ChatMessageIn, MessageOut
from core.chat import ChatHub, list_messages, save_message
from services.db import get_session

router = APIRouter()
_LOG = logging.getLogger(__name__)


@router.get("/messages", response_model=list[MessageOut])
async def chat_history(
    _: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[MessageOut]:
    rows = await list_messages(db)
    return [MessageOut.model_validate(m, from_attributes=True) for m in rows]


@router.websocket("/ws")
async def chat_socket(
    ws: WebSocket,
    hub: ChatHub = Depends(get_chat_hub),
    db: AsyncSession = Depends(get_session),
) -> None:
    await ws.accept()
    hub.join(ws)
    try:
        while True:
            raw = await ws.receive_json()
            try:
                msg = ChatMessageIn.model_validate(raw)
            except PydanticValidationError:
                await ws.send_json({"error": "expected {sender, text, time}"})
                continue

            try:
                await save_message(db, msg.sender, msg.text, msg.time)
            except SQLAlchemyError:
                _LOG.exception("error saving chat message")
                await db.rollback()

            await hub.broadcast(msg.model_dump())
    except WebSocketDisconnect:
        pass
    finally:
        hub.leave(ws)
