"""Community chat: message log plus an in-process broadcast hub."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.db import Message, User

_LOG = logging.getLogger(__name__)


class Socket(Protocol):
    async def send_json(self, data: Any) -> None: ...


async def save_message(db: AsyncSession, sender: str, text: str, time: str | None) -> Message | None:
    """Persist a chat line if ``sender`` is a known user's name; None otherwise."""
    user = (
        await db.execute(select(User).where(User.name == sender).limit(1))
    ).scalar_one_or_none()
    if user is None:
        return None

    msg = Message(user_id=user.id, sender=sender, text=text, time=time)
    db.add(msg)
    await db.commit()
    return msg


async def list_messages(db: AsyncSession) -> Sequence[Message]:
    res = await db.execute(select(Message).order_by(Message.created_at.asc(), Message.id.asc()))
    return res.scalars().all()


class ChatHub:
    def __init__(self) -> None:
        self._sockets: set[Socket] = set()

    def __len__(self) -> int:
        return len(self._sockets)

    def join(self, socket: Socket) -> None:
        self._sockets.add(socket)
        _LOG.info("user connected to community chat (%d online)", len(self._sockets))

    def leave(self, socket: Socket) -> None:
        self._sockets.discard(socket)
        _LOG.info("user disconnected (%d online)", len(self._sockets))

    async def broadcast(self, payload: dict[str, Any]) -> None:
        sockets = list(self._sockets)
        results = await asyncio.gather(
            *(s.send_json(payload) for s in sockets), return_exceptions=True
        )
        for socket, result in zip(sockets, results):
            if isinstance(result, Exception):
                _LOG.warning("dropping chat socket after send failure: %s", result)
                self._sockets.discard(socket)
