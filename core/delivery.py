"""
core/delivery.py
────────────────────────────────────────────────────────────────────────
One tick of the medication reminder loop.

    1. HH:MM from the wall clock
    2. every reminder set for that minute (all users, any status)
    3. recipient = reminder snapshot → owning user → default number
    4. phone → +<digits>, 10-digit numbers get the country code
    5. one SMS per reminder, sent concurrently (at most max_concurrency at a
       time, all inside tick_deadline_seconds); a failed send never stops
       the rest

Nothing is marked as sent. The loop runs each wall-clock minute once, so a
09:00 reminder goes out once every day the loop sees 09:00.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from core import reminder_store
from core.errors import DeliveryError
from services.db import Reminder, User

_LOG = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D")


class SmsSender(Protocol):
    async def send(self, to: str, body: str) -> str: ...


@dataclass
class TickReport:
    current_time: str
    matched: int = 0
    delivered: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


def normalize_phone(raw: str | int | None, country_code: str = "91") -> str | None:
    """``"98765 43210"`` → ``"+919876543210"``; None when no digits remain."""
    digits = _NON_DIGIT.sub("", str(raw or ""))
    if not digits:
        return None
    if len(digits) == 10:
        digits = f"{country_code}{digits}"
    return f"+{digits}"


def reminder_message(name: str | None, medicine: str | None) -> str:
    return (
        f"Hello {name or 'there'}, it's time to take {medicine or 'your medicine'}. "
        "Stay healthy!"
    )


class ReminderDispatcher:
    def __init__(
        self,
        sender: SmsSender,
        default_phone: str | None = None,
        country_code: str = "91",
        timeout_seconds: float = 20.0,
        max_concurrency: int = 10,
        tick_deadline_seconds: float = 45.0,
    ) -> None:
        self._sender = sender
        self.default_phone = default_phone
        self.country_code = country_code
        self.timeout_seconds = timeout_seconds
        self.max_concurrency = max_concurrency
        self.tick_deadline_seconds = tick_deadline_seconds

    # ---------------------------------------------------------------- #
    async def resolve_recipient(
        self, db: AsyncSession, reminder: Reminder
    ) -> tuple[str | None, str | None]:
        """(display name, E.164 phone) for ``reminder``; phone None means skip."""
        name, phone = reminder.name, reminder.phone

        if not name or not phone:
            owner = await db.get(User, reminder.user_id)
            if owner is not None:
                name = name or owner.name
                phone = phone or owner.phone

        if not phone:
            phone = self.default_phone

        return name, normalize_phone(phone, self.country_code)

    async def deliver(
        self, reminder: Reminder, name: str | None, phone: str, timeout: float | None = None
    ) -> str:
        body = reminder_message(name, reminder.medicine)
        timeout = self.timeout_seconds if timeout is None else timeout
        if timeout <= 0:
            raise DeliveryError(reminder.id, "tick deadline passed before sending")
        try:
            return await asyncio.wait_for(self._sender.send(phone, body), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise DeliveryError(reminder.id, f"timed out after {timeout:g}s") from exc
        except Exception as exc:
            raise DeliveryError(reminder.id, repr(exc)) from exc

    # ---------------------------------------------------------------- #
    async def run_tick(self, db: AsyncSession, now: datetime | None = None) -> TickReport:
        current_time = (now or datetime.now()).strftime("%H:%M")
        due = await reminder_store.due_at(db, current_time)
        report = TickReport(current_time=current_time, matched=len(due))

        # recipients first: the session is not shared across tasks
        outbox: list[tuple[Reminder, str | None, str]] = []
        for reminder in due:
            name, phone = await self.resolve_recipient(db, reminder)
            if phone is None:
                _LOG.info("reminder %s skipped: no phone number resolved", reminder.id)
                report.skipped.append(reminder.id)
                continue
            outbox.append((reminder, name, phone))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.tick_deadline_seconds
        limit = asyncio.Semaphore(self.max_concurrency)

        async def _send(reminder: Reminder, name: str | None, phone: str) -> str:
            async with limit:
                remaining = deadline - loop.time()
                return await self.deliver(
                    reminder, name, phone, timeout=min(self.timeout_seconds, remaining)
                )

        results = await asyncio.gather(
            *(_send(*item) for item in outbox), return_exceptions=True
        )
        for (reminder, _, phone), result in zip(outbox, results):
            if isinstance(result, DeliveryError):
                _LOG.error("SMS failed for %s", result, exc_info=result.__cause__)
                report.failed.append(reminder.id)
            elif isinstance(result, BaseException):
                raise result
            else:
                _LOG.info("reminder %s sent to %s (%s)", reminder.id, phone, result)
                report.delivered.append(reminder.id)

        if due:
            _LOG.info(
                "tick %s: %d due, %d sent, %d failed, %d skipped",
                current_time, report.matched, len(report.delivered),
                len(report.failed), len(report.skipped),
            )
        return report
