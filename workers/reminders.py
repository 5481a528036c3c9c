#!/usr/bin/env python3
"""
Medication reminder loop: one delivery tick at the top of every minute.

Runs inside the API process (started from the FastAPI lifespan) or on its
own:
    python -m workers.reminders            # forever
    python -m workers.reminders --once     # a single tick, now
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.delivery import ReminderDispatcher, TickReport
from services.db import init_models, session_scope
from services.sms import TwilioSender

_LOG = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_MINUTE = timedelta(minutes=1)


def seconds_to_next_minute(now: datetime) -> float:
    return 60 - now.second - now.microsecond / 1_000_000


def build_dispatcher() -> ReminderDispatcher:
    return ReminderDispatcher(
        TwilioSender.from_settings(),
        default_phone=settings.reminder_fallback_phone,
        country_code=settings.sms_country_code,
        timeout_seconds=settings.sms_timeout_seconds,
        max_concurrency=settings.sms_max_concurrency,
        tick_deadline_seconds=settings.reminder_tick_deadline_seconds,
    )


class ReminderLoop:
    """
    Calls the dispatcher once per wall-clock minute.

    The last minute handled is remembered: a wake-up that lands in the same
    minute again is ignored, and minutes lost to a slow tick or a stalled
    process are replayed (at most ``catch_up_minutes`` of them, oldest
    first) so their reminders still go out, late.
    """

    def __init__(
        self,
        dispatcher: ReminderDispatcher,
        sessions: SessionFactory = session_scope,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        catch_up_minutes: int = 5,
    ) -> None:
        self._dispatcher = dispatcher
        self._sessions = sessions
        self._clock = clock
        self._sleep = sleep
        self.catch_up_minutes = catch_up_minutes
        self.last_minute: datetime | None = None
        self._task: asyncio.Task[None] | None = None

    async def tick(self, at: datetime | None = None) -> TickReport | None:
        """Run one tick; a failure (e.g. database down) is logged, never raised."""
        try:
            async with self._sessions() as db:
                return await self._dispatcher.run_tick(db, at or self._clock())
        except Exception:
            _LOG.exception("reminder tick failed – will retry next minute")
            return None

    def pending_minutes(self, now: datetime) -> list[datetime]:
        current = now.replace(second=0, microsecond=0)
        if self.last_minute is None:
            return [current]
        if current <= self.last_minute:
            return []

        missed = int((current - self.last_minute) / _MINUTE)
        if missed > self.catch_up_minutes:
            _LOG.warning(
                "reminder loop fell %d minutes behind; replaying the last %d",
                missed, self.catch_up_minutes,
            )
            missed = self.catch_up_minutes
        return [current - _MINUTE * i for i in range(missed - 1, -1, -1)]

    async def run_pending(self) -> list[TickReport]:
        """Tick every minute not yet handled, up to and including now."""
        reports: list[TickReport] = []
        for minute in self.pending_minutes(self._clock()):
            report = await self.tick(minute)
            if report is None:
                # leave it for the next wake-up
                break
            self.last_minute = minute
            reports.append(report)
        return reports

    async def run_forever(self) -> None:
        _LOG.info("reminder loop started")
        while True:
            await self._sleep(seconds_to_next_minute(self._clock()))
            await self.run_pending()

    # ───────── lifecycle (used by main.lifespan) ─────────
    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="reminder-loop")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _LOG.info("reminder loop stopped")


async def _main(once: bool) -> None:
    await init_models()
    loop = ReminderLoop(build_dispatcher(), catch_up_minutes=settings.reminder_catch_up_minutes)
    if once:
        report = await loop.tick()
        print(report)
    else:
        await loop.run_forever()


def main() -> None:
    ap = argparse.ArgumentParser(description="Medication reminder SMS loop")
    ap.add_argument("--once", action="store_true", help="run a single tick and exit")
    args = ap.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_main(args.once))


if __name__ == "__main__":
    main()
