# services/sms.py
from __future__ import annotations

import asyncio
import logging

from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from config import settings

_LOG = logging.getLogger(__name__)


class TwilioSender:
    """Outbound SMS through Twilio's REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout_seconds: float = 20.0,
    ) -> None:
        self.from_number = from_number
        self._client = Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout_seconds),
        )

    @classmethod
    def from_settings(cls) -> "TwilioSender":
        if not (settings.twilio_sid and settings.twilio_auth_token and settings.twilio_from_number):
            raise RuntimeError(
                "Set TWILIO_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER env vars"
            )
        return cls(
            settings.twilio_sid,
            settings.twilio_auth_token,
            settings.twilio_from_number,
            timeout_seconds=settings.sms_timeout_seconds,
        )

    async def send(self, to: str, body: str) -> str:
        """Send one message and return its Twilio SID. Errors propagate."""
        # the Twilio client is blocking; keep it off the event loop
        message = await asyncio.to_thread(
            self._client.messages.create, body=body, from_=self.from_number, to=to
        )
        _LOG.debug("twilio accepted %s for %s", message.sid, to)
        return message.sid
