# services/google_fit.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import httpx

from config import settings
from core.activity import ActivitySummary, summarize

_LOG = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
AGGREGATE_URL = "https://www.googleapis.com/fitness/v1/users/me/dataset:aggregate"

SCOPES = (
    "https://www.googleapis.com/auth/fitness.activity.read",
    "https://www.googleapis.com/auth/fitness.body.read",
    "https://www.googleapis.com/auth/fitness.sleep.read",
    "https://www.googleapis.com/auth/fitness.heart_rate.read",
)

_DAY_MS = 24 * 60 * 60 * 1000


class GoogleFitClient:
    def __init__(self, http: httpx.AsyncClient | None = None, timeout: float = 15.0) -> None:
        self._http = http or httpx.AsyncClient(timeout=timeout)

    @property
    def redirect_uri(self) -> str:
        return f"{settings.public_base_url.rstrip('/')}/api/v1/dashboard/google/callback"

    def authorize_url(self) -> str:
        query = urlencode(
            {
                "client_id": settings.google_client_id or "",
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": " ".join(SCOPES),
                "access_type": "offline",
            }
        )
        return f"{AUTH_URL}?{query}"

    async def exchange_code(self, code: str) -> str:
        """Authorization code → access token. HTTP errors propagate."""
        resp = await self._http.post(
            TOKEN_URL,
            json={
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
        )
        resp.raise_for_status()
        return resp.json()["access_token"]

    async def _aggregate(
        self, token: str, data_types: list[str], bucket_ms: int, start_ms: int, end_ms: int
    ) -> list[dict[str, Any]]:
        resp = await self._http.post(
            AGGREGATE_URL,
            json={
                "aggregateBy": [{"dataTypeName": t} for t in data_types],
                "bucketByTime": {"durationMillis": bucket_ms},
                "startTimeMillis": start_ms,
                "endTimeMillis": end_ms,
            },
            headers={"Authorization": f"Bearer {token}"},
        )
        resp.raise_for_status()
        return resp.json().get("bucket", [])

    async def fetch_summary(self, token: str, now: datetime | None = None) -> ActivitySummary:
        """
        Last 7 days of steps / calories / sleep plus the latest heart rate.

        Provider failures are logged and give back an empty, connected summary
        so the dashboard still renders.
        """
        now = now or datetime.now(timezone.utc)
        end_ms = int(now.timestamp() * 1000)
        try:
            history = await self._aggregate(
                token,
                ["com.google.step_count.delta", "com.google.calories.expended", "com.google.sleep.segment"],
                _DAY_MS, end_ms - 7 * _DAY_MS, end_ms,
            )
            heart = await self._aggregate(
                token, ["com.google.heart_rate.bpm"], 60_000, end_ms - _DAY_MS, end_ms,
            )
        except (httpx.HTTPError, ValueError) as exc:
            _LOG.error("Google Fit fetch error: %s", exc)
            return ActivitySummary(is_connected=True)

        return summarize(history, heart, now.astimezone(timezone.utc).date().isoformat())

    async def aclose(self) -> None:
        await self._http.aclose()
