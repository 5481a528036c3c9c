# services/gemini.py
from __future__ import annotations

import logging

from google import genai
from google.genai import types

from config import settings

_LOG = logging.getLogger(__name__)

# ───────────── Model Names ─────────────
VISION_MODEL = "gemini-2.5-flash"


class GeminiVision:
    """
    Thin wrapper over the Gemini client for image + prompt → text calls.

    Built once at startup and handed to whoever needs it, so tests can swap
    in a fake exposing the same ``generate`` coroutine.
    """

    def __init__(
        self,
        api_key: str,
        model: str = VISION_MODEL,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.model = model
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    @classmethod
    def from_settings(cls) -> "GeminiVision":
        if not settings.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY not set in environment")
        return cls(
            settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_seconds=settings.gemini_timeout_seconds,
        )

    # ───────────── Generation (async) ─────────────
    async def generate(
        self,
        prompt: str,
        image: bytes | None = None,
        mime_type: str | None = None,
        temperature: float = 0.2,
    ) -> str:
        """Run one multimodal completion and return the response text."""
        contents: list[str | types.Part] = [prompt]
        if image is not None:
            contents.append(
                types.Part.from_bytes(data=image, mime_type=mime_type or "image/jpeg")
            )

        resp = await self._client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(temperature=temperature),
        )
        _LOG.debug("gemini %s answered (%d chars)", self.model, len(resp.text or ""))
        return resp.text or ""
