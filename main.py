"""
VitalTrack API entry point.

    uvicorn main:app

The lifespan creates the tables and the provider clients, and starts the
medication reminder loop in this process. Each uvicorn worker runs its own
lifespan, so with ``--workers N`` every reminder would be texted N times.
For more than one worker, set ``REMINDER_LOOP_ENABLED=false`` for the API
and run the loop once, on its own:

    REMINDER_LOOP_ENABLED=false uvicorn main:app --workers 4
    python -m workers.reminders

A loop-enabled start with ``WEB_CONCURRENCY`` above 1 logs a warning.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from core.chat import ChatHub
from core.errors import AnalysisError, NotFoundError, Unauthorized, ValidationError
from services.db import init_models
from services.gemini import GeminiVision
from services.google_fit import GoogleFitClient
from workers.reminders import ReminderLoop, build_dispatcher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
_LOG = logging.getLogger("vitaltrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()

    try:
        app.state.vision = GeminiVision.from_settings()
    except RuntimeError as exc:
        _LOG.warning("food analysis disabled: %s", exc)

    app.state.google_fit = GoogleFitClient()

    reminder_loop = None
    if settings.reminder_loop_enabled:
        if settings.web_concurrency > 1:
            _LOG.warning(
                "reminder loop enabled with several workers: each one sends every SMS; "
                "set REMINDER_LOOP_ENABLED=false and run python -m workers.reminders"
            )
        try:
            reminder_loop = ReminderLoop(
                build_dispatcher(), catch_up_minutes=settings.reminder_catch_up_minutes
            )
        except RuntimeError as exc:
            _LOG.warning("reminder SMS loop disabled: %s", exc)
        else:
            reminder_loop.start()

    yield

    if reminder_loop is not None:
        await reminder_loop.stop()
    await app.state.google_fit.aclose()
    app.state.google_fit = None


app = FastAPI(title="VitalTrack API", version="1.0.0", lifespan=lifespan)
app.state.vision = None
app.state.google_fit = None
app.state.chat_hub = ChatHub()

# CORS (public demo only – lock down in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ───────── core errors → HTTP ─────────
@app.exception_handler(ValidationError)
async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"success": False, "message": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "message": str(exc)})


@app.exception_handler(AnalysisError)
async def _analysis_failed(_: Request, exc: AnalysisError) -> JSONResponse:
    _LOG.error("Analysis Error: %s", exc)
    # provider details stay in the log
    return JSONResponse(status_code=502, content={"success": False, "error": "Analysis failed."})


@app.exception_handler(Unauthorized)
async def _unauthorized(_: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(status_code=401, content={"success": False, "message": str(exc)})


app.include_router(api_router, prefix="/api/v1")


@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.env_name}
