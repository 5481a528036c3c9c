"""
HTTP surface, run in-process against an in-memory database.
"""
from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest
import pytest_asyncio

import main
from api.v1.deps import get_analyzer, get_fit_client
from conftest import FakeVision, nutrition_json
from core.chat import save_message
from core.meal_analysis import MealAnalyzer
from main import app
from services.db import get_session
from services.google_fit import GoogleFitClient

SIGNUP = {"email": "asha@example.com", "password": "s3cret!", "name": "Asha", "phone": "98765 43210"}


@pytest.fixture
def vision():
    return FakeVision(reply=f"```json\n{json.dumps(nutrition_json())}\n```")


class FitBackend:
    """Stands in for the Google Fit REST API."""

    def __init__(self) -> None:
        self.status = 200
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json={"bucket": []})


@pytest.fixture
def fit_backend():
    return FitBackend()


@pytest_asyncio.fixture
async def client(sessions, vision, fit_backend):
    async def _session():
        async with sessions() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_analyzer] = lambda: MealAnalyzer(vision)
    fit = GoogleFitClient(http=httpx.AsyncClient(transport=httpx.MockTransport(fit_backend)))
    app.dependency_overrides[get_fit_client] = lambda: fit
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()
    await fit.aclose()


async def _signup(client, **overrides) -> dict[str, str]:
    r = await client.post("/api/v1/users/signup", json={**SIGNUP, **overrides})
    assert r.status_code == 201, r.text
    token = r.cookies["token"]
    client.cookies.clear()
    return {"Authorization": f"Bearer {token}"}


# ── accounts ─────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_signup_login_me(client):
    auth = await _signup(client)

    me = await client.get("/api/v1/users/me", headers=auth)
    assert me.status_code == 200
    assert me.json()["name"] == "Asha"
    assert me.json()["phone"] == "98765 43210"

    login = await client.post("/api/v1/users/login", json={"email": SIGNUP["email"], "password": "s3cret!"})
    assert login.status_code == 200
    assert "token" in login.cookies


@pytest.mark.asyncio
async def test_duplicate_signup_and_bad_credentials(client):
    await _signup(client)

    dup = await client.post("/api/v1/users/signup", json=SIGNUP)
    assert dup.status_code == 409

    wrong = await client.post("/api/v1/users/login", json={"email": SIGNUP["email"], "password": "nope"})
    assert wrong.status_code == 401
    unknown = await client.post("/api/v1/users/login", json={"email": "x@y.z", "password": "nope"})
    assert unknown.status_code == 401


@pytest.mark.asyncio
async def test_protected_routes_need_a_session(client):
    client.cookies.clear()
    assert (await client.get("/api/v1/users/me")).status_code == 401
    assert (await client.get("/api/v1/reminders/today")).status_code == 401
    bad = await client.get("/api/v1/nutrition", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401


# ── nutrition ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_analyze_fills_slot_and_totals(client, vision):
    auth = await _signup(client)

    r = await client.post(
        "/api/v1/nutrition/analyze",
        headers=auth,
        files={"report": ("plate.jpg", b"\xff\xd8jpeg", "image/jpeg")},
        data={"mealType": "lunch"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["success"] is True
    assert r.json()["data"]["food_name"] == "Paneer Wrap"
    assert vision.calls[0]["image"] == b"\xff\xd8jpeg"
    assert vision.calls[0]["mime_type"] == "image/jpeg"

    ledger = (await client.get("/api/v1/nutrition", headers=auth)).json()
    assert ledger["nutrition"]["calories"] == 450
    assert ledger["meals"]["lunch"] == {"name": "Paneer Wrap", "calories": 450}
    assert ledger["meals"]["dinner"] is None


@pytest.mark.asyncio
async def test_analysis_failure_is_generic(client, vision):
    auth = await _signup(client)
    vision.error = RuntimeError("quota exceeded for project 1234")

    r = await client.post("/api/v1/nutrition/analyze", headers=auth, data={"mealType": "dinner"})

    assert r.status_code == 502
    assert r.json() == {"success": False, "error": "Analysis failed."}


# ── reminders ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_reminder_crud(client):
    auth = await _signup(client)

    created = await client.post(
        "/api/v1/reminders", headers=auth, json={"medicine": "Metformin", "reminder_time": "21:00"}
    )
    assert created.status_code == 201
    rem = created.json()["reminder"]
    assert rem["status"] == "pending"
    assert rem["phone"] == "98765 43210"

    await client.post("/api/v1/reminders", headers=auth, json={"medicine": "Vit D", "reminder_time": "08:00"})
    today = (await client.get("/api/v1/reminders/today", headers=auth)).json()
    assert [r["reminder_time"] for r in today] == ["08:00", "21:00"]

    upd = await client.put(f"/api/v1/reminders/{rem['id']}", headers=auth, json={"status": "skipped"})
    assert upd.status_code == 200
    assert upd.json()["reminder"]["status"] == "skipped"
    assert upd.json()["reminder"]["medicine"] == "Metformin"

    done = await client.put(f"/api/v1/reminders/{rem['id']}/complete", headers=auth)
    assert done.json()["reminder"]["status"] == "completed"
    assert done.json()["reminder"]["completed_at"] is not None

    for _ in range(2):
        d = await client.delete(f"/api/v1/reminders/{rem['id']}", headers=auth)
        assert d.status_code == 200
        assert d.json()["success"] is True

    history = (await client.get("/api/v1/reminders/history", headers=auth)).json()
    assert [r["medicine"] for r in history] == ["Vit D"]


@pytest.mark.asyncio
async def test_reminder_not_found_and_bad_input(client):
    auth = await _signup(client)

    missing = await client.put("/api/v1/reminders/777", headers=auth, json={"medicine": "x"})
    assert missing.status_code == 404
    assert missing.json()["success"] is False

    assert (await client.put("/api/v1/reminders/777/complete", headers=auth)).status_code == 404

    bad_time = await client.post(
        "/api/v1/reminders", headers=auth, json={"medicine": "x", "reminder_time": "9am"}
    )
    assert bad_time.status_code == 422

    bad_patch = await client.put("/api/v1/reminders/777", headers=auth, json={"status": "lost"})
    assert bad_patch.status_code == 422


@pytest.mark.asyncio
async def test_reminders_are_private(client):
    owner = await _signup(client)
    other = await _signup(client, email="ravi@example.com", name="Ravi")

    rem = (await client.post(
        "/api/v1/reminders", headers=owner, json={"medicine": "Statin", "reminder_time": "22:00"}
    )).json()["reminder"]

    assert (await client.put(f"/api/v1/reminders/{rem['id']}", headers=other, json={})).status_code == 404
    assert (await client.get("/api/v1/reminders/history", headers=other)).json() == []


# ── dashboard / community ───────────────────────────────────────────
@pytest.mark.asyncio
async def test_dashboard_without_google_token(client):
    auth = await _signup(client)

    r = await client.get("/api/v1/dashboard", headers=auth)

    assert r.status_code == 200
    body = r.json()
    assert body["user"]["email"] == SIGNUP["email"]
    assert body["activity"]["is_connected"] is False
    assert body["activity"]["today_sleep"] == "--"
    assert body["ledger"]["nutrition"]["calories"] == 0
    assert "no-store" in r.headers["cache-control"]


@pytest.mark.asyncio
async def test_dashboard_with_google_token_reads_fit(client, fit_backend):
    auth = await _signup(client)

    r = await client.get("/api/v1/dashboard", headers=auth, params={"google_token": "ya29.abc"})

    assert r.status_code == 200
    activity = r.json()["activity"]
    assert activity["is_connected"] is True
    assert activity["today_sleep"] == "0h 0m"
    assert len(fit_backend.requests) == 2
    assert fit_backend.requests[0].headers["authorization"] == "Bearer ya29.abc"


@pytest.mark.asyncio
async def test_dashboard_survives_fit_outage(client, fit_backend):
    auth = await _signup(client)
    fit_backend.status = 500

    r = await client.get("/api/v1/dashboard", headers=auth, params={"google_token": "ya29.abc"})

    assert r.status_code == 200
    body = r.json()
    assert body["activity"] == {
        "dates": [],
        "steps": [],
        "today_steps": 0,
        "today_heart_rate": 0,
        "today_calories_burned": 0,
        "today_sleep": "--",
        "is_connected": True,
    }
    assert body["ledger"]["nutrition"]["calories"] == 0


@pytest.mark.asyncio
async def test_chat_keeps_messages_from_known_users_only(client, db):
    auth = await _signup(client)

    assert await save_message(db, "Asha", "Walked 10k today!", "7:45 PM") is not None
    assert await save_message(db, "Stranger", "hi", "7:46 PM") is None

    msgs = (await client.get("/api/v1/community/messages", headers=auth)).json()
    assert [(m["sender"], m["text"]) for m in msgs] == [("Asha", "Walked 10k today!")]


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.json()["status"] == "ok"


# ── lifespan ─────────────────────────────────────────────────────────
@pytest.fixture
def quiet_lifespan(monkeypatch):
    async def _no_tables():
        return None

    monkeypatch.setattr(main, "init_models", _no_tables)
    monkeypatch.setattr(main.settings, "reminder_loop_enabled", False)
    monkeypatch.setattr(main.settings, "gemini_api_key", None)


@pytest.mark.asyncio
async def test_each_lifespan_gets_its_own_fit_client(quiet_lifespan):
    seen = []
    for _ in range(2):
        async with main.lifespan(app):
            fit = app.state.google_fit
            assert isinstance(fit, GoogleFitClient)
            assert not fit._http.is_closed
            seen.append(fit)
        assert fit._http.is_closed
        assert app.state.google_fit is None

    assert seen[0] is not seen[1]


@pytest.mark.asyncio
async def test_loop_disabled_lifespan_starts_no_reminder_task(quiet_lifespan):
    async with main.lifespan(app):
        names = {t.get_name() for t in asyncio.all_tasks()}
        assert "reminder-loop" not in names


@pytest.mark.asyncio
async def test_multi_worker_start_warns_about_duplicate_sms(quiet_lifespan, monkeypatch, caplog):
    monkeypatch.setattr(main.settings, "reminder_loop_enabled", True)
    monkeypatch.setattr(main.settings, "web_concurrency", 4)
    monkeypatch.setattr(main.settings, "twilio_sid", None)

    with caplog.at_level(logging.WARNING, logger="vitaltrack"):
        async with main.lifespan(app):
            pass

    messages = [r.getMessage() for r in caplog.records]
    assert any("several workers" in m for m in messages)
    assert any("reminder SMS loop disabled" in m for m in messages)


@pytest.mark.asyncio
async def test_fit_routes_unavailable_outside_lifespan():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        r = await c.get("/api/v1/dashboard/google/authorize", follow_redirects=False)
    assert r.status_code == 503
