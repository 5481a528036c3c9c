from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_user
from api.v1.schemas import LoginIn, SignupIn, UserOut
from core.ledger import blank_ledger, today_str
from services.auth import COOKIE_NAME, check_password, create_token, hash_password
from services.db import User, get_session

router = APIRouter()
_LOG = logging.getLogger(__name__)


def _issue_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        COOKIE_NAME,
        create_token(user.id, user.email),
        httponly=True,
        samesite="lax",
    )


# ───────────────────────── signup ──────────────────────────
@router.post(
    "/signup",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
)
async def signup(
    body: SignupIn,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> UserOut:
    existing = (
        await db.execute(select(User).where(User.email == body.email))
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(
        email=body.email,
        password_hash=hash_password(body.password),
        name=body.name,
        phone=body.phone,
        **blank_ledger(today_str()),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    _LOG.info("new account %s (%s)", user.id, user.email)

    _issue_cookie(response, user)
    return UserOut.model_validate(user, from_attributes=True)


# ───────────────────────── login / logout ──────────────────
@router.post("/login", response_model=UserOut)
async def login(
    body: LoginIn,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> UserOut:
    user = (
        await db.execute(select(User).where(User.email == body.email))
    ).scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="No user found")
    if not check_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid password")

    _issue_cookie(response, user)
    return UserOut.model_validate(user, from_attributes=True)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout() -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(COOKIE_NAME)
    return response


# ───────────────────────── profile ─────────────────────────
@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(current_user)) -> UserOut:
    return UserOut.model_validate(user, from_attributes=True)
