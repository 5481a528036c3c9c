from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SignupIn(BaseModel):
    email: str = Field(..., min_length=3, examples=["asha@example.com"])
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    phone: str = Field(..., examples=["98765 43210"])


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    phone: str | None = None

    model_config = ConfigDict(from_attributes=True)
