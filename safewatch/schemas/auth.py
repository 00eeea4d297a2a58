"""Auth schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=4)
    full_name: str = Field(min_length=1, max_length=255)
    role: Literal["seeker", "responder"] = "seeker"
    phone_number: str | None = Field(default=None, max_length=32)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserMe(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    phone_number: str | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
