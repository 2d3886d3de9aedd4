from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from geoverse.api.schemas.account import AccountSummaryResponse


class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class AuthTokenResponse(BaseModel):
    success: bool = True
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    access_expires_at: datetime
    refresh_expires_at: datetime
    is_new_user: bool
    user: AccountSummaryResponse


class AccessTokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    access_expires_at: datetime


class LogoutResponse(BaseModel):
    success: bool = True
    revoked: int
