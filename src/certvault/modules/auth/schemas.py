"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from certvault.modules.principals.models import Role

MIN_PASSWORD_LENGTH = 6


class RegisterRequest(BaseModel):
    """Sign-up request. The chosen role can never be changed afterwards."""

    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    role: Role
    display_name: str | None = Field(None, max_length=200)

    @field_validator("display_name")
    @classmethod
    def blank_display_name_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PrincipalResponse(BaseModel):
    """Principal as returned after sign-in."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: Role
    display_name: str | None
    created_at: datetime


class AuthResponse(TokenResponse):
    """Login/registration response: tokens, the principal and where to go next."""

    principal: PrincipalResponse
    redirect_to: str


class SessionResponse(BaseModel):
    """The principal resolved for the current token."""

    id: str
    email: str
    role: Role
    display_name: str | None
    workspace: str
    redirect_to: str | None = None
    path_allowed: bool | None = None
