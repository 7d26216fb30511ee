"""Pydantic schemas for account and password recovery endpoints.

Covers civil and police registration and login, the three-step password
reset (forgot, verify, reset) and the session introspection response.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# -----------------------------------------------------------------------------
# Civil accounts
# -----------------------------------------------------------------------------


class CivilRegisterRequest(BaseModel):
    """Request schema for citizen registration."""

    id_passaporte: str = Field(..., min_length=1, max_length=50, description="In-game passport")
    nome_completo: str = Field(..., min_length=1, max_length=150, description="Full name")
    telefone_rp: str | None = Field(None, max_length=30, description="In-game phone")
    gmail: EmailStr = Field(..., description="Account email")
    senha: str = Field(..., min_length=1, max_length=128, description="Password")

    model_config = ConfigDict(extra="forbid")


class CivilLoginRequest(BaseModel):
    """Request schema for citizen login."""

    id_passaporte: str = Field(..., min_length=1, description="In-game passport")
    senha: str = Field(..., min_length=1, description="Password")

    model_config = ConfigDict(extra="forbid")


# -----------------------------------------------------------------------------
# Police accounts
# -----------------------------------------------------------------------------


class PolicialRegisterRequest(BaseModel):
    """Request schema for police registration through a registration token."""

    nome_completo: str = Field(..., min_length=1, max_length=150, description="Full name")
    passaporte: str = Field(..., min_length=1, max_length=50, description="In-game passport")
    discord_id: str = Field(..., min_length=1, max_length=50, description="Discord user id")
    telefone_rp: str | None = Field(None, max_length=30, description="In-game phone")
    gmail: EmailStr = Field(..., description="Account email")
    senha: str = Field(..., min_length=1, max_length=128, description="Password")
    registration_token: str = Field(..., min_length=1, description="Registration token from RH")

    model_config = ConfigDict(extra="forbid")


class PolicialLoginRequest(BaseModel):
    """Request schema for police login.

    The reCAPTCHA token is accepted for client compatibility but not
    verified by this service.
    """

    passaporte: str = Field(..., min_length=1, description="In-game passport")
    senha: str = Field(..., min_length=1, description="Password")
    recaptcha_token: str | None = Field(None, alias="recaptchaToken")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


# -----------------------------------------------------------------------------
# Password recovery
# -----------------------------------------------------------------------------


class ForgotPasswordRequest(BaseModel):
    """Step 1: request a recovery code for an email."""

    email: EmailStr = Field(..., description="Account email")

    model_config = ConfigDict(extra="forbid")


class VerifyCodeRequest(BaseModel):
    """Step 2: exchange the emailed code for a reset token."""

    email: EmailStr = Field(..., description="Account email")
    code: str = Field(..., min_length=1, max_length=12, description="Recovery code")

    model_config = ConfigDict(extra="forbid")


class VerifyCodeResponse(BaseModel):
    """Reset token issued after a successful code verification."""

    reset_token: str = Field(..., serialization_alias="resetToken")
    message: str

    model_config = ConfigDict(populate_by_name=True)


class ResetPasswordRequest(BaseModel):
    """Step 3: set a new password with the reset token."""

    reset_token: str = Field(..., alias="resetToken", min_length=1)
    new_password: str = Field(..., alias="newPassword", max_length=128)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class MessageResponse(BaseModel):
    """Generic acknowledgement."""

    message: str
    data: dict[str, Any] | None = None
