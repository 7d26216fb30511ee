"""Citizen account and password recovery router.

Endpoints:
- POST /auth/register: citizen registration
- POST /auth/login: citizen login
- POST /auth/forgot-password: step 1, issue a recovery code
- POST /auth/verify-code: step 2, exchange the code for a reset token
- POST /auth/reset-password: step 3, set the new password
- GET  /auth/me: the current session context

Recovery failures are answered with 400, never 401/403, so a client
does not treat a bad code or reset token as the end of its session.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from sgprp.api.middleware.auth import (
    AppSettings,
    CurrentSession,
    DbSession,
    get_code_sender,
)
from sgprp.api.schemas.auth import (
    CivilLoginRequest,
    CivilRegisterRequest,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from sgprp.services.accounts import AccountService
from sgprp.services.recovery import CodeSender, RecoveryService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)

CodeSenderDep = Annotated[CodeSender, Depends(get_code_sender)]


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def register(body: CivilRegisterRequest, db: DbSession, settings: AppSettings) -> MessageResponse:
    """Create a citizen account. Duplicate passport or email gives 409."""
    service = AccountService.from_settings(db, settings)
    civil = await service.register_civil(
        id_passaporte=body.id_passaporte,
        nome_completo=body.nome_completo,
        gmail=str(body.gmail),
        senha=body.senha,
        telefone_rp=body.telefone_rp,
    )
    return MessageResponse(message="Registration successful", data={"id": civil.id})


@router.post("/login")
async def login(body: CivilLoginRequest, db: DbSession, settings: AppSettings) -> dict[str, Any]:
    """Authenticate a citizen and issue a bearer token."""
    service = AccountService.from_settings(db, settings)
    result = await service.login_civil(body.id_passaporte, body.senha)
    return {
        "message": "Login successful",
        "token": result.token.token,
        "expires_at": result.token.expires_at.isoformat(),
        "usuario": result.account,
    }


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: DbSession,
    settings: AppSettings,
    code_sender: CodeSenderDep,
) -> MessageResponse:
    """Issue a recovery code. Any previous code for the email stops working."""
    service = RecoveryService.from_settings(db, settings, code_sender=code_sender)
    await service.request_code(str(body.email))
    return MessageResponse(message="A recovery code was sent to your email")


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code(
    body: VerifyCodeRequest, db: DbSession, settings: AppSettings
) -> VerifyCodeResponse:
    """Verify the recovery code and return a single-use reset token."""
    service = RecoveryService.from_settings(db, settings)
    issued = await service.verify_code(str(body.email), body.code)
    return VerifyCodeResponse(reset_token=issued.token, message="Code verified")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest, db: DbSession, settings: AppSettings
) -> MessageResponse:
    """Set a new password for every account bound to the token's email."""
    service = RecoveryService.from_settings(db, settings)
    await service.reset_password(body.reset_token, body.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get("/me")
async def me(ctx: CurrentSession) -> dict[str, Any]:
    """Return the resolved session context of the bearer token."""
    return ctx.to_dict()
