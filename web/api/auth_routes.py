"""Auth API routes: register, verify, login, logout, password reset."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from accounts.models import User
from accounts.outcomes import AuthErrorCode, AuthFailure, AuthOutcome
from accounts.service import AuthService
from config import Settings
from web.auth import (
    clear_session_cookies,
    get_auth_service,
    get_current_user,
    get_settings,
    set_session_cookies,
)

router = APIRouter(prefix="/auth", tags=["auth"])

STATUS_BY_CODE = {
    AuthErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorCode.INVALID_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.NOT_VERIFIED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.EMAIL_DELIVERY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthErrorCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
}


class RegisterRequest(BaseModel):
    pseudo: str = Field(min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=8, max_length=128)
    password_confirm: str = Field(alias="passwordConfirm")


def outcome_response(
    outcome: AuthOutcome,
    *,
    success_status: int = status.HTTP_200_OK,
    overrides: Optional[dict[AuthErrorCode, int]] = None,
) -> JSONResponse:
    """Render an AuthOutcome. Failures map through STATUS_BY_CODE, with per-route overrides."""
    if isinstance(outcome, AuthFailure):
        code = (overrides or {}).get(outcome.code, STATUS_BY_CODE[outcome.code])
        return JSONResponse(
            status_code=code,
            content={"status": "error" if code >= 500 else "fail", "message": outcome.message},
        )
    content = {"status": "success"}
    if outcome.message:
        content["message"] = outcome.message
    if outcome.access_token:
        content["access_token"] = outcome.access_token
    return JSONResponse(status_code=success_status, content=content)


def _login_response(outcome: AuthOutcome, settings: Settings, overrides: Optional[dict] = None) -> JSONResponse:
    response = outcome_response(outcome, overrides=overrides)
    if outcome.ok and outcome.access_token:
        set_session_cookies(response, outcome.access_token, settings)
    return response


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create an unverified account and email a verification link."""
    outcome = await auth.register(body.pseudo, body.email, body.password)
    return outcome_response(outcome, success_status=status.HTTP_201_CREATED)


@router.get("/verify/{verification_code}")
async def verify_email(verification_code: str, auth: AuthService = Depends(get_auth_service)):
    """Consume a verification code from an emailed link."""
    return outcome_response(await auth.verify_email(verification_code))


@router.post("/verify/resend")
async def resend_verification(body: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    """Email a fresh verification link to an unverified account."""
    return outcome_response(await auth.resend_verification(body.email))


@router.post("/login")
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Authenticate, return the access token and set session cookies."""
    return _login_response(await auth.login(body.email, body.password), settings)


@router.post("/admin/login")
async def admin_login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Login restricted to admin accounts."""
    outcome = await auth.admin_login(body.email, body.password)
    return _login_response(outcome, settings, overrides={AuthErrorCode.FORBIDDEN: status.HTTP_401_UNAUTHORIZED})


@router.post("/logout")
async def logout(
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Clear session cookies. The token itself stays valid until it expires."""
    response = outcome_response(auth.logout())
    clear_session_cookies(response, settings)
    return response


@router.post("/forgotpassword")
async def forgot_password(body: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    """Email a password reset link valid for 10 minutes."""
    return outcome_response(await auth.forgot_password(body.email))


@router.patch("/resetpassword/{reset_token}")
async def reset_password(
    reset_token: str,
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Set a new password with a reset token, then log the client out."""
    outcome = await auth.reset_password(reset_token, body.password, body.password_confirm)
    response = outcome_response(outcome, overrides={AuthErrorCode.INVALID_TOKEN: status.HTTP_403_FORBIDDEN})
    if outcome.ok and outcome.clear_session:
        clear_session_cookies(response, settings)
    return response


@router.get("/session")
async def get_session(user: Optional[User] = Depends(get_current_user)):
    """Whether the caller is logged in, and as whom. For frontend auth checks."""
    if not user:
        return {"status": "success", "data": {"isConnect": False, "informations": None}}
    return {
        "status": "success",
        "data": {
            "isConnect": True,
            "informations": {"role": user.role, "username": user.pseudo, "email": user.email},
        },
    }
