"""Access control for the web API: token extraction, user resolution, role checks, session cookies."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from accounts.models import User
from accounts.service import AuthService
from config import Settings

ACCESS_TOKEN_COOKIE = "access_token"
LOGGED_IN_COOKIE = "logged_in"

http_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Authorization: Bearer wins; the access_token cookie is the fallback for browser flows."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    """Return current user, or None if no token was sent. Raises 401 for an invalid token or deleted user."""
    token = extract_token(request, credentials)
    if not token:
        return None
    subject = auth.tokens.verify(token)
    if subject is None:
        raise _unauthenticated("Invalid token or user doesn't exist")
    user = await auth.user_for_subject(subject)
    if not user:
        raise _unauthenticated("Invalid token or session has expired")
    request.state.user = user
    request.state.role = user.role
    return user


async def require_user(
    user: Optional[User] = Depends(get_current_user),
) -> User:
    """Require authenticated user. Raises 401 if not logged in."""
    if not user:
        raise _unauthenticated("You are not logged in")
    return user


def require_admin(user: User) -> User:
    """Require admin role. Raises 401 if insufficient."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="You are not authorized to access")
    return user


async def require_admin_user(
    user: User = Depends(require_user),
) -> User:
    """Dependency: require logged-in admin."""
    return require_admin(user)


def set_session_cookies(response: Response, token: str, settings: Settings) -> None:
    """Set the http-only access token and the script-readable logged_in flag with the same lifetime."""
    for key, value, httponly in (
        (ACCESS_TOKEN_COOKIE, token, True),
        (LOGGED_IN_COOKIE, "true", False),
    ):
        response.set_cookie(
            key=key,
            value=value,
            max_age=settings.access_token_max_age,
            expires=settings.access_token_max_age,
            httponly=httponly,
            secure=settings.is_production,
            samesite="lax",
        )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    """Expire both session cookies immediately."""
    response.delete_cookie(ACCESS_TOKEN_COOKIE, httponly=True, secure=settings.is_production, samesite="lax")
    response.delete_cookie(LOGGED_IN_COOKIE, httponly=False, secure=settings.is_production, samesite="lax")
