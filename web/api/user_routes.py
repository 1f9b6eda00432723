"""User API routes: own profile, admin user listing."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from accounts.models import User
from accounts.service import AuthService
from web.auth import get_auth_service, require_admin_user, require_user

router = APIRouter(prefix="/users", tags=["users"])


class UserResponse(BaseModel):
    id: int
    pseudo: str
    email: str
    role: str
    verified: bool
    created_at: Optional[datetime] = None


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        pseudo=user.pseudo,
        email=user.email,
        role=user.role,
        verified=user.verified,
        created_at=user.created_at,
    )


@router.get("/me")
async def get_me(user: User = Depends(require_user)):
    """Get current authenticated user."""
    return {"status": "success", "data": {"user": _user_response(user).model_dump(mode="json")}}


@router.get("")
async def list_users(
    admin: User = Depends(require_admin_user),
    auth: AuthService = Depends(get_auth_service),
):
    """List all users (admin only)."""
    users = await auth.users.list_users()
    return {"status": "success", "data": {"users": [_user_response(u).model_dump(mode="json") for u in users]}}
