"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.auth.jwt import verify_token
from betthat.database import get_session
from betthat.db.models import User
from betthat.users.service import get_user_profile

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated principal as asserted by the identity provider."""

    user_id: str
    email: str | None = None


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> Identity:
    """Verify the bearer token. Does not require a profile row to exist."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return Identity(user_id=str(payload["sub"]), email=payload.get("email"))


async def get_current_user(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Return the caller's profile. 401 if the profile has not been created yet."""
    user = await get_user_profile(db, identity.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User profile not found")
    return user


def ensure_same_user(user: User, claimed_user_id: str) -> None:
    """Reject requests that act on behalf of someone other than the caller."""
    if claimed_user_id != user.id:
        raise HTTPException(status_code=403, detail="userId does not match the authenticated user")
