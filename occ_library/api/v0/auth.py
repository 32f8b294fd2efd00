"""
Authentication API endpoints and dependencies.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel

from ...database import get_db
from ...models.user import User
from ...services.auth_service import auth_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v0/auth", tags=["auth"])

# Security scheme for JWT
security = HTTPBearer(auto_error=False)


class UserResponse(BaseModel):
    """Response schema for the signed-in user."""
    id: int
    firstname: str
    lastname: str
    email: str
    is_admin: bool
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# Auth Helper
# =============================================================================

async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Get current user from JWT token (optional - returns None if not authenticated)."""
    if not credentials:
        return None

    payload = auth_service.decode_token(credentials.credentials)
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    try:
        return await auth_service.get_user_by_id(db, int(user_id))
    except ValueError:
        logger.warning(f"Token carries a non-numeric subject: {user_id!r}")
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current user from JWT token (required - raises 401 if not authenticated)."""
    user = await get_current_user_optional(credentials, db)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """Profile of the user the bearer token belongs to."""
    return UserResponse.model_validate(user)
