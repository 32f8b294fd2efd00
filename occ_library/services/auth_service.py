"""
Authentication service: password hashing and JWT verification.

Access tokens are issued by the college's identity service; this API only
verifies them. The `sub` claim carries the user id.
"""
import logging
from typing import Optional

import bcrypt
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..models.user import User
from ..config import settings
from .errors import ConflictError

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        salt = bcrypt.gensalt(rounds=12)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        try:
            return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except JWTError as e:
            logger.debug(f"Rejected token: {e}")
            return None

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Get a user by email address."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        """Get a user by ID."""
        return await db.get(User, user_id)

    @staticmethod
    async def create_user(
        db: AsyncSession,
        firstname: str,
        lastname: str,
        email: str,
        password: str,
        is_admin: bool = True,
    ) -> User:
        """
        Create a staff account.

        Raises:
            ConflictError: If the email is already registered
        """
        if await AuthService.get_user_by_email(db, email):
            raise ConflictError("User with this email already exists")

        user = User(
            firstname=firstname,
            lastname=lastname,
            email=email,
            password_hash=AuthService.hash_password(password),
            is_admin=is_admin,
        )

        db.add(user)
        await db.commit()
        await db.refresh(user)

        logger.info(f"Created user {user.id} <{email}>")
        return user


# Singleton instance
auth_service = AuthService()
