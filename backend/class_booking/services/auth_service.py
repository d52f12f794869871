"""
Authentication service handling member registration and login.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from class_booking.models.user import User, UserRole
from class_booking.schemas.user import UserCreate, UserLogin
from class_booking.core.security import hash_password, verify_password, create_access_token
from class_booking.core.logging import get_logger

logger = get_logger(__name__)


async def ensure_email_available(db: AsyncSession, email: str, exclude_user_id: int | None = None) -> None:
    """Raises 409 if another user already has this email."""
    query = select(User.id).where(User.email == email)
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    if result.scalar_one_or_none() is not None:
        logger.warning("email_conflict", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )


async def register_user(db: AsyncSession, user_data: UserCreate, role: UserRole = UserRole.USER) -> User:
    """
    Register a new user with hashed password.
    Self-registration always creates a plain member; admins pass a role.
    """
    await ensure_email_available(db, user_data.email)

    user = User(
        email=user_data.email,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        hashed_password=hash_password(user_data.password),
        role=role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, role=user.role)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id)
    return token
