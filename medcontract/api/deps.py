import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medcontract.common.exceptions import (
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
)
from medcontract.common.security import decode_token
from medcontract.db.models.user import User
from medcontract.db.session import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user(
    authorization: str | None = Header(None, description="Bearer <token>"),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization:
        raise NotAuthenticatedError()
    if not authorization.startswith("Bearer "):
        raise NotAuthenticatedError("Invalid authorization header format")

    token = authorization[len("Bearer "):]
    try:
        payload = decode_token(token)
    except ValueError:
        raise NotAuthenticatedError("Invalid or expired token")

    if payload.get("type") != "access":
        raise NotAuthenticatedError("Invalid token type")

    user_id = payload.get("sub")
    try:
        user_uuid = uuid.UUID(user_id)
    except (TypeError, ValueError):
        raise NotAuthenticatedError("Invalid token payload")

    result = await db.execute(
        select(User).where(User.id == user_uuid, User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()

    if not user:
        raise NotFoundError("User")
    if not user.is_active:
        raise PermissionDeniedError("User account is inactive")

    return user
