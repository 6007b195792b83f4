from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from endless_novel.storage.types import InsertResult, UserRow
from endless_novel.storage.users.base import User


def _to_row(user: User) -> UserRow:
    return UserRow(
        id=str(user.id),
        name=user.name,
        username=user.username,
        email=user.email,
        bio=user.bio,
        gems=int(user.gems),
        notification_emails=bool(user.notification_emails),
        marketing_emails=bool(user.marketing_emails),
        profile_visibility=user.profile_visibility,
        member_since=user.created_at,
    )


async def create_user(
    session: AsyncSession,
    *,
    user_id: str,
    name: str,
    username: str,
    email: str,
    gems: int,
    profile_visibility: str = "public",
) -> InsertResult:
    session.add(
        User(
            id=user_id,
            name=name,
            username=username,
            email=email,
            gems=gems,
            notification_emails=True,
            marketing_emails=False,
            profile_visibility=profile_visibility,
        )
    )
    await session.flush()
    return InsertResult(id=user_id, inserted=True)


async def get_user(session: AsyncSession, user_id: str) -> UserRow | None:
    result = await session.execute(select(User).where(User.id == user_id).execution_options(populate_existing=True))
    user = result.scalar_one_or_none()
    return _to_row(user) if user is not None else None


async def get_user_by_username(session: AsyncSession, username: str) -> UserRow | None:
    result = await session.execute(select(User).where(User.username == username).execution_options(populate_existing=True))
    user = result.scalar_one_or_none()
    return _to_row(user) if user is not None else None


async def get_gems(session: AsyncSession, user_id: str) -> int | None:
    result = await session.execute(select(User.gems).where(User.id == user_id))
    gems = result.scalar_one_or_none()
    return None if gems is None else int(gems)


async def add_gems(session: AsyncSession, user_id: str, amount: int) -> int | None:
    """Add ``amount`` (may be negative) to the balance in one statement.

    Returns the new balance, or None when the user does not exist or the
    result would go below zero.
    """
    result = await session.execute(
        update(User)
        .where(User.id == user_id, User.gems + amount >= 0)
        .values(gems=User.gems + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return await get_gems(session, user_id)


async def update_profile(session: AsyncSession, user_id: str, values: dict[str, Any]) -> UserRow | None:
    if values:
        await session.execute(
            update(User).where(User.id == user_id).values(**values).execution_options(synchronize_session=False)
        )
    return await get_user(session, user_id)
