from __future__ import annotations

from sqlalchemy import delete, select, text as sa_text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from endless_novel.storage.kv.base import KVEntry


async def get_value(session: AsyncSession, key: str) -> str | None:
    result = await session.execute(select(KVEntry.value).where(KVEntry.key == key))
    value = result.scalar_one_or_none()
    return None if value is None else str(value)


async def set_value(session: AsyncSession, key: str, value: str) -> None:
    stmt = (
        sqlite_insert(KVEntry)
        .values(key=key, value=value)
        .on_conflict_do_update(
            index_elements=[KVEntry.key],
            set_={"value": value, "updated_at": sa_text("CURRENT_TIMESTAMP")},
        )
    )
    await session.execute(stmt)


async def delete_value(session: AsyncSession, key: str) -> bool:
    result = await session.execute(delete(KVEntry).where(KVEntry.key == key))
    return result.rowcount == 1


async def list_keys(session: AsyncSession, prefix: str = "") -> list[str]:
    stmt = select(KVEntry.key).order_by(KVEntry.key)
    if prefix:
        stmt = stmt.where(KVEntry.key.startswith(prefix, autoescape=True))
    result = await session.execute(stmt)
    return [str(key) for key in result.scalars().all()]
