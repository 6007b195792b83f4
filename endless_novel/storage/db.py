from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from endless_novel.storage.base import Base, import_all_models

_store: "StoreEngine | None" = None

_SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON;",
    "PRAGMA journal_mode=WAL;",
    "PRAGMA busy_timeout=5000;",
)


def build_sqlite_url(db_path: Path) -> str:
    return f"sqlite+aiosqlite:///{db_path.resolve().as_posix()}"


class StoreEngine:
    """Owns the async engine and session factory for one SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.engine: AsyncEngine = create_async_engine(build_sqlite_url(db_path), future=True)
        self.sessions = async_sessionmaker(self.engine, expire_on_commit=False)
        event.listen(self.engine.sync_engine, "connect", _apply_pragmas)

    async def create_schema(self) -> None:
        import_all_models()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()


def _apply_pragmas(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    for pragma in _SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


async def init_db_service(db_path: Path) -> StoreEngine:
    """Open the store at ``db_path`` and create missing tables; reuses an open store."""
    global _store
    if _store is not None:
        return _store

    db_path.parent.mkdir(parents=True, exist_ok=True)
    store = StoreEngine(db_path)
    await store.create_schema()
    _store = store
    logger.debug("Store opened at {}", db_path)
    return store


def get_db_service() -> StoreEngine:
    if _store is None:
        raise RuntimeError("Store is not open; call init_db_service() first")
    return _store


async def shutdown_db_service() -> None:
    global _store
    store, _store = _store, None
    if store is not None:
        await store.close()


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commit when the block finishes, roll back if it raises.

    A failed purchase or a rejected profile edit leaves no partial writes.
    """
    async with get_db_service().sessions() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.debug("Session rolled back")
            raise
