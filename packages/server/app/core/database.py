"""
Database connection and session management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.core.errors import ConflictError, is_unique_violation

settings = get_settings()


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let pysqlite honour BEGIN/SAVEPOINT so nested transactions work.

    The driver otherwise manages transactions itself and silently breaks
    ``session.begin_nested()``.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables (development only, use migrations in production)."""
    import app.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unique_guard(session: AsyncSession, message: str, details: dict | None = None):
    """Run the block in a savepoint and flush; unique violations become ``ConflictError``.

    Make the changes to guard inside the block so that a violation only
    rolls back the savepoint.
    """
    try:
        async with session.begin_nested():
            yield
            await session.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        raise ConflictError(message, details=details) from exc
