"""
Database session management with per-user context injection.

Flow:
  1. FastAPI dependency resolves the current user from the JWT.
  2. get_db() opens a session, sets the PostgreSQL GUC
     `app.current_user_id` for the lifetime of that transaction, then
     yields the session to the route handler.
  3. After the route completes the session commits (or rolls back on
     error) and the connection returns to the pool — SET LOCAL resets
     the GUC automatically.

Two engines:
  engine        client-scoped role, RLS applies
  admin_engine  service role (BYPASSRLS), administrative delete only
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docuintel.core.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------

engine: AsyncEngine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,          # detect stale connections before use
    pool_recycle=3600,           # recycle connections every hour
    echo=settings.db_echo_sql,   # log SQL in dev; disable in prod
)

admin_engine: AsyncEngine = create_async_engine(
    settings.effective_admin_database_url,
    pool_size=2,
    max_overflow=2,
    pool_pre_ping=True,
    echo=settings.db_echo_sql,
)

# expire_on_commit=False keeps ORM objects usable after commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

AdminSessionLocal = async_sessionmaker(
    bind=admin_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# ---------------------------------------------------------------------------
# User context helper
# ---------------------------------------------------------------------------

async def _set_user_context(session: AsyncSession, user_id: str) -> None:
    """
    Set the session-local variable that the RLS policy reads.
    SET LOCAL is cleared when the transaction ends.
    """
    await session.execute(
        text("SELECT set_config('app.current_user_id', :uid, true)"),
        {"uid": user_id},
    )
    logger.debug("User context set: %s", user_id)


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

async def get_db(user_id: str) -> AsyncGenerator[AsyncSession, None]:
    """
    Yields a user-scoped database session.

    Services that write call commit() themselves so they can map commit
    failures onto DatabaseError; the trailing commit here is then a no-op.
    """
    async with AsyncSessionLocal() as session:
        await _set_user_context(session, user_id)
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_admin_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Session on the service-role engine, without user context.

    ONLY for:
      - the administrative delete
      - schema creation (init_db)

    Never expose this to regular request handlers.
    """
    async with AdminSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Health check helper
# ---------------------------------------------------------------------------

async def check_db_health() -> dict:
    """Ping the database; used by /ready."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        logger.error("DB health check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}


async def dispose_engines() -> None:
    await engine.dispose()
    await admin_engine.dispose()
