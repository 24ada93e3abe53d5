"""
Composed FastAPI Dependencies

Combines auth + DB session + storage into single injectable objects.
Route handlers import from here — never from auth/token, db/session or
storage/s3 directly.

This is the single wiring point for the entire request context.
"""

from __future__ import annotations

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docuintel.auth.token import UserSession, get_current_user, get_optional_user
from docuintel.db.session import get_admin_db, get_db
from docuintel.storage.s3 import AdminStorageService, S3StorageService, UserStorageConfig


# ---------------------------------------------------------------------------
# 1. Authenticated user DB session
#    Sets RLS context: app.current_user_id = user.sub
# ---------------------------------------------------------------------------

async def get_user_db(
    user: Annotated[UserSession, Depends(get_current_user)],
) -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db(user_id=user.sub):
        yield session


async def get_optional_user_db(
    user: Annotated[UserSession | None, Depends(get_optional_user)],
) -> AsyncGenerator[AsyncSession | None, None]:
    """Yields None when the request carries no session."""
    if user is None:
        yield None
        return
    async for session in get_db(user_id=user.sub):
        yield session


async def get_search_db(
    request: Request,
    user: Annotated[UserSession, Depends(get_current_user)],
) -> AsyncGenerator[AsyncSession | None, None]:
    """Yields None for a blank `q` so an empty search never opens a session."""
    if not (request.query_params.get("q") or "").strip():
        yield None
        return
    async for session in get_db(user_id=user.sub):
        yield session


# ---------------------------------------------------------------------------
# 2. User-scoped S3 service
# ---------------------------------------------------------------------------

def get_optional_user_storage(
    user: Annotated[UserSession | None, Depends(get_optional_user)],
) -> S3StorageService | None:
    if user is None:
        return None
    return S3StorageService(user_config=UserStorageConfig(user_id=user.sub))


# ---------------------------------------------------------------------------
# 3. Service-role resources (administrative delete only)
# ---------------------------------------------------------------------------

async def get_privileged_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_admin_db() as session:
        yield session


def get_admin_storage() -> AdminStorageService:
    return AdminStorageService()


# ---------------------------------------------------------------------------
# Type aliases for cleaner route signatures
# ---------------------------------------------------------------------------

CurrentUser          = Annotated[UserSession,               Depends(get_current_user)]
OptionalUser         = Annotated[UserSession | None,        Depends(get_optional_user)]
UserDB               = Annotated[AsyncSession,              Depends(get_user_db)]
OptionalUserDB       = Annotated[AsyncSession | None,       Depends(get_optional_user_db)]
SearchDB             = Annotated[AsyncSession | None,       Depends(get_search_db)]
OptionalUserStorage  = Annotated[S3StorageService | None,   Depends(get_optional_user_storage)]
PrivilegedDB         = Annotated[AsyncSession,              Depends(get_privileged_db)]
AdminStorage         = Annotated[AdminStorageService,       Depends(get_admin_storage)]
