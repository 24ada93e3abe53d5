"""
Initialize database tables.
Run this on first deploy:  python -m docuintel.db.init_db

Creates the documents table (with the generated tsvector column and its
GIN index) on the service-role engine, then installs the row-level
security policy that scopes the client role to its own rows.

Set RESET_DB=1 to drop and recreate all tables.
"""

from __future__ import annotations

import asyncio
import logging
import os

from sqlalchemy import text

from docuintel.db.session import admin_engine, dispose_engines
from docuintel.models.documents import Base

logger = logging.getLogger(__name__)

RLS_STATEMENTS: tuple[str, ...] = (
    "ALTER TABLE documents ENABLE ROW LEVEL SECURITY",
    "DROP POLICY IF EXISTS documents_owner_policy ON documents",
    """
    CREATE POLICY documents_owner_policy ON documents
        USING (user_id = current_setting('app.current_user_id', true))
        WITH CHECK (user_id = current_setting('app.current_user_id', true))
    """,
)


async def init_db(reset: bool = False) -> None:
    """Create all tables and the RLS policy."""
    async with admin_engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pgcrypto"))

        if reset:
            logger.warning("RESET_DB is set - dropping all tables")
            await conn.run_sync(Base.metadata.drop_all)

        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

        for statement in RLS_STATEMENTS:
            await conn.execute(text(statement))
        logger.info("Row-level security policy installed on documents")


async def _main() -> None:
    reset = os.getenv("RESET_DB", "").strip().lower() in ("1", "true", "yes")
    try:
        await init_db(reset=reset)
    finally:
        await dispose_engines()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    asyncio.run(_main())
