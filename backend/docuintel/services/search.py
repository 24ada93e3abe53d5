"""
Search Gateway

Full-text search and listing over the caller's own documents.

  search(q)   fts @@ websearch_to_tsquery(<config>, q)
              WHERE user_id = :sub
              ORDER BY ts_rank(fts, query) DESC
              LIMIT settings.search_result_limit

  list_all()  WHERE user_id = :sub ORDER BY created_at DESC

The backend's ordering is returned unchanged. An empty or whitespace-only
query short-circuits to an `empty_query` result without touching the
database; zero rows is reported as `no_matches`, which is advisory and
not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docuintel.auth.token import UserSession
from docuintel.core.config import settings
from docuintel.core.errors import DatabaseError, UnauthenticatedError
from docuintel.models.documents import FTS_CONFIG, Document
from docuintel.schemas.documents import EMPTY_QUERY_MESSAGE, NO_MATCHES_MESSAGE, SearchStatus

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    documents: list[Document] = field(default_factory=list)
    status:    SearchStatus = SearchStatus.OK
    message:   str | None = None

    @property
    def count(self) -> int:
        return len(self.documents)


class SearchGateway:
    """Read-only queries; one instance per request."""

    def __init__(self, db: AsyncSession | None, limit: int | None = None) -> None:
        self._db    = db
        self._limit = limit or settings.search_result_limit

    async def search(self, query: str | None, session: UserSession | None) -> SearchResult:
        q = (query or "").strip()
        if not q:
            return SearchResult(status=SearchStatus.EMPTY_QUERY, message=EMPTY_QUERY_MESSAGE)
        if session is None:
            raise UnauthenticatedError("Authentication required. Provide a valid Bearer token.")

        ts_query = func.websearch_to_tsquery(FTS_CONFIG, q)
        stmt = (
            select(Document)
            .where(Document.user_id == session.sub)
            .where(Document.fts.op("@@")(ts_query))
            .order_by(func.ts_rank(Document.fts, ts_query).desc())
            .limit(self._limit)
        )
        docs = await self._run(stmt, session, op="search")
        logger.info("Search | user=%s q=%r hits=%d", session.sub, q, len(docs))
        return self._result(docs)

    async def list_all(self, session: UserSession | None) -> SearchResult:
        if session is None:
            raise UnauthenticatedError("Authentication required. Provide a valid Bearer token.")

        stmt = (
            select(Document)
            .where(Document.user_id == session.sub)
            .order_by(Document.created_at.desc())
        )
        docs = await self._run(stmt, session, op="list")
        logger.info("List | user=%s count=%d", session.sub, len(docs))
        return self._result(docs)

    # ------------------------------------------------------------------

    async def _run(self, stmt, session: UserSession, op: str) -> list[Document]:
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error("Search query failed | op=%s user=%s error=%s", op, session.sub, exc)
            raise DatabaseError() from exc
        return list(result.scalars().all())

    @staticmethod
    def _result(docs: list[Document]) -> SearchResult:
        if not docs:
            return SearchResult(status=SearchStatus.NO_MATCHES, message=NO_MATCHES_MESSAGE)
        return SearchResult(documents=docs)
