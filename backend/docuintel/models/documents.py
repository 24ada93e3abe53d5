"""
SQLAlchemy ORM Models — Documents

Maps the `documents` table created by docuintel.db.init_db.
Using SQLAlchemy 2.x mapped classes for full async support.

RLS note: Row-Level Security is enforced at the PostgreSQL level via the
app.current_user_id GUC set by db/session.py. The search gateway still adds
an explicit `user_id = :sub` filter so scoping does not depend on the role
the engine happens to connect with.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Computed, DateTime, Index, Text, func
from sqlalchemy.dialects.postgresql import TSVECTOR, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# Text search configuration baked into the generated column. Queries must
# use the same configuration for the GIN index to be used.
FTS_CONFIG = "english"


# ---------------------------------------------------------------------------
# Document model — documents
# ---------------------------------------------------------------------------

class Document(Base):
    """
    One uploaded file and the text extracted from it.

    Lifecycle:
        created — by IngestionService after the binary is stored
        read    — by SearchGateway (search / list_all)
        deleted — by AdminService (binary first, then this row)

    `fts` is a stored generated column weighting file_name (A) over category (B)
    over content (C), so ts_rank favours title hits;
    it is the composite index that `websearch_to_tsquery` runs against.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_user_id",    "user_id"),
        Index("idx_documents_user_created", "user_id", "created_at"),
        Index("idx_documents_fts",        "fts", postgresql_using="gin"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )

    # Display name supplied by the uploader
    file_name: Mapped[str] = mapped_column(Text, nullable=False)

    # Storage reference
    file_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Public URL: <public_base>/<bucket>/<storage_path>",
    )
    storage_path: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
        comment="Object key inside the bucket: <user_id>/<timestamp>-<token>.<ext>",
    )

    # Extracted text — never empty, never carries the failure sentinel
    content: Mapped[str] = mapped_column(Text, nullable=False)

    category: Mapped[str] = mapped_column(Text, nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    # Owner — the identity provider subject, taken from the verified JWT only
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_email: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    fts: Mapped[str] = mapped_column(
        TSVECTOR,
        Computed(
            f"setweight(to_tsvector('{FTS_CONFIG}', coalesce(file_name, '')), 'A') || "
            f"setweight(to_tsvector('{FTS_CONFIG}', coalesce(category, '')), 'B') || "
            f"setweight(to_tsvector('{FTS_CONFIG}', coalesce(content, '')), 'C')",
            persisted=True,
        ),
        deferred=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Document id={self.id} user={self.user_id} "
            f"file={self.file_name!r} category={self.category!r}>"
        )
