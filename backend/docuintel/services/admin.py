"""
Administrative delete.

Removes a document's binary and then its record, using the service-role
database session and the service-role storage client. A storage failure
leaves the record in place.

Both halves are idempotent: an object that is already gone and a record
that is already gone are logged as warnings and reported back, and the
overall call still succeeds.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docuintel.core.errors import DatabaseError, ValidationError
from docuintel.models.documents import Document
from docuintel.storage.s3 import AdminStorageService, parse_storage_path

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    success:  bool = True
    message:  str = "Document deleted successfully."
    warnings: list[str] = field(default_factory=list)


def parse_document_id(doc_id: str | None) -> uuid.UUID:
    if not doc_id:
        raise ValidationError("Missing docId or fileUrl.")
    try:
        return uuid.UUID(str(doc_id))
    except ValueError as exc:
        raise ValidationError("docId is not a valid document id.", details={"doc_id": doc_id}) from exc


class AdminService:

    def __init__(self, db: AsyncSession, storage: AdminStorageService) -> None:
        self._db      = db
        self._storage = storage

    async def delete(self, document_id: str | None, file_url: str | None) -> DeleteResult:
        if not document_id or not file_url:
            raise ValidationError("Missing docId or fileUrl.")

        # Both inputs are checked before any call goes out.
        doc_uuid = parse_document_id(document_id)
        key      = parse_storage_path(file_url, self._storage.bucket)

        result = DeleteResult()

        # StorageError propagates with the record untouched.
        existed = await self._storage.delete_object(key)
        if not existed:
            logger.warning("Admin delete: object already absent | doc=%s key=%s", doc_uuid, key)
            result.warnings.append(f"Storage object '{key}' was already absent.")

        try:
            res = await self._db.execute(delete(Document).where(Document.id == doc_uuid))
            await self._db.commit()
        except SQLAlchemyError as exc:
            logger.error("Admin delete: record delete failed | doc=%s error=%s", doc_uuid, exc)
            raise DatabaseError(
                details={"doc_id": str(doc_uuid), "storage_path": key},
            ) from exc

        if not res.rowcount:
            logger.warning("Admin delete: record already absent | doc=%s", doc_uuid)
            result.warnings.append(f"Document record '{doc_uuid}' was already absent.")

        logger.info(
            "Admin delete ok | doc=%s key=%s warnings=%d",
            doc_uuid, key, len(result.warnings),
        )
        return result
