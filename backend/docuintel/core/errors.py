"""
Domain error taxonomy.

Every failure in the upload / search / delete workflows is raised as one of
these classes. The API layer turns them into an ErrorResponse carrying the
stable `kind` string; the client SDK maps that `kind` back to the same class,
so callers handle one hierarchy on both sides of the wire.

    DocuIntelError
    ├── ValidationError        400  bad input, no side effects
    ├── UnauthenticatedError   401  no session
    ├── ExtractionError        422  extraction produced nothing usable
    ├── UnsupportedTypeError   415  file extension not recognised
    ├── StorageError           500  binary write / delete failed
    ├── DatabaseError          500  record write / delete / query failed
    └── MalformedUrlError      400  admin delete given an unparseable URL
"""

from __future__ import annotations

GENERIC_DATABASE_MESSAGE = "Database Error: the request could not be completed. Try again later."


class DocuIntelError(Exception):
    """Base class. Subclasses set `kind` and `status_code`."""

    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r})"


class ValidationError(DocuIntelError):
    kind = "validation_error"
    status_code = 400


class UnauthenticatedError(DocuIntelError):
    kind = "unauthenticated"
    status_code = 401


class ExtractionError(DocuIntelError):
    """
    Raised when extraction failed or produced no usable text.
    `reason` is "empty_content" or "extraction_failed".
    """

    kind = "extraction_error"
    status_code = 422

    def __init__(
        self,
        message: str,
        *,
        reason: str = "extraction_failed",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.reason = reason


class UnsupportedTypeError(DocuIntelError):
    kind = "unsupported_type"
    status_code = 415


class StorageError(DocuIntelError):
    kind = "storage_error"
    status_code = 500


class DatabaseError(DocuIntelError):
    """The driver's own message stays in the server log, never in `message`."""

    kind = "database_error"
    status_code = 500

    def __init__(self, message: str = GENERIC_DATABASE_MESSAGE, *, details: dict | None = None) -> None:
        super().__init__(message, details=details)


class MalformedUrlError(DocuIntelError):
    kind = "malformed_url"
    status_code = 400


ERRORS_BY_KIND: dict[str, type[DocuIntelError]] = {
    cls.kind: cls
    for cls in (
        ValidationError,
        UnauthenticatedError,
        ExtractionError,
        UnsupportedTypeError,
        StorageError,
        DatabaseError,
        MalformedUrlError,
    )
}


def error_from_kind(kind: str | None, message: str, details: dict | None = None) -> DocuIntelError:
    """Rebuild a typed error from a response body's `kind` field."""
    cls = ERRORS_BY_KIND.get(kind or "", DocuIntelError)
    if cls is ExtractionError:
        reason = (details or {}).get("reason", "extraction_failed")
        return ExtractionError(message, reason=reason, details=details)
    return cls(message, details=details)
