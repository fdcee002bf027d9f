"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
that failures reach the run report and the API with enough context to
diagnose without re-running.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PROVIDER_FETCH_FAILED")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None,
        code: Optional[str] = None,
        status_code: int = 503
    ):
        super().__init__(
            code=code or f"{service.upper()}_ERROR",
            message=message,
            status_code=status_code,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None,
        code: str = "DATABASE_ERROR"
    ):
        super().__init__(
            code=code,
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# PROVIDER ERRORS
# ===================

class ProviderFetchError(ExternalServiceError):
    """Supplier feed download failed (non-2xx or transport error)."""

    def __init__(
        self,
        provider: str,
        source: str,
        status: Optional[int] = None,
        reason: Optional[str] = None
    ):
        if status is not None:
            message = f"{provider}: HTTP {status} fetching {source}"
        else:
            message = f"{provider}: request to {source} failed: {reason or 'unknown error'}"
        super().__init__(
            service=provider,
            code="PROVIDER_FETCH_FAILED",
            message=message,
            status_code=502,
            details={"provider": provider, "source": source, "status": status, "reason": reason}
        )


class ProviderAuthError(ExternalServiceError):
    """Supplier authentication failed."""

    def __init__(
        self,
        provider: str,
        message: str,
        code: str = "PROVIDER_LOGIN_REJECTED",
        details: Optional[dict] = None
    ):
        super().__init__(
            service=provider,
            code=code,
            message=message,
            status_code=502,
            details={"provider": provider, **(details or {})}
        )


class ProviderSessionInvalidError(ProviderAuthError):
    """Session cookie was accepted but the export returned an HTML page."""

    def __init__(self, provider: str, source: str, content_type: str):
        super().__init__(
            provider=provider,
            code="PROVIDER_SESSION_INVALID",
            message=f"{provider}: session is not valid, {source} returned {content_type or 'no content type'}",
            details={"source": source, "content_type": content_type}
        )


class SpreadsheetParseError(ValidationError):
    """Spreadsheet payload could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SPREADSHEET_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# SYNC / MERGE ERRORS
# ===================

class CatalogMergeError(DatabaseError):
    """Staging or merge into the catalog failed. Fatal to the run."""

    def __init__(self, step: str, message: str, details: Optional[dict] = None):
        super().__init__(
            operation=f"merge ({step})",
            message=message,
            details={"step": step, **(details or {})},
            code="CATALOG_MERGE_FAILED"
        )


class MergeInProgressError(ConflictError):
    """Another merge holds the catalog lease."""

    def __init__(self, holder: Optional[str] = None, expires_at: Optional[str] = None):
        super().__init__(
            code="MERGE_IN_PROGRESS",
            message="Another catalog merge is running",
            details={"holder": holder, "expires_at": expires_at}
        )


class NoProviderDataError(AppError):
    """Every attempted provider failed; nothing to merge."""

    def __init__(self, errors: dict[str, str]):
        super().__init__(
            code="SYNC_NO_DATA",
            message="No provider could be downloaded",
            status_code=502,
            details={"errors": errors}
        )


class CatalogProductNotFoundError(NotFoundError):
    """Catalog product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class CronSecretError(AppError):
    """Scheduled trigger secret missing from config or not matching."""

    def __init__(self, configured: bool):
        super().__init__(
            code="UNAUTHORIZED" if configured else "CRON_SECRET_MISSING",
            message="Invalid sync secret" if configured else "CRON_SECRET is not configured",
            status_code=401 if configured else 500
        )
