"""
Error taxonomy of the service.

Every error carries the HTTP status it maps to; the application renders them
as ``{"error": message}``.
"""
from typing import Any, Optional


class DocchatError(Exception):
    """Base exception for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DocchatError):
    """Required configuration is missing. Raised at startup only."""


# =============================================================================
# Client errors (no row is touched)
# =============================================================================


class InvalidInputError(DocchatError):
    status_code = 400


class UnauthenticatedError(DocchatError):
    status_code = 401


class NotFoundError(DocchatError):
    """Row does not exist or belongs to another user."""

    status_code = 404


# =============================================================================
# Content errors (row is marked failed)
# =============================================================================


class UnprocessableError(DocchatError):
    """File was downloaded but could not yield usable content."""

    status_code = 422


class EncryptedPdfError(UnprocessableError):
    def __init__(self) -> None:
        super().__init__("Encrypted or password-protected PDF not supported.")


class CorruptedPdfError(UnprocessableError):
    def __init__(self, cause: str = "") -> None:
        super().__init__(
            "Unable to open PDF (possibly corrupted).",
            {"cause": cause} if cause else None,
        )


class PdfPageLimitError(UnprocessableError):
    def __init__(self, page_count: int, max_pages: int) -> None:
        super().__init__(
            f"PDF has {page_count} pages (limit {max_pages}).",
            {"page_count": page_count, "max_pages": max_pages},
        )


class ExtractionTimeoutError(UnprocessableError):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Extraction timed out after {timeout_seconds:g} seconds",
            {"timeout_seconds": timeout_seconds},
        )


# =============================================================================
# Infrastructure errors
# =============================================================================


class InfrastructureError(DocchatError):
    """Row store failure."""

    status_code = 500


class UpstreamError(InfrastructureError):
    """Blob store or LLM failure."""

    status_code = 502
