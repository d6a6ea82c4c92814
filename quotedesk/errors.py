"""
Domain error taxonomy for the quoting services.

Services raise these; ``quotedesk.main`` renders them into the
``{"error": {"code": ..., "message": ...}}`` envelope with the matching
HTTP status.
"""

from typing import Any, Optional


class QuoteDeskError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_content(self) -> dict:
        content: dict = {"error": {"code": self.code, "message": self.message}}
        content.update(self.extra)
        return content


class ValidationError(QuoteDeskError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class DuplicateItemError(ValidationError):
    code = "DUPLICATE_ITEM"
    default_message = "Duplicate product/variant combinations are not allowed"


class InvalidStatus(ValidationError):
    code = "INVALID_STATUS"
    default_message = "Invalid status"


class NotFound(QuoteDeskError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class Expired(QuoteDeskError):
    status_code = 410
    code = "QUOTE_EXPIRED"
    default_message = "Quote request has expired"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, status="expired")


class AlreadySubmitted(QuoteDeskError):
    status_code = 410
    code = "QUOTE_ALREADY_SUBMITTED"
    default_message = "Quote already submitted"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, status="submitted")


class RateLimited(QuoteDeskError):
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Too many quote submissions, please try again later"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = max(1, int(retry_after))
        super().__init__(message, retry_after=self.retry_after)


class MissingPrincipal(QuoteDeskError):
    status_code = 401
    code = "AUTH_PRINCIPAL_MISSING"
    default_message = "An authenticated admin is required for this action"


class InternalError(QuoteDeskError):
    pass
