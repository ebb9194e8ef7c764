"""Typed application errors.

Each error carries the HTTP status and machine-readable code the error
handlers render. Quota and subscription errors are expected business
outcomes, not defects.
"""


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized: User not authenticated"


class QuotaExceededError(AppError):
    status_code = 403
    code = "QUOTA_EXCEEDED"
    default_message = "Quota exceeded"


class SubscriptionRequiredError(AppError):
    status_code = 403
    code = "SUBSCRIPTION_REQUIRED"
    default_message = "Valid subscription required"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"
