# app/core/errors.py
"""
Moderation error taxonomy.
Each error carries a stable `code` and the HTTP status it maps to;
app.main renders them as {"error": ..., "code": ...}.
"""


class ModerationError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Internal error"


class ValidationError(ModerationError):
    status_code = 400
    code = "validation_error"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid request"


class InvalidReason(ValidationError):
    code = "invalid_reason"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid report reason"


class AuthenticationRequired(ModerationError):
    status_code = 401
    code = "authentication_required"

    @classmethod
    def default_message(cls) -> str:
        return "Unauthorized"


class NotFound(ModerationError):
    status_code = 404
    code = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Content not found"


class DuplicateReport(ModerationError):
    status_code = 409
    code = "duplicate_report"

    @classmethod
    def default_message(cls) -> str:
        return "You have already reported this content"


class StoreUnavailable(ModerationError):
    # not retried here, retry policy belongs to the caller
    status_code = 503
    code = "store_unavailable"

    @classmethod
    def default_message(cls) -> str:
        return "Storage temporarily unavailable"


class ClassifierUnavailable(ModerationError):
    status_code = 503
    code = "classifier_unavailable"

    @classmethod
    def default_message(cls) -> str:
        return "Text classifier unavailable"
