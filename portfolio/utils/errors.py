"""
Application Errors

Operational errors raised by services and endpoints. The HTTP layer renders
every AppError as {"success": false, "error": message} with its status code.
"""


class AppError(Exception):
    """Base application error carrying an HTTP status code."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str = None, status_code: int = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(AppError):
    """400 Bad Request"""
    status_code = 400
    default_message = "Bad Request"


class UnauthorizedError(AppError):
    """401 Unauthorized"""
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    """403 Forbidden"""
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    """404 Not Found"""
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """409 Conflict"""
    status_code = 409
    default_message = "Conflict"
