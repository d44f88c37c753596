"""
Domain errors.

Services raise these; the handlers in unihub.main turn them into
{"success": false, "message": ...} responses with the mapped status code.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AppError):
    status_code = 400
    default_message = "Invalid input"


class Expired(AppError):
    """An OTP was found but its expiry has passed."""
    status_code = 400
    default_message = "Code has expired"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Not authorized"


class InvalidCredential(Unauthorized):
    default_message = "Invalid credentials"


class SessionExpired(Unauthorized):
    default_message = "Session has expired. Please login again."


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class PayloadTooLarge(AppError):
    status_code = 413
    default_message = "Payload too large"
