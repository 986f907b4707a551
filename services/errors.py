"""
Error taxonomy for the signup functions.

Every error carries the HTTP status the handlers answer with, so routes can
render any of them as ``{"ok": false, "error": ...}`` without a lookup table.
"""
from typing import Optional


class SignupError(Exception):
    """Base class for errors that map onto a JSON error response."""
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SignupError):
    status_code = 400
    default_message = "Invalid request"


class ConfigError(SignupError):
    status_code = 500
    default_message = "Server is not configured"


class UpstreamError(SignupError):
    """The backend rejected a call or could not be reached."""
    status_code = 500
    default_message = "Upstream request failed"

    def __init__(self, message: Optional[str] = None, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class StoreError(UpstreamError):
    default_message = "Database request failed"


class AuthCreateError(UpstreamError):
    """Creating the auth identity failed. `already_registered` is the user-correctable case."""
    default_message = "Create user failed"

    def __init__(self, message: Optional[str] = None, upstream_status: Optional[int] = None,
                 already_registered: bool = False):
        super().__init__(message, upstream_status)
        self.already_registered = already_registered
        if already_registered:
            self.status_code = 400


class DeliveryError(SignupError):
    status_code = 500
    default_message = "Email delivery failed"


class NotFound(SignupError):
    status_code = 404
    default_message = "Not found"


class Unauthorized(SignupError):
    status_code = 401
    default_message = "Unauthorized"


class Conflict(SignupError):
    status_code = 409
    default_message = "Conflict"


class CodeError(SignupError):
    """User-correctable verification code failure."""
    status_code = 400


class CodeNotFound(CodeError):
    default_message = "Code not found. Please request a new code."


class CodeAlreadyUsed(CodeError):
    default_message = "That code has already been used. Please request a new one."


class CodeExpired(CodeError):
    default_message = "That code has expired. Please request a new one."


class CodeIncorrect(CodeError):
    default_message = "Incorrect code. Please try again."
