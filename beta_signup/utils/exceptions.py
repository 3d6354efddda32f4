"""Domain exceptions surfaced to API callers.

Each exception carries the error code and HTTP status it is rendered with by
the handler registered in ``main.py``. Exceptions that are handled inside the
services and never reach a caller are defined next to the code raising them.
"""

from typing import Any

from fastapi import status


class BetaSignupError(Exception):
    """Base class for errors rendered into the standard error envelope."""

    code = "ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(BetaSignupError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"

    def __init__(self, resource: str = "Resource", message: str | None = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class AppAlreadyExistsError(BetaSignupError):
    """A completed app is already registered under the same id."""

    code = "APP_ALREADY_EXISTS"
    status_code = status.HTTP_409_CONFLICT
    default_message = "An app with this Play Store id already exists"

    def __init__(self, app_id: str):
        self.app_id = app_id
        super().__init__(details={"app_id": app_id})


class AuthenticationRequiredError(BetaSignupError):
    """Raised when an operation needs a signed-in identity.

    ``redirect_to`` is the path the caller originally asked for so the client
    can return there after sign-in.
    """

    code = "AUTHENTICATION_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"

    def __init__(self, message: str | None = None, redirect_to: str | None = None):
        self.redirect_to = redirect_to
        super().__init__(message, details={"redirect_to": redirect_to} if redirect_to else None)


class PermissionDeniedError(BetaSignupError):
    code = "PERMISSION_DENIED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You don't have permission to perform this action"


class InvalidRequestError(BetaSignupError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid request"


class GroupAccessError(BetaSignupError):
    """The owner's credential cannot manage the Workspace group."""

    code = "GROUP_ACCESS_DENIED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Unable to manage the Google Group with the provided credentials"

    def __init__(self, group_email: str, error_type: str | None = None):
        self.group_email = group_email
        details = {"group_email": group_email}
        if error_type:
            details["error_type"] = error_type
        super().__init__(details=details)
