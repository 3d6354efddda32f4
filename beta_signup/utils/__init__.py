"""Utility modules for the beta signup service."""

from beta_signup.utils.logger import logger, setup_logger
from beta_signup.utils.environment import is_production, is_debug, is_testing, get_environment
from beta_signup.utils.sentry_utils import configure_sentry, capture_exception, capture_message
from beta_signup.utils.response_utils import error_response, domain_error_response, internal_error
from beta_signup.utils.exceptions import (
    BetaSignupError,
    NotFoundError,
    AppAlreadyExistsError,
    AuthenticationRequiredError,
    PermissionDeniedError,
    InvalidRequestError,
    GroupAccessError,
)
from beta_signup.utils.constants import (
    API_VERSION,
    API_PREFIX,
    CONSUMER_GROUP_SUFFIX,
)

__all__ = [
    # Logger
    "logger",
    "setup_logger",
    # Environment
    "is_production",
    "is_debug",
    "is_testing",
    "get_environment",
    # Sentry
    "configure_sentry",
    "capture_exception",
    "capture_message",
    # Response
    "error_response",
    "domain_error_response",
    "internal_error",
    # Exceptions
    "BetaSignupError",
    "NotFoundError",
    "AppAlreadyExistsError",
    "AuthenticationRequiredError",
    "PermissionDeniedError",
    "InvalidRequestError",
    "GroupAccessError",
    # Constants
    "API_VERSION",
    "API_PREFIX",
    "CONSUMER_GROUP_SUFFIX",
]
