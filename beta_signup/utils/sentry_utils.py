"""Sentry error tracking utilities."""

import os

from beta_signup.utils.environment import get_environment, is_debug

# Track if Sentry has been initialized
_sentry_initialized = False


def configure_sentry(dsn_env_var: str = "SENTRY_DSN") -> bool:
    """Initialize Sentry for error tracking.

    Only initializes in non-debug environments (staging/production) and
    when the DSN environment variable is set.

    Returns:
        True if Sentry was initialized, False otherwise
    """
    global _sentry_initialized

    if _sentry_initialized:
        return True

    if is_debug():
        return False

    dsn = os.getenv(dsn_env_var)
    if not dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=get_environment(),
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2")),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        # Tester emails are personal data
        send_default_pii=False,
    )

    _sentry_initialized = True
    return True


def capture_exception(exception: Exception, **tags: str) -> None:
    """Send an exception to Sentry, tagged with e.g. ``app_id``."""
    if not _sentry_initialized:
        return

    import sentry_sdk

    with sentry_sdk.new_scope() as scope:
        for key, value in tags.items():
            scope.set_tag(key, value)
        sentry_sdk.capture_exception(exception)


def capture_message(message: str, level: str = "info", **tags: str) -> None:
    """Send a message to Sentry.

    Args:
        message: The message to capture
        level: Log level (debug, info, warning, error, fatal)
        tags: Extra tags attached to the event
    """
    if not _sentry_initialized:
        return

    import sentry_sdk

    with sentry_sdk.new_scope() as scope:
        for key, value in tags.items():
            scope.set_tag(key, value)
        sentry_sdk.capture_message(message, level=level)
