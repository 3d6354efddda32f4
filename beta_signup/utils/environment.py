"""Environment detection utilities."""

import os


def get_environment() -> str:
    """Get the current environment name.

    Returns:
        Environment name: 'local', 'staging', 'production' or 'test'
    """
    return os.getenv("ENV", "local")


def is_production() -> bool:
    return get_environment() == "production"


def is_testing() -> bool:
    return get_environment() == "test"


def is_debug() -> bool:
    """Check if running in debug/local mode.

    Returns:
        True if ENV is 'local', 'test' or not set
    """
    return get_environment() in ("local", "test")
