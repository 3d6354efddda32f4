"""App registration and administration."""

from beta_signup.services.apps.app_service import AppOverview, AppService, AppStats

__all__ = ["AppOverview", "AppService", "AppStats"]
