"""API routers module"""

from beta_signup.routers.apps import router as apps_router
from beta_signup.routers.signup import router as signup_router

__all__ = [
    "apps_router",
    "signup_router",
]
