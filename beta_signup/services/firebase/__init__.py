"""Firebase service module for authentication"""

from beta_signup.services.firebase.firebase_config import (
    get_firebase_app,
    initialize_firebase,
)
from beta_signup.services.firebase.firebase_auth import (
    AuthenticatedUser,
    DelegatedCredential,
    get_current_user,
    get_delegated_credential,
    get_optional_user,
    verify_token_async,
)

__all__ = [
    "get_firebase_app",
    "initialize_firebase",
    "AuthenticatedUser",
    "DelegatedCredential",
    "get_current_user",
    "get_delegated_credential",
    "get_optional_user",
    "verify_token_async",
]
