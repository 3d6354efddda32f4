"""Firebase ID token verification for testers and app owners"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from firebase_admin import auth

from beta_signup.services.firebase.firebase_config import get_firebase_app
from beta_signup.utils.constants import GOOGLE_ACCESS_TOKEN_HEADER, GOOGLE_REFRESH_TOKEN_HEADER
from beta_signup.utils.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """Identity established from a verified Firebase ID token"""

    uid: str
    email: str
    name: Optional[str] = None
    email_verified: bool = False


@dataclass
class DelegatedCredential:
    """Google OAuth tokens an owner hands over for group management"""

    access_token: str
    refresh_token: Optional[str] = None


async def verify_token_async(id_token: str) -> AuthenticatedUser:
    """Verify a Firebase ID token without blocking the event loop.

    Raises:
        AuthenticationRequiredError: invalid, expired or email-less token
    """
    get_firebase_app()

    try:
        decoded_token = await asyncio.to_thread(auth.verify_id_token, id_token)
    except auth.ExpiredIdTokenError:
        raise AuthenticationRequiredError("Session has expired, please sign in again")
    except auth.RevokedIdTokenError:
        raise AuthenticationRequiredError("Session has been revoked, please sign in again")
    except (auth.InvalidIdTokenError, ValueError) as e:
        logger.info(f"Rejected invalid ID token: {e}")
        raise AuthenticationRequiredError("Invalid sign-in token")

    email = decoded_token.get("email")
    if not email:
        raise AuthenticationRequiredError("Email not found in token")

    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=email,
        name=decoded_token.get("name"),
        email_verified=decoded_token.get("email_verified", False),
    )


def get_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split("Bearer ", 1)[1].strip() or None


def requested_path(request: Request) -> str:
    """Path plus query string, for sending the user back after sign-in."""
    if request.url.query:
        return f"{request.url.path}?{request.url.query}"
    return request.url.path


async def get_optional_user(request: Request) -> Optional[AuthenticatedUser]:
    """FastAPI dependency: the signed-in user, or None for anonymous requests."""
    token = get_bearer_token(request)
    if token is None:
        return None
    try:
        return await verify_token_async(token)
    except AuthenticationRequiredError:
        return None


async def get_current_user(request: Request) -> AuthenticatedUser:
    """FastAPI dependency: the signed-in user.

    Raises:
        AuthenticationRequiredError: carrying the requested path as ``redirect_to``
    """
    token = get_bearer_token(request)
    if token is None:
        raise AuthenticationRequiredError(redirect_to=requested_path(request))
    try:
        return await verify_token_async(token)
    except AuthenticationRequiredError as e:
        raise AuthenticationRequiredError(e.message, redirect_to=requested_path(request))


def get_delegated_credential(request: Request) -> Optional[DelegatedCredential]:
    """FastAPI dependency: the owner's Google OAuth tokens from request headers."""
    access_token = request.headers.get(GOOGLE_ACCESS_TOKEN_HEADER)
    if not access_token:
        return None
    return DelegatedCredential(
        access_token=access_token,
        refresh_token=request.headers.get(GOOGLE_REFRESH_TOKEN_HEADER),
    )
