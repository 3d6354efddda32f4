"""Firebase Admin SDK initialization"""

import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from beta_signup.config import settings
from beta_signup.utils.environment import is_production

logger = logging.getLogger(__name__)

_firebase_app: Optional[firebase_admin.App] = None


def get_credentials_file() -> str:
    """Firebase service account file for the current environment."""
    if settings.firebase_credentials_file:
        return settings.firebase_credentials_file
    if is_production():
        return "firebase-credentials.json"
    return "firebase-credentials-dev.json"


def initialize_firebase() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once and cache the app.

    Raises:
        FileNotFoundError: If the credentials file is not found
        ValueError: If the credentials file is invalid
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    cred_file = get_credentials_file()
    if not os.path.exists(cred_file):
        raise FileNotFoundError(
            f"Firebase credentials file not found: {cred_file}. "
            "Tester sign-in cannot be verified without a service account file."
        )

    cred = credentials.Certificate(cred_file)
    _firebase_app = firebase_admin.initialize_app(cred)
    logger.info(f"Firebase initialized with credentials from: {cred_file}")
    return _firebase_app


def get_firebase_app() -> firebase_admin.App:
    if _firebase_app is None:
        return initialize_firebase()
    return _firebase_app
