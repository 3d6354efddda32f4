"""Request-scoped construction of stores and services."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup.config import settings
from beta_signup.db import get_db
from beta_signup.services.allocation import AllocationEngine
from beta_signup.services.apps import AppService
from beta_signup.services.code_pool import CodePoolStore
from beta_signup.services.crypto import TokenCipher
from beta_signup.services.google_groups import GoogleGroupsClient, google_groups_client
from beta_signup.services.membership import MembershipOrchestrator
from beta_signup.services.signup import SignupService
from beta_signup.services.testers import TesterRegistry


@lru_cache
def get_token_cipher() -> Optional[TokenCipher]:
    """Cipher for owner credentials; None when no key is configured."""
    if not settings.token_encryption_key:
        return None
    return TokenCipher(settings.token_encryption_key)


def get_groups_client() -> GoogleGroupsClient:
    return google_groups_client


def get_code_pool(db: AsyncSession = Depends(get_db)) -> CodePoolStore:
    return CodePoolStore(db)


def get_tester_registry(db: AsyncSession = Depends(get_db)) -> TesterRegistry:
    return TesterRegistry(db)


def get_app_service(
    db: AsyncSession = Depends(get_db),
    code_pool: CodePoolStore = Depends(get_code_pool),
    testers: TesterRegistry = Depends(get_tester_registry),
    groups_client: GoogleGroupsClient = Depends(get_groups_client),
) -> AppService:
    return AppService(db, code_pool, testers, groups_client, get_token_cipher())


def get_membership_orchestrator(
    groups_client: GoogleGroupsClient = Depends(get_groups_client),
) -> MembershipOrchestrator:
    return MembershipOrchestrator(groups_client, get_token_cipher())


def get_signup_service(
    app_service: AppService = Depends(get_app_service),
    code_pool: CodePoolStore = Depends(get_code_pool),
    testers: TesterRegistry = Depends(get_tester_registry),
    membership: MembershipOrchestrator = Depends(get_membership_orchestrator),
) -> SignupService:
    engine = AllocationEngine(code_pool, max_attempts=settings.allocation_max_attempts)
    return SignupService(app_service, testers, engine, membership)
