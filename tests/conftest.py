"""
Shared fixtures for the beta signup test suite.

Every test gets its own SQLite database file (aiosqlite) with foreign keys
enabled, and a mocked Google Groups client so no HTTP calls leave the process.
"""

import os

# Configure the environment BEFORE importing the application
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_URL_BASE", "https://beta.example.com")

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine

from beta_signup.db.database import Base, build_session_factory
from beta_signup.models import App, PromotionalCode
from beta_signup.services.allocation import AllocationEngine
from beta_signup.services.apps import AppService
from beta_signup.services.code_pool import CodePoolStore
from beta_signup.services.crypto import TokenCipher
from beta_signup.services.google_groups import GoogleGroupsClient
from beta_signup.services.membership import MembershipOrchestrator
from beta_signup.services.signup import SignupService
from beta_signup.services.testers import TesterRegistry

CONSUMER_GROUP = "demo-testers@googlegroups.com"
MANAGED_GROUP = "testers@example.com"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'beta_signup.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_cipher():
    return TokenCipher(Fernet.generate_key())


@pytest.fixture
def groups_client():
    client = AsyncMock(spec=GoogleGroupsClient)
    client.add_member.return_value = True
    client.check_membership.return_value = False
    client.can_manage_group.return_value = True
    client.refresh_access_token.return_value = None
    return client


@pytest.fixture
def code_pool(db):
    return CodePoolStore(db)


@pytest.fixture
def tester_registry(db):
    return TesterRegistry(db)


@pytest.fixture
def app_service(db, code_pool, tester_registry, groups_client, token_cipher):
    return AppService(db, code_pool, tester_registry, groups_client, token_cipher)


@pytest.fixture
def membership(groups_client, token_cipher):
    return MembershipOrchestrator(groups_client, token_cipher, timeout=1.0)


@pytest.fixture
def signup_service(app_service, code_pool, tester_registry, membership):
    return SignupService(app_service, tester_registry, AllocationEngine(code_pool), membership)


@pytest.fixture
def make_app(db, token_cipher):
    """Factory inserting a fully registered app with its codes."""

    async def _make_app(
        app_id: str = "com.example.demo",
        group_email: str = CONSUMER_GROUP,
        codes: tuple = ("A1", "A2"),
        owner_email: str = "owner@example.com",
        access_token: str | None = None,
        refresh_token: str | None = None,
        secret: str = "s3cret-token",
    ) -> App:
        app = App(
            id=app_id,
            app_name="Demo",
            google_group_email=group_email,
            play_store_url=f"https://play.google.com/store/apps/details?id={app_id}",
            owner_email=owner_email,
            app_id_secret=secret,
            manage_group_automatically=access_token is not None,
            owner_access_token_encrypted=token_cipher.encrypt(access_token),
            owner_refresh_token_encrypted=token_cipher.encrypt(refresh_token),
            is_setup_complete=True,
        )
        db.add(app)
        now = datetime.utcnow()
        db.add_all([PromotionalCode(app_id=app_id, code=code, created_at=now) for code in codes])
        await db.commit()
        return app

    return _make_app
