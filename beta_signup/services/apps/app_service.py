"""App registration and owner administration."""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup.config import settings
from beta_signup.models.app import App
from beta_signup.models.promotional_code import PromotionalCode
from beta_signup.models.tester import Tester, normalize_email
from beta_signup.services.code_pool.code_pool_store import CodePoolStore
from beta_signup.services.crypto.token_cipher import TokenCipher
from beta_signup.services.google_groups.google_groups_client import (
    GoogleGroupsClient,
    GroupApiError,
    is_consumer_group,
)
from beta_signup.services.testers.tester_registry import TesterRegistry
from beta_signup.utils.android_utils import extract_app_id
from beta_signup.utils.code_list_utils import dedupe_codes
from beta_signup.utils.constants import APP_SECRET_TOKEN_BYTES
from beta_signup.utils.exceptions import (
    AppAlreadyExistsError,
    GroupAccessError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)


@dataclass
class AppStats:
    total_testers: int = 0
    joined_group: int = 0
    codes_assigned: int = 0
    total_codes: int = 0
    redeemed_codes: int = 0

    @property
    def available_codes(self) -> int:
        return self.total_codes - self.redeemed_codes


@dataclass
class AppOverview:
    app: App
    complete_url: str
    stats: AppStats
    testers: list[Tester] = field(default_factory=list)
    promotional_codes: list[PromotionalCode] = field(default_factory=list)


class AppService:
    """Registers apps and serves owner-only operations on them."""

    def __init__(
        self,
        db: AsyncSession,
        code_pool: CodePoolStore,
        tester_registry: TesterRegistry,
        groups_client: GoogleGroupsClient,
        token_cipher: Optional[TokenCipher] = None,
    ):
        if db is None:
            raise ValueError("AppService requires a database session")
        self.db = db
        self.code_pool = code_pool
        self.testers = tester_registry
        self.groups_client = groups_client
        self.token_cipher = token_cipher

    async def find_app(self, app_id: str) -> Optional[App]:
        result = await self.db.execute(
            select(App).where(App.id == app_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_app(self, app_id: str) -> App:
        """Load a fully registered app.

        Raises:
            NotFoundError: no app, or only a half-registered one
        """
        app = await self.find_app(app_id)
        if app is None or not app.is_setup_complete:
            raise NotFoundError("App")
        return app

    async def get_owned_app(self, app_id: str, owner_email: str) -> App:
        app = await self.get_app(app_id)
        if normalize_email(app.owner_email) != normalize_email(owner_email):
            logger.warning(f"{owner_email} attempted to manage app {app_id} they do not own")
            raise PermissionDeniedError("Only the app owner can manage this app")
        return app

    def complete_url(self, app: App) -> str:
        """Link for the Google Group welcome message of consumer groups."""
        base = settings.app_url_base.rstrip("/")
        return f"{base}/signup/{app.id}/complete?s={app.app_id_secret}"

    async def register_app(
        self,
        owner_email: str,
        app_name: str,
        google_group_email: str,
        play_store_url: str,
        icon_url: Optional[str] = None,
        promotional_codes: Optional[list[str]] = None,
        manage_automatically: bool = False,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> App:
        """Register an app with its initial code pool.

        Raises:
            InvalidRequestError: bad Play Store URL or too many codes
            AppAlreadyExistsError: a completed app has the same id
            GroupAccessError: the credential cannot manage the Workspace group
        """
        app_id = extract_app_id(play_store_url)
        if app_id is None:
            raise InvalidRequestError("Invalid Play Store URL", details={"play_store_url": play_store_url})

        codes = dedupe_codes(promotional_codes or [])
        self._check_code_count(codes)

        existing = await self.find_app(app_id)
        if existing is not None:
            if existing.is_setup_complete:
                raise AppAlreadyExistsError(app_id)
            logger.warning(f"Removing incomplete registration of app {app_id} before re-creating it")
            self.db.expunge(existing)
            await self.delete_app(app_id)

        group_email = google_group_email.strip()
        if access_token and not is_consumer_group(group_email):
            await self._verify_group_access(group_email, access_token)

        store_credential = manage_automatically and bool(access_token)
        if store_credential and self.token_cipher is None:
            raise InvalidRequestError("Automatic group management is not configured on this server")

        app = App(
            id=app_id,
            app_name=app_name.strip(),
            google_group_email=group_email,
            play_store_url=play_store_url.strip(),
            icon_url=icon_url.strip() if icon_url and icon_url.strip() else None,
            owner_email=normalize_email(owner_email),
            app_id_secret=secrets.token_urlsafe(APP_SECRET_TOKEN_BYTES),
            manage_group_automatically=store_credential,
            owner_access_token_encrypted=self.token_cipher.encrypt(access_token) if store_credential else None,
            owner_refresh_token_encrypted=self.token_cipher.encrypt(refresh_token) if store_credential else None,
            is_setup_complete=False,
        )
        self.db.add(app)
        await self.db.commit()

        try:
            if codes:
                await self.code_pool.add_codes(app_id, codes)
            app.is_setup_complete = True
            await self.db.commit()
        except Exception:
            logger.exception(f"Registration of app {app_id} failed, cleaning up")
            await self.db.rollback()
            await self.delete_app(app_id)
            raise

        logger.info(f"Registered app {app_id} for {app.owner_email} with {len(codes)} codes")
        return app

    async def _verify_group_access(self, group_email: str, access_token: str) -> None:
        try:
            await self.groups_client.can_manage_group(group_email, access_token)
        except GroupApiError as e:
            logger.warning(f"Cannot manage Google Group {group_email}: {e}")
            raise GroupAccessError(group_email, e.error_type.value)

    async def delete_app(self, app_id: str) -> None:
        """Delete an app together with its codes and testers."""
        await self.db.execute(delete(PromotionalCode).where(PromotionalCode.app_id == app_id))
        await self.db.execute(delete(Tester).where(Tester.app_id == app_id))
        await self.db.execute(delete(App).where(App.id == app_id))
        await self.db.commit()
        logger.info(f"Deleted app {app_id} with its codes and testers")

    async def delete_owned_app(self, app_id: str, owner_email: str) -> None:
        await self.get_owned_app(app_id, owner_email)
        await self.delete_app(app_id)

    async def add_codes(self, app_id: str, owner_email: str, codes: list[str]) -> int:
        """Append codes to an owned app's pool; returns how many were added.

        Raises:
            InvalidRequestError: no codes left after de-duplication, or too many
        """
        await self.get_owned_app(app_id, owner_email)
        unique = dedupe_codes(codes)
        if not unique:
            raise InvalidRequestError("No promotional codes provided")
        self._check_code_count(unique)

        await self.code_pool.add_codes(app_id, unique)
        return len(unique)

    async def get_overview(self, app_id: str, owner_email: str) -> AppOverview:
        app = await self.get_owned_app(app_id, owner_email)
        testers = await self.testers.list_for_app(app_id)
        codes = await self.code_pool.list_codes(app_id)

        stats = AppStats(
            total_testers=len(testers),
            joined_group=sum(1 for t in testers if t.has_joined_group),
            codes_assigned=sum(1 for t in testers if t.promotional_code is not None),
            total_codes=len(codes),
            redeemed_codes=sum(1 for c in codes if c.redeemed_at is not None),
        )
        return AppOverview(
            app=app,
            complete_url=self.complete_url(app),
            stats=stats,
            testers=testers,
            promotional_codes=codes,
        )

    @staticmethod
    def _check_code_count(codes: list[str]) -> None:
        limit = settings.max_promotional_codes_per_request
        if len(codes) > limit:
            raise InvalidRequestError(
                f"Too many promotional codes (maximum {limit} per request)",
                details={"count": len(codes), "limit": limit},
            )
