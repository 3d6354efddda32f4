"""Decides whether and how a tester is added to the app's Google Group."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from beta_signup.config import settings
from beta_signup.models.app import App
from beta_signup.services.crypto.token_cipher import TokenCipher, TokenDecryptionError
from beta_signup.services.google_groups.google_groups_client import (
    GoogleGroupsClient,
    GroupApiError,
    GroupErrorType,
    is_consumer_group,
)
from beta_signup.utils.sentry_utils import capture_exception

logger = logging.getLogger(__name__)


class GroupType(str, Enum):
    CONSUMER = "consumer"
    MANAGED = "managed"


@dataclass
class OwnerCredential:
    access_token: str
    refresh_token: Optional[str] = None


@dataclass
class MembershipOutcome:
    has_joined_group: bool
    group_type: GroupType
    attempted_automatic_add: bool = False
    error_type: Optional[GroupErrorType] = None


class MembershipOrchestrator:
    """Normalizes group membership into a single ``has_joined_group`` flag.

    | group    | credential | action                | result                      |
    |----------|------------|-----------------------|-----------------------------|
    | consumer | n/a        | none                  | the tester's own claim      |
    | managed  | yes        | add member via API    | True on success, else False |
    | managed  | no         | none, logged          | False                       |

    Group API failures never propagate out of ``resolve_membership``.
    """

    def __init__(
        self,
        groups_client: GoogleGroupsClient,
        token_cipher: Optional[TokenCipher] = None,
        timeout: float | None = None,
    ):
        self.groups_client = groups_client
        self.token_cipher = token_cipher
        self.timeout = timeout if timeout is not None else settings.group_api_timeout_seconds

    @staticmethod
    def group_type(app: App) -> GroupType:
        if is_consumer_group(app.google_group_email):
            return GroupType.CONSUMER
        return GroupType.MANAGED

    def owner_credential(self, app: App) -> Optional[OwnerCredential]:
        """Decrypt the owner's delegated credential, if the app has a usable one."""
        if not app.has_owner_credential:
            return None
        if self.token_cipher is None:
            logger.warning(f"No token cipher configured, cannot use owner credential of app {app.id}")
            return None
        try:
            access_token = self.token_cipher.decrypt(app.owner_access_token_encrypted)
            refresh_token = self.token_cipher.decrypt(app.owner_refresh_token_encrypted)
        except TokenDecryptionError:
            logger.error(f"Owner credential of app {app.id} could not be decrypted")
            return None
        if not access_token:
            return None
        return OwnerCredential(access_token=access_token, refresh_token=refresh_token)

    async def resolve_membership(
        self,
        app: App,
        email: str,
        claimed_joined: bool = False,
        already_joined: bool = False,
    ) -> MembershipOutcome:
        """Work out whether ``email`` is in the app's group, adding them if possible.

        Args:
            app: The app whose group is joined
            email: Authenticated tester email
            claimed_joined: Tester says they joined a consumer group manually
            already_joined: Membership was already recorded or proven this session
        """
        group_type = self.group_type(app)

        if already_joined:
            return MembershipOutcome(has_joined_group=True, group_type=group_type)

        if group_type == GroupType.CONSUMER:
            return MembershipOutcome(has_joined_group=claimed_joined, group_type=group_type)

        credential = self.owner_credential(app)
        if credential is None:
            logger.info(
                f"No owner credential for app {app.id}, skipping automatic add of {email} "
                f"to {app.google_group_email}"
            )
            return MembershipOutcome(has_joined_group=False, group_type=group_type)

        logger.info(f"Attempting to add {email} to Workspace group {app.google_group_email}")
        try:
            added = await self._add_member(app, email, credential)
        except GroupApiError as e:
            logger.error(
                f"Could not add {email} to {app.google_group_email} for app {app.id} "
                f"[{e.error_type.value}]: {e}"
            )
            return MembershipOutcome(
                has_joined_group=False,
                group_type=group_type,
                attempted_automatic_add=True,
                error_type=e.error_type,
            )
        except Exception as e:
            # Group API trouble of any kind must not abort the signup
            logger.exception(
                f"Unexpected error adding {email} to {app.google_group_email} for app {app.id}: {e}"
            )
            capture_exception(e, app_id=app.id)
            return MembershipOutcome(
                has_joined_group=False,
                group_type=group_type,
                attempted_automatic_add=True,
                error_type=GroupErrorType.NETWORK_ERROR,
            )

        return MembershipOutcome(
            has_joined_group=added,
            group_type=group_type,
            attempted_automatic_add=True,
        )

    async def _add_member(self, app: App, email: str, credential: OwnerCredential) -> bool:
        try:
            return await self._bounded_add(app, email, credential.access_token)
        except GroupApiError as e:
            if e.error_type != GroupErrorType.AUTHENTICATION or not credential.refresh_token:
                raise

        logger.info(f"Owner access token of app {app.id} rejected, refreshing")
        new_token = await self.groups_client.refresh_access_token(credential.refresh_token)
        if not new_token:
            raise GroupApiError(
                GroupErrorType.AUTHENTICATION,
                f"Owner credential of app {app.id} expired and could not be refreshed",
            )
        return await self._bounded_add(app, email, new_token)

    async def _bounded_add(self, app: App, email: str, access_token: str) -> bool:
        try:
            return await asyncio.wait_for(
                self.groups_client.add_member(app.google_group_email, email, access_token),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise GroupApiError(
                GroupErrorType.NETWORK_ERROR,
                f"Adding {email} to {app.google_group_email} timed out after {self.timeout}s",
            )
