"""Google Groups client (Admin SDK Directory + Groups Settings APIs)"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import quote

import httpx

from beta_signup.config import settings
from beta_signup.utils.constants import (
    GOOGLE_DIRECTORY_API_BASE,
    GOOGLE_GROUPS_SETTINGS_API_BASE,
    GOOGLE_OAUTH_TOKEN_URL,
)

logger = logging.getLogger(__name__)


class GroupErrorType(str, Enum):
    AUTHENTICATION = "AUTHENTICATION"
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    CONSUMER_GROUP = "CONSUMER_GROUP"
    NETWORK_ERROR = "NETWORK_ERROR"


class GroupApiError(Exception):
    """Classified failure of a Google Groups API call."""

    def __init__(self, error_type: GroupErrorType, message: str, status_code: Optional[int] = None):
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(message)


@dataclass
class GroupValidationResult:
    can_manage: bool
    allows_external_members: bool
    error: Optional[str] = None
    error_type: Optional[GroupErrorType] = None


def is_consumer_group(group_email: str, suffix: str | None = None) -> bool:
    """Consumer groups (``@googlegroups.com``) only support manual joining."""
    suffix = (suffix or settings.consumer_group_suffix).lower()
    return group_email.strip().lower().endswith(suffix)


def classify_response(response: httpx.Response, action: str) -> GroupApiError:
    if response.status_code == 401:
        error_type = GroupErrorType.AUTHENTICATION
    elif response.status_code == 403:
        error_type = GroupErrorType.ACCESS_DENIED
    elif response.status_code == 404:
        error_type = GroupErrorType.NOT_FOUND
    else:
        error_type = GroupErrorType.NETWORK_ERROR
    return GroupApiError(
        error_type,
        f"{action} failed: {response.status_code} - {response.text[:200]}",
        status_code=response.status_code,
    )


class GoogleGroupsClient:
    """Thin async wrapper over the Google Groups HTTP APIs.

    Every call takes the owner's OAuth access token. Non-success responses
    raise ``GroupApiError``; callers decide whether a failure is fatal.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout if timeout is not None else settings.group_api_timeout_seconds
        # Injected in tests
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _headers(access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

    async def _request(self, method: str, url: str, action: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise GroupApiError(GroupErrorType.NETWORK_ERROR, f"{action} timed out: {e}")
        except httpx.HTTPError as e:
            raise GroupApiError(GroupErrorType.NETWORK_ERROR, f"{action} failed: {e}")

    @staticmethod
    def _json(response: httpx.Response, action: str) -> dict:
        """Decode a JSON object body; anything else is treated like a network failure."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise GroupApiError(
                GroupErrorType.NETWORK_ERROR,
                f"{action} returned an unreadable response: {response.text[:200]}",
                status_code=response.status_code,
            )
        return data

    async def check_membership(self, group_email: str, user_email: str, access_token: str) -> bool:
        """Return True if ``user_email`` is already a member of the group."""
        url = (
            f"{GOOGLE_DIRECTORY_API_BASE}/groups/{quote(group_email)}"
            f"/members/{quote(user_email)}"
        )
        response = await self._request(
            "GET", url, "Membership check", headers=self._headers(access_token)
        )
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            raise classify_response(response, "Membership check")

        member_email = self._json(response, "Membership check").get("email") or ""
        return member_email.lower() == user_email.lower()

    async def add_member(self, group_email: str, user_email: str, access_token: str) -> bool:
        """Add ``user_email`` to a Workspace group.

        An existing membership counts as success.
        """
        if is_consumer_group(group_email):
            raise GroupApiError(
                GroupErrorType.CONSUMER_GROUP,
                f"Cannot add members to consumer group {group_email} through the API",
            )

        if await self.check_membership(group_email, user_email, access_token):
            logger.info(f"{user_email} is already a member of {group_email}")
            return True

        response = await self._request(
            "POST",
            f"{GOOGLE_DIRECTORY_API_BASE}/groups/{quote(group_email)}/members",
            "Add member",
            headers=self._headers(access_token),
            json={"email": user_email, "role": "MEMBER"},
        )
        if response.status_code == 409:
            logger.info(f"{user_email} was already added to {group_email}")
            return True
        if response.status_code not in (200, 201):
            raise classify_response(response, "Add member")

        logger.info(f"Added {user_email} to group {group_email}")
        return True

    async def can_manage_group(self, group_email: str, access_token: str) -> bool:
        """Return True if the credential can read the group through the Directory API."""
        if is_consumer_group(group_email):
            raise GroupApiError(
                GroupErrorType.CONSUMER_GROUP,
                f"{group_email} is a consumer group; the Directory API cannot manage it",
            )

        response = await self._request(
            "GET",
            f"{GOOGLE_DIRECTORY_API_BASE}/groups/{quote(group_email)}",
            "Group lookup",
            headers=self._headers(access_token),
        )
        if response.status_code != 200:
            raise classify_response(response, "Group lookup")
        return True

    async def check_external_member_policy(self, group_email: str, access_token: str) -> bool:
        """Return True if the Workspace group accepts members outside its domain.

        An unknown policy is reported as False so the owner verifies it manually.
        """
        await self.can_manage_group(group_email, access_token)

        response = await self._request(
            "GET",
            f"{GOOGLE_GROUPS_SETTINGS_API_BASE}/groups/{quote(group_email)}",
            "Group settings lookup",
            headers=self._headers(access_token),
            params={"alt": "json"},
        )
        if response.status_code != 200:
            raise classify_response(response, "Group settings lookup")

        data = self._json(response, "Group settings lookup") if response.content else {}
        if not data:
            raise GroupApiError(
                GroupErrorType.ACCESS_DENIED,
                f"Cannot read settings of {group_email}: insufficient permissions",
                status_code=response.status_code,
            )

        flag = str(data.get("allowExternalMembers", "")).lower()
        if flag == "true":
            return True
        if flag != "false":
            logger.info(f"External member policy of {group_email} is unknown")
        return False

    async def refresh_access_token(self, refresh_token: str) -> Optional[str]:
        """Exchange a refresh token for a new access token.

        Returns None when the OAuth client is not configured or Google rejects
        the refresh token.
        """
        if not settings.google_client_id or not settings.google_client_secret:
            logger.warning("Google OAuth client not configured, cannot refresh access token")
            return None

        response = await self._request(
            "POST",
            GOOGLE_OAUTH_TOKEN_URL,
            "Token refresh",
            data={
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code != 200:
            logger.error(f"Failed to refresh access token: {response.status_code}")
            return None
        try:
            return self._json(response, "Token refresh").get("access_token")
        except GroupApiError as e:
            logger.error(f"Failed to refresh access token: {e}")
            return None

    async def validate_group(self, group_email: str, access_token: str) -> GroupValidationResult:
        """Check whether the owner can manage a group and whether it accepts outsiders."""
        if is_consumer_group(group_email):
            return GroupValidationResult(
                can_manage=False,
                allows_external_members=True,
                error="Consumer Google Groups must be managed manually",
                error_type=GroupErrorType.CONSUMER_GROUP,
            )

        try:
            allows_external = await self.check_external_member_policy(group_email, access_token)
        except GroupApiError as e:
            logger.warning(f"Group validation failed for {group_email}: {e}")
            return GroupValidationResult(
                can_manage=False,
                allows_external_members=False,
                error=str(e),
                error_type=e.error_type,
            )

        return GroupValidationResult(can_manage=True, allows_external_members=allows_external)


# Global instance
google_groups_client = GoogleGroupsClient()
