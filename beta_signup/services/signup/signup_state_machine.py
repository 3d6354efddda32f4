"""Per-tester signup workflow.

The stage of a tester is derived from the persisted Tester fields plus the
request context (authenticated email, manual-join claim, verified secret
link); nothing about the workflow is kept between requests.

    NOT_STARTED -> AWAITING_GROUP_JOIN -> AWAITING_IDENTITY_VERIFICATION
                -> CODE_ASSIGNMENT_PENDING -> COMPLETED

A tester that already holds a code is always COMPLETED and the code is
replayed; allocation runs again only for testers without one.
"""

import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from beta_signup.models.app import App
from beta_signup.models.tester import Tester, normalize_email, tester_key
from beta_signup.services.allocation.allocation_engine import (
    AllocationEngine,
    AllocationResult,
    AllocationStatus,
)
from beta_signup.services.apps.app_service import AppService
from beta_signup.services.membership.membership_orchestrator import (
    GroupType,
    MembershipOrchestrator,
)
from beta_signup.services.testers.tester_registry import TesterAlreadyExistsError, TesterRegistry
from beta_signup.utils.exceptions import AuthenticationRequiredError, PermissionDeniedError
from beta_signup.utils.sentry_utils import capture_message

logger = logging.getLogger(__name__)


class SignupStage(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_GROUP_JOIN = "awaiting_group_join"
    AWAITING_IDENTITY_VERIFICATION = "awaiting_identity_verification"
    CODE_ASSIGNMENT_PENDING = "code_assignment_pending"
    COMPLETED = "completed"


@dataclass
class SignupResult:
    app_id: str
    stage: SignupStage
    email: Optional[str] = None
    promotional_code: Optional[str] = None
    has_joined_group: bool = False
    already_existing: bool = False
    allocation_status: Optional[AllocationStatus] = None
    # A transient failure left the tester without a code; visiting again may fix it
    retry_suggested: bool = False


def derive_stage(
    group_type: GroupType,
    tester: Optional[Tester],
    authenticated: bool,
    claimed_joined: bool = False,
    secret_verified: bool = False,
) -> SignupStage:
    """Where a tester stands, given their record and the current request."""
    if tester is not None and tester.promotional_code is not None:
        return SignupStage.COMPLETED

    joined = claimed_joined or secret_verified or (tester is not None and tester.has_joined_group)

    if not authenticated:
        if group_type == GroupType.CONSUMER and not joined:
            return SignupStage.AWAITING_GROUP_JOIN
        return SignupStage.AWAITING_IDENTITY_VERIFICATION

    if group_type == GroupType.MANAGED or joined:
        return SignupStage.CODE_ASSIGNMENT_PENDING
    return SignupStage.AWAITING_GROUP_JOIN


def secret_matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class SignupService:
    """Sequences group join, identity check and code allocation for a tester."""

    def __init__(
        self,
        app_service: AppService,
        tester_registry: TesterRegistry,
        allocation_engine: AllocationEngine,
        membership: MembershipOrchestrator,
    ):
        self.app_service = app_service
        self.testers = tester_registry
        self.allocation = allocation_engine
        self.membership = membership

    async def submit_signup(
        self,
        app_id: str,
        email: Optional[str],
        claimed_joined: bool = False,
        redirect_to: Optional[str] = None,
    ) -> SignupResult:
        """Create or advance the tester's signup.

        Args:
            app_id: App being joined
            email: Authenticated email, None for anonymous visitors
            claimed_joined: Tester says they joined the (consumer) group
            redirect_to: Path to come back to after sign-in

        Raises:
            NotFoundError: unknown app
            AuthenticationRequiredError: the next step needs a signed-in tester
        """
        app = await self.app_service.get_app(app_id)
        tester = await self.testers.find_by_email(app_id, email) if email else None

        stage = derive_stage(
            self.membership.group_type(app),
            tester,
            authenticated=email is not None,
            claimed_joined=claimed_joined,
        )
        logger.debug(f"Signup for app {app_id} entering stage {stage.value}")

        if stage == SignupStage.AWAITING_IDENTITY_VERIFICATION:
            raise AuthenticationRequiredError(
                "Sign in to confirm your email before receiving a code",
                redirect_to=redirect_to,
            )
        if email is None:
            return SignupResult(app_id=app_id, stage=stage)

        return await self._advance(app, normalize_email(email), tester, stage, claimed_joined=claimed_joined)

    async def complete_via_secret_link(
        self,
        app_id: str,
        secret: Optional[str],
        email: Optional[str],
        redirect_to: Optional[str] = None,
    ) -> SignupResult:
        """Handle the link from the group welcome message.

        Only members receive the welcome message, so a matching secret counts
        as proof of membership. A mismatch changes nothing.

        Raises:
            NotFoundError: unknown app
            PermissionDeniedError: secret missing or wrong
            AuthenticationRequiredError: no signed-in tester
        """
        app = await self.app_service.get_app(app_id)

        if not secret_matches(secret, app.app_id_secret):
            logger.warning(f"Rejected complete link for app {app_id}: invalid secret")
            raise PermissionDeniedError(
                "Invalid or missing access token. Please use the link from the Google Group welcome message."
            )

        if email is None:
            raise AuthenticationRequiredError(redirect_to=redirect_to)

        email = normalize_email(email)
        tester = await self.testers.find_by_email(app_id, email)
        stage = derive_stage(
            self.membership.group_type(app),
            tester,
            authenticated=True,
            secret_verified=True,
        )
        return await self._advance(app, email, tester, stage, membership_proven=True)

    async def get_tester_status(self, app_id: str, email: str) -> Optional[Tester]:
        """The tester record for (app, email), or None. Read-only."""
        await self.app_service.get_app(app_id)
        return await self.testers.find_by_email(app_id, email)

    async def describe(self, app: App, email: Optional[str]) -> SignupResult:
        """Current stage of a visitor without changing anything."""
        tester = await self.testers.find_by_email(app.id, email) if email else None
        stage = derive_stage(self.membership.group_type(app), tester, authenticated=email is not None)
        if tester is None:
            if email is not None and stage == SignupStage.CODE_ASSIGNMENT_PENDING:
                stage = SignupStage.NOT_STARTED
            return SignupResult(app_id=app.id, stage=stage, email=email)
        return self._result_from_tester(tester, stage, already_existing=True)

    async def _advance(
        self,
        app: App,
        email: str,
        tester: Optional[Tester],
        stage: SignupStage,
        claimed_joined: bool = False,
        membership_proven: bool = False,
    ) -> SignupResult:
        # A failed store write rolls the session back and expires every loaded
        # instance, so only these plain values are read after the first write
        app_id = app.id
        group_type = self.membership.group_type(app)
        already_existing = tester is not None
        tester_id = tester.id if tester is not None else None
        stored_joined = tester.has_joined_group if tester is not None else False
        stored_code = tester.promotional_code if tester is not None else None
        joined = stored_joined

        if not joined:
            outcome = await self.membership.resolve_membership(
                app,
                email,
                claimed_joined=claimed_joined,
                already_joined=membership_proven,
            )
            joined = outcome.has_joined_group

        if tester_id is None:
            try:
                await self.testers.create(app_id, email, has_joined_group=joined)
            except TesterAlreadyExistsError:
                # A concurrent request owns this signup; report its record as is
                logger.info(f"Tester {email} for app {app_id} was created concurrently")
                existing = await self.testers.find_by_email(app_id, email)
                if existing is None:
                    return SignupResult(app_id=app_id, stage=stage, email=email, retry_suggested=True)
                return self._result_from_tester(
                    existing,
                    derive_stage(group_type, existing, authenticated=True),
                    already_existing=True,
                )
            except SQLAlchemyError as e:
                logger.error(f"Failed to create tester {email} for app {app_id}: {e}")
                return SignupResult(app_id=app_id, stage=stage, email=email, retry_suggested=True)
        elif joined and not stored_joined:
            try:
                await self.testers.update(tester_id, app_id, has_joined_group=True)
            except SQLAlchemyError as e:
                logger.error(f"Failed to record group membership of {email} for app {app_id}: {e}")

        if stored_code is not None:
            return SignupResult(
                app_id=app_id,
                stage=SignupStage.COMPLETED,
                email=email,
                promotional_code=stored_code,
                has_joined_group=joined,
                already_existing=True,
            )

        stage = derive_stage(group_type, None, authenticated=True, claimed_joined=joined)
        if stage != SignupStage.CODE_ASSIGNMENT_PENDING:
            return SignupResult(
                app_id=app_id,
                stage=stage,
                email=email,
                has_joined_group=joined,
                already_existing=already_existing,
            )

        allocation = await self.allocation.allocate(app_id, email)
        return await self._record_allocation(app_id, email, joined, already_existing, allocation)

    async def _record_allocation(
        self,
        app_id: str,
        email: str,
        joined: bool,
        already_existing: bool,
        allocation: AllocationResult,
    ) -> SignupResult:
        result = SignupResult(
            app_id=app_id,
            stage=SignupStage.COMPLETED,
            email=email,
            has_joined_group=joined,
            already_existing=already_existing,
            allocation_status=allocation.status,
            retry_suggested=allocation.should_retry,
        )
        if allocation.should_retry:
            result.stage = SignupStage.CODE_ASSIGNMENT_PENDING
        if not allocation.assigned:
            return result

        tester_id = tester_key(app_id, email)
        try:
            applied = await self.testers.update(
                tester_id,
                app_id,
                has_joined_group=True if joined else None,
                promotional_code=allocation.code,
            )
        except SQLAlchemyError as e:
            self._report_lost_code(app_id, email, allocation, str(e))
            result.stage = SignupStage.CODE_ASSIGNMENT_PENDING
            result.allocation_status = AllocationStatus.STORE_ERROR
            result.retry_suggested = True
            return result

        if not applied:
            # Another visit by the same tester stored its code first
            self._report_lost_code(app_id, email, allocation, "tester already holds a code")
            current = await self.testers.find_by_email(app_id, email)
            result.promotional_code = current.promotional_code if current else None
            return result

        result.promotional_code = allocation.code
        return result

    @staticmethod
    def _result_from_tester(tester: Tester, stage: SignupStage, already_existing: bool) -> SignupResult:
        return SignupResult(
            app_id=tester.app_id,
            stage=stage,
            email=tester.email,
            promotional_code=tester.promotional_code,
            has_joined_group=tester.has_joined_group,
            already_existing=already_existing,
        )

    @staticmethod
    def _report_lost_code(app_id: str, email: str, allocation: AllocationResult, reason: str) -> None:
        logger.error(
            f"Promotional code {allocation.code_id} of app {app_id} was redeemed for {email} "
            f"but not stored on the tester ({reason}); the code is lost from the pool"
        )
        capture_message(
            "Promotional code redeemed but not assigned",
            level="error",
            app_id=app_id,
            code_id=allocation.code_id or "",
        )
