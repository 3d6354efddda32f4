"""
Signup State Machine Tests

End-to-end behaviour of the signup workflow against a real (SQLite) store:
the two-code demo scenario, idempotent re-visits, the growing pool retry,
the secret link gate and consumer/managed branching.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup.models import Tester
from beta_signup.services.allocation import AllocationStatus
from beta_signup.services.google_groups import GroupApiError, GroupErrorType
from beta_signup.services.membership import GroupType
from beta_signup.services.signup import SignupStage, derive_stage, secret_matches
from beta_signup.services.testers import TesterRegistry
from beta_signup.utils.exceptions import (
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
)
from tests.conftest import MANAGED_GROUP

APP_ID = "com.example.demo"


async def snapshot(code_pool, tester_registry):
    codes = await code_pool.list_codes(APP_ID)
    testers = await tester_registry.list_for_app(APP_ID)
    return (
        sorted((c.code, c.redeemed_by) for c in codes),
        sorted((t.email, t.has_joined_group, t.promotional_code) for t in testers),
    )


class TestDeriveStage:
    def test_code_holder_is_completed(self):
        tester = Tester(has_joined_group=True, promotional_code="A1")
        assert derive_stage(GroupType.CONSUMER, tester, authenticated=False) == SignupStage.COMPLETED

    def test_anonymous_consumer_visitor_must_join(self):
        assert derive_stage(GroupType.CONSUMER, None, authenticated=False) == SignupStage.AWAITING_GROUP_JOIN

    def test_anonymous_claim_needs_identity(self):
        stage = derive_stage(GroupType.CONSUMER, None, authenticated=False, claimed_joined=True)
        assert stage == SignupStage.AWAITING_IDENTITY_VERIFICATION

    def test_anonymous_managed_visitor_needs_identity(self):
        assert derive_stage(GroupType.MANAGED, None, authenticated=False) == SignupStage.AWAITING_IDENTITY_VERIFICATION

    def test_authenticated_managed_visitor_gets_code(self):
        assert derive_stage(GroupType.MANAGED, None, authenticated=True) == SignupStage.CODE_ASSIGNMENT_PENDING

    def test_authenticated_consumer_without_claim_must_join(self):
        assert derive_stage(GroupType.CONSUMER, None, authenticated=True) == SignupStage.AWAITING_GROUP_JOIN

    def test_secret_link_counts_as_membership(self):
        stage = derive_stage(GroupType.CONSUMER, None, authenticated=True, secret_verified=True)
        assert stage == SignupStage.CODE_ASSIGNMENT_PENDING

    def test_joined_tester_without_code_is_pending(self):
        tester = Tester(has_joined_group=True, promotional_code=None)
        assert derive_stage(GroupType.CONSUMER, tester, authenticated=True) == SignupStage.CODE_ASSIGNMENT_PENDING


class TestSecretMatches:
    def test_exact_match(self):
        assert secret_matches("abc", "abc") is True

    @pytest.mark.parametrize("provided", [None, "", "ABC", "abc ", "ab"])
    def test_mismatch(self, provided):
        assert secret_matches(provided, "abc") is False


class TestSubmitSignup:
    async def test_demo_scenario(self, make_app, signup_service, code_pool):
        """Two codes, three testers, then the first tester comes back."""
        await make_app(codes=("A1", "A2"))

        x = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)
        assert x.promotional_code in {"A1", "A2"}
        assert x.stage == SignupStage.COMPLETED
        assert await code_pool.count_codes(APP_ID) == (2, 1)

        y = await signup_service.submit_signup(APP_ID, "y@example.com", claimed_joined=True)
        assert y.promotional_code in {"A1", "A2"}
        assert y.promotional_code != x.promotional_code
        assert await code_pool.count_codes(APP_ID) == (2, 2)

        z = await signup_service.submit_signup(APP_ID, "z@example.com", claimed_joined=True)
        assert z.promotional_code is None
        assert z.allocation_status == AllocationStatus.POOL_EXHAUSTED
        assert z.retry_suggested is False

        again = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)
        assert again.promotional_code == x.promotional_code
        assert again.already_existing is True

    async def test_revisit_replays_code_without_allocating(self, make_app, signup_service, code_pool):
        await make_app(codes=("A1", "A2"))
        first = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        with patch.object(signup_service.allocation, "allocate", wraps=signup_service.allocation.allocate) as allocate:
            second = await signup_service.submit_signup(APP_ID, "X@Example.com")
            third = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert second.promotional_code == first.promotional_code
        assert third.promotional_code == first.promotional_code
        allocate.assert_not_called()
        assert await code_pool.count_codes(APP_ID) == (2, 1)

    async def test_exhausted_pool_still_creates_tester(self, make_app, signup_service, tester_registry):
        await make_app(codes=())

        result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.promotional_code is None
        assert result.has_joined_group is True
        tester = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert tester is not None
        assert tester.has_joined_group is True
        assert tester.promotional_code is None

    async def test_growing_pool_retry(self, make_app, signup_service, code_pool, tester_registry):
        await make_app(codes=())
        first = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)
        assert first.promotional_code is None

        await code_pool.add_codes(APP_ID, ["LATE-1"])
        second = await signup_service.submit_signup(APP_ID, "x@example.com")

        assert second.promotional_code == "LATE-1"
        assert second.stage == SignupStage.COMPLETED
        tester = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert tester.promotional_code == "LATE-1"

    async def test_anonymous_claim_requires_sign_in(self, make_app, signup_service, code_pool, tester_registry):
        await make_app()
        before = await snapshot(code_pool, tester_registry)

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            await signup_service.submit_signup(
                APP_ID, None, claimed_joined=True, redirect_to=f"/api/v1/signup/{APP_ID}"
            )

        assert exc_info.value.redirect_to == f"/api/v1/signup/{APP_ID}"
        assert await snapshot(code_pool, tester_registry) == before

    async def test_anonymous_consumer_visit_awaits_group_join(self, make_app, signup_service):
        await make_app()

        result = await signup_service.submit_signup(APP_ID, None)

        assert result.stage == SignupStage.AWAITING_GROUP_JOIN
        assert result.promotional_code is None

    async def test_consumer_without_claim_gets_no_code(self, make_app, signup_service, tester_registry, code_pool):
        await make_app()

        result = await signup_service.submit_signup(APP_ID, "x@example.com")

        assert result.stage == SignupStage.AWAITING_GROUP_JOIN
        assert result.promotional_code is None
        assert await code_pool.count_codes(APP_ID) == (2, 0)
        tester = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert tester.has_joined_group is False

    async def test_later_claim_upgrades_existing_tester(self, make_app, signup_service, tester_registry):
        await make_app()
        await signup_service.submit_signup(APP_ID, "x@example.com")

        result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.promotional_code in {"A1", "A2"}
        assert result.already_existing is True
        tester = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert tester.has_joined_group is True

    async def test_managed_group_joins_and_allocates_in_one_step(self, make_app, signup_service, groups_client):
        await make_app(group_email=MANAGED_GROUP, access_token="owner-token")

        result = await signup_service.submit_signup(APP_ID, "x@example.com")

        assert result.stage == SignupStage.COMPLETED
        assert result.has_joined_group is True
        assert result.promotional_code in {"A1", "A2"}
        groups_client.add_member.assert_awaited_once()

    async def test_managed_revisit_does_not_call_group_api_again(self, make_app, signup_service, groups_client):
        await make_app(group_email=MANAGED_GROUP, access_token="owner-token")
        await signup_service.submit_signup(APP_ID, "x@example.com")
        await signup_service.submit_signup(APP_ID, "x@example.com")

        groups_client.add_member.assert_awaited_once()

    async def test_managed_group_failure_still_allocates(self, make_app, signup_service, groups_client):
        await make_app(group_email=MANAGED_GROUP, access_token="owner-token")
        groups_client.add_member.side_effect = GroupApiError(GroupErrorType.NETWORK_ERROR, "boom")

        result = await signup_service.submit_signup(APP_ID, "x@example.com")

        assert result.has_joined_group is False
        assert result.promotional_code in {"A1", "A2"}

    async def test_unknown_app(self, make_app, signup_service):
        await make_app()

        with pytest.raises(NotFoundError):
            await signup_service.submit_signup("com.example.unknown", "x@example.com", claimed_joined=True)

    async def test_failed_tester_update_reports_retry(self, make_app, signup_service, code_pool):
        await make_app(codes=("A1",))

        with patch.object(
            signup_service.testers,
            "update",
            side_effect=OperationalError("UPDATE", {}, Exception("database is locked")),
        ):
            result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.promotional_code is None
        assert result.retry_suggested is True
        assert result.allocation_status == AllocationStatus.STORE_ERROR
        assert result.stage == SignupStage.CODE_ASSIGNMENT_PENDING


class TestCompleteViaSecretLink:
    async def test_wrong_secret_changes_nothing(self, make_app, signup_service, code_pool, tester_registry):
        await make_app(secret="right-secret")
        before = await snapshot(code_pool, tester_registry)

        for secret in ("wrong-secret", "", None):
            with pytest.raises(PermissionDeniedError):
                await signup_service.complete_via_secret_link(APP_ID, secret, "x@example.com")

        assert await snapshot(code_pool, tester_registry) == before

    async def test_wrong_secret_checked_before_authentication(self, make_app, signup_service):
        await make_app(secret="right-secret")

        with pytest.raises(PermissionDeniedError):
            await signup_service.complete_via_secret_link(APP_ID, "wrong-secret", None)

    async def test_valid_secret_requires_sign_in(self, make_app, signup_service):
        await make_app(secret="right-secret")

        with pytest.raises(AuthenticationRequiredError):
            await signup_service.complete_via_secret_link(APP_ID, "right-secret", None)

    async def test_valid_secret_creates_joined_tester_with_code(self, make_app, signup_service, tester_registry):
        await make_app(secret="right-secret")

        result = await signup_service.complete_via_secret_link(APP_ID, "right-secret", "x@example.com")

        assert result.stage == SignupStage.COMPLETED
        assert result.promotional_code in {"A1", "A2"}
        tester = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert tester.has_joined_group is True
        assert tester.promotional_code == result.promotional_code

    async def test_valid_secret_upgrades_waiting_tester(self, make_app, signup_service):
        await make_app(secret="right-secret")
        waiting = await signup_service.submit_signup(APP_ID, "x@example.com")
        assert waiting.stage == SignupStage.AWAITING_GROUP_JOIN

        result = await signup_service.complete_via_secret_link(APP_ID, "right-secret", "x@example.com")

        assert result.promotional_code in {"A1", "A2"}
        assert result.has_joined_group is True
        assert result.already_existing is True


class TestStatus:
    async def test_status_does_not_mutate(self, make_app, signup_service, code_pool, tester_registry):
        await make_app()
        before = await snapshot(code_pool, tester_registry)

        assert await signup_service.get_tester_status(APP_ID, "x@example.com") is None
        assert await snapshot(code_pool, tester_registry) == before

    async def test_status_returns_record(self, make_app, signup_service):
        await make_app()
        await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        tester = await signup_service.get_tester_status(APP_ID, "x@example.com")

        assert tester.promotional_code in {"A1", "A2"}

    async def test_describe_new_authenticated_visitor(self, make_app, signup_service, app_service):
        await make_app(group_email=MANAGED_GROUP)
        app = await app_service.get_app(APP_ID)

        result = await signup_service.describe(app, "x@example.com")

        assert result.stage == SignupStage.NOT_STARTED

    async def test_incomplete_app_is_hidden(self, make_app, signup_service, db):
        app = await make_app()
        app.is_setup_complete = False
        await db.commit()

        with pytest.raises(NotFoundError):
            await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)


class TestConcurrentSignup:
    async def test_concurrent_duplicate_create_does_not_allocate(
        self, make_app, signup_service, tester_registry, code_pool, session_factory
    ):
        """The second request for the same tester hits the key conflict and takes no code."""
        await make_app()
        real_find = tester_registry.find_by_email
        calls = {"n": 0}

        async def find_missing_once(app_id, email):
            calls["n"] += 1
            if calls["n"] == 1:
                # Another request creates the record after this lookup
                async with session_factory() as other:
                    await TesterRegistry(other).create(app_id, email, has_joined_group=True)
                return None
            return await real_find(app_id, email)

        with patch.object(tester_registry, "find_by_email", side_effect=find_missing_once):
            result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.already_existing is True
        assert result.promotional_code is None
        assert await code_pool.count_codes(APP_ID) == (2, 0)
        assert len(await tester_registry.list_for_app(APP_ID)) == 1


def locked_commit():
    """Make every session commit fail while active; rollbacks stay real."""
    return patch.object(
        AsyncSession,
        "commit",
        side_effect=OperationalError("COMMIT", {}, Exception("database is locked")),
    )


class TestStoreFailuresOnRealSession:
    async def test_failed_code_write_reports_lost_code(self, make_app, signup_service, tester_registry, code_pool):
        await make_app(codes=("A1",))
        real_update = tester_registry.update

        async def update_with_failing_commit(*args, **kwargs):
            if kwargs.get("promotional_code") is None:
                return await real_update(*args, **kwargs)
            with locked_commit():
                return await real_update(*args, **kwargs)

        with patch.object(tester_registry, "update", side_effect=update_with_failing_commit), patch(
            "beta_signup.services.signup.signup_state_machine.capture_message"
        ) as capture:
            result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.allocation_status == AllocationStatus.STORE_ERROR
        assert result.retry_suggested is True
        assert result.promotional_code is None
        assert result.stage == SignupStage.CODE_ASSIGNMENT_PENDING
        assert result.app_id == APP_ID
        capture.assert_called_once()
        assert capture.call_args.kwargs["app_id"] == APP_ID

        stored = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert stored is not None
        assert stored.promotional_code is None
        assert await code_pool.count_codes(APP_ID) == (1, 1)

    async def test_failed_redeem_keeps_code_available(self, make_app, signup_service, tester_registry, code_pool):
        await make_app(codes=("A1",))
        real_redeem = code_pool.redeem

        async def redeem_with_failing_commit(*args, **kwargs):
            with locked_commit():
                return await real_redeem(*args, **kwargs)

        with patch.object(code_pool, "redeem", side_effect=redeem_with_failing_commit):
            result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.allocation_status == AllocationStatus.STORE_ERROR
        assert result.retry_suggested is True
        assert result.promotional_code is None
        assert await code_pool.count_codes(APP_ID) == (1, 0)

        retried = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)
        assert retried.promotional_code == "A1"
        assert retried.already_existing is True

    async def test_failed_membership_write_still_allocates(self, make_app, signup_service, tester_registry):
        await make_app(codes=("A1",))
        waiting = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=False)
        assert waiting.stage == SignupStage.AWAITING_GROUP_JOIN
        real_update = tester_registry.update

        async def update_with_failing_commit(*args, **kwargs):
            if kwargs.get("promotional_code") is not None:
                return await real_update(*args, **kwargs)
            with locked_commit():
                return await real_update(*args, **kwargs)

        with patch.object(tester_registry, "update", side_effect=update_with_failing_commit):
            result = await signup_service.submit_signup(APP_ID, "x@example.com", claimed_joined=True)

        assert result.promotional_code == "A1"
        assert result.already_existing is True
        stored = await tester_registry.find_by_email(APP_ID, "x@example.com")
        assert stored.promotional_code == "A1"
        assert stored.has_joined_group is True
