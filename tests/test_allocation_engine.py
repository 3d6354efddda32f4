"""
Allocation Engine Tests

Covers single assignment, bounded retry after a lost redemption race,
pool exhaustion and the degradation of store failures.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup.models import PromotionalCode
from beta_signup.services.allocation import AllocationEngine, AllocationStatus
from beta_signup.services.code_pool import CodePoolStore, PromotionalCodeNotFoundError


class StaleReadPool(CodePoolStore):
    """Returns a pre-read (possibly already redeemed) code on the first lookup."""

    def __init__(self, db, stale_code):
        super().__init__(db)
        self._stale_code = stale_code

    async def find_one_available(self, app_id):
        if self._stale_code is not None:
            stale, self._stale_code = self._stale_code, None
            return stale
        return await super().find_one_available(app_id)


def fake_code(code_id: str, code: str) -> PromotionalCode:
    return PromotionalCode(id=code_id, app_id="com.example.demo", code=code)


class TestAllocationEngine:
    async def test_rejects_non_positive_attempts(self, code_pool):
        with pytest.raises(ValueError):
            AllocationEngine(code_pool, max_attempts=0)

    async def test_assigns_code(self, make_app, code_pool):
        await make_app(codes=("A1",))

        result = await AllocationEngine(code_pool).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.ASSIGNED
        assert result.assigned is True
        assert result.code == "A1"
        assert result.attempts == 1
        assert await code_pool.count_codes("com.example.demo") == (1, 1)

    async def test_exhausted_pool_returns_none(self, make_app, code_pool):
        await make_app(codes=())

        result = await AllocationEngine(code_pool).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.POOL_EXHAUSTED
        assert result.code is None
        assert result.should_retry is False

    async def test_never_hands_out_more_codes_than_pool_size(self, make_app, code_pool):
        await make_app(codes=("A1", "A2"))
        engine = AllocationEngine(code_pool)

        results = [
            await engine.allocate("com.example.demo", f"tester{i}@example.com")
            for i in range(4)
        ]

        codes = [r.code for r in results if r.assigned]
        assert sorted(codes) == ["A1", "A2"]
        assert [r.status for r in results[2:]] == [AllocationStatus.POOL_EXHAUSTED] * 2

    async def test_lost_race_retries_with_next_code(self, make_app, db, session_factory):
        """A code redeemed between read and write is skipped for another one."""
        await make_app(codes=("A1", "A2"))

        async with session_factory() as other:
            other_pool = CodePoolStore(other)
            stale = await CodePoolStore(db).find_one_available("com.example.demo")
            assert await other_pool.redeem(stale.id, "winner@example.com", "com.example.demo") is True

        engine = AllocationEngine(StaleReadPool(db, stale))
        result = await engine.allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.ASSIGNED
        assert result.attempts == 2
        assert result.code_id != stale.id

    async def test_lost_race_on_last_code_reports_exhaustion(self, make_app, db, session_factory):
        await make_app(codes=("A1",))

        async with session_factory() as other:
            stale = await CodePoolStore(db).find_one_available("com.example.demo")
            assert await CodePoolStore(other).redeem(stale.id, "winner@example.com", "com.example.demo")

        result = await AllocationEngine(StaleReadPool(db, stale)).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.POOL_EXHAUSTED
        assert result.code is None

    async def test_gives_up_after_max_attempts(self):
        pool = AsyncMock(spec=CodePoolStore)
        pool.find_one_available.return_value = fake_code("c1", "A1")
        pool.redeem.return_value = False

        result = await AllocationEngine(pool, max_attempts=3).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.CONTENDED
        assert result.code is None
        assert result.should_retry is True
        assert pool.redeem.await_count == 3

    async def test_read_failure_is_store_error(self):
        pool = AsyncMock(spec=CodePoolStore)
        pool.find_one_available.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

        result = await AllocationEngine(pool).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.STORE_ERROR
        assert result.code is None
        pool.redeem.assert_not_awaited()

    async def test_redeem_failure_never_returns_code(self):
        pool = AsyncMock(spec=CodePoolStore)
        pool.find_one_available.return_value = fake_code("c1", "A1")
        pool.redeem.side_effect = OperationalError("UPDATE", {}, Exception("database is locked"))

        result = await AllocationEngine(pool).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.STORE_ERROR
        assert result.code is None
        assert result.should_retry is True

    async def test_failed_redeem_commit_rolls_back(self, make_app, code_pool):
        await make_app(codes=("A1",))

        with patch.object(
            AsyncSession,
            "commit",
            side_effect=OperationalError("COMMIT", {}, Exception("database is locked")),
        ):
            result = await AllocationEngine(code_pool).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.STORE_ERROR
        assert result.code is None
        assert result.should_retry is True
        assert await code_pool.count_codes("com.example.demo") == (1, 0)

    async def test_vanished_code_is_store_error(self):
        pool = AsyncMock(spec=CodePoolStore)
        pool.find_one_available.return_value = fake_code("c1", "A1")
        pool.redeem.side_effect = PromotionalCodeNotFoundError("c1", "com.example.demo")

        result = await AllocationEngine(pool).allocate("com.example.demo", "x@example.com")

        assert result.status == AllocationStatus.STORE_ERROR
        assert result.code is None
