"""Assigns single-use promotional codes to testers.

A code is handed out only after its conditional redemption write succeeds,
so two testers can never receive the same code. Losing the race to another
request re-reads the pool, a bounded number of times.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from beta_signup.services.code_pool.code_pool_store import (
    CodePoolStore,
    PromotionalCodeNotFoundError,
)
from beta_signup.utils.constants import ALLOCATION_MAX_ATTEMPTS

logger = logging.getLogger(__name__)


class AllocationStatus(str, Enum):
    ASSIGNED = "assigned"
    POOL_EXHAUSTED = "pool_exhausted"
    CONTENDED = "contended"
    STORE_ERROR = "store_error"


@dataclass
class AllocationResult:
    status: AllocationStatus
    code: str | None = None
    code_id: str | None = None
    attempts: int = 0

    @property
    def assigned(self) -> bool:
        return self.status == AllocationStatus.ASSIGNED

    @property
    def should_retry(self) -> bool:
        """The pool may still hold a code for this tester on a later visit."""
        return self.status in (AllocationStatus.CONTENDED, AllocationStatus.STORE_ERROR)


class AllocationEngine:
    """Picks an available code and commits its redemption."""

    def __init__(self, code_pool: CodePoolStore, max_attempts: int = ALLOCATION_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.code_pool = code_pool
        self.max_attempts = max_attempts

    async def allocate(self, app_id: str, email: str) -> AllocationResult:
        """Redeem one available code of ``app_id`` for ``email``.

        Never raises for store failures: they are logged and reported as
        ``STORE_ERROR`` with no code, so an uncommitted code is never
        returned.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                candidate = await self.code_pool.find_one_available(app_id)
            except SQLAlchemyError as e:
                logger.error(f"Failed to read code pool for app {app_id} ({email}): {e}")
                return AllocationResult(AllocationStatus.STORE_ERROR, attempts=attempt)

            if candidate is None:
                logger.info(f"No promotional codes available for app {app_id} ({email})")
                return AllocationResult(AllocationStatus.POOL_EXHAUSTED, attempts=attempt)

            # A failed redeem expires the candidate along with the session
            code_id, code = candidate.id, candidate.code
            try:
                redeemed = await self.code_pool.redeem(code_id, email, app_id)
            except (SQLAlchemyError, PromotionalCodeNotFoundError) as e:
                logger.error(
                    f"Failed to redeem code {code_id} for {email} in app {app_id}: {e}"
                )
                return AllocationResult(AllocationStatus.STORE_ERROR, attempts=attempt)

            if redeemed:
                logger.info(f"Redeemed code {code_id} for {email} in app {app_id}")
                return AllocationResult(
                    AllocationStatus.ASSIGNED,
                    code=code,
                    code_id=code_id,
                    attempts=attempt,
                )

            logger.info(
                f"Code {code_id} of app {app_id} was redeemed concurrently, "
                f"retrying for {email} (attempt {attempt}/{self.max_attempts})"
            )

        logger.warning(
            f"Gave up allocating a code for {email} in app {app_id} "
            f"after {self.max_attempts} contended attempts"
        )
        return AllocationResult(AllocationStatus.CONTENDED, attempts=self.max_attempts)
