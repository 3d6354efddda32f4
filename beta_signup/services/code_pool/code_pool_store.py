"""Durable pool of promotional codes for one app."""

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup.models.promotional_code import PromotionalCode

logger = logging.getLogger(__name__)


class PromotionalCodeNotFoundError(Exception):
    """Redeem was called with a code id that does not exist for the app."""

    def __init__(self, code_id: str, app_id: str):
        self.code_id = code_id
        self.app_id = app_id
        super().__init__(f"Promotional code {code_id} not found for app {app_id}")


class CodePoolStore:
    """Data access for the ``promotional_codes`` table.

    Every write commits on its own; there is no transaction spanning this
    store and the tester registry.
    """

    def __init__(self, db: AsyncSession):
        if db is None:
            raise ValueError("CodePoolStore requires a database session")
        self.db = db

    async def add_codes(self, app_id: str, codes: list[str]) -> list[str]:
        """Append codes to the pool and return their ids.

        Duplicate strings are stored as separate codes; callers de-duplicate
        before calling when they need to.
        """
        if not codes:
            return []

        now = datetime.utcnow()
        records = [PromotionalCode(app_id=app_id, code=code, created_at=now) for code in codes]
        self.db.add_all(records)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(f"Added {len(records)} promotional codes to app {app_id}")
        return [record.id for record in records]

    async def list_codes(self, app_id: str) -> list[PromotionalCode]:
        """All codes of an app, newest first."""
        result = await self.db.execute(
            select(PromotionalCode)
            .where(PromotionalCode.app_id == app_id)
            .order_by(PromotionalCode.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_codes(self, app_id: str) -> tuple[int, int]:
        """Return ``(total, redeemed)`` for the app."""
        result = await self.db.execute(
            select(
                func.count(PromotionalCode.id),
                func.count(PromotionalCode.redeemed_at),
            ).where(PromotionalCode.app_id == app_id)
        )
        total, redeemed = result.one()
        return total or 0, redeemed or 0

    async def find_one_available(self, app_id: str) -> PromotionalCode | None:
        """Any one code whose ``redeemed_at`` is NULL, or None if exhausted."""
        result = await self.db.execute(
            select(PromotionalCode)
            .where(
                PromotionalCode.app_id == app_id,
                PromotionalCode.redeemed_at.is_(None),
            )
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def redeem(self, code_id: str, redeemer_email: str, app_id: str) -> bool:
        """Mark a code redeemed if and only if it is still available.

        Returns:
            True if this call redeemed the code, False if another caller
            redeemed it first.

        Raises:
            PromotionalCodeNotFoundError: the code does not exist for the app
        """
        try:
            result = await self.db.execute(
                update(PromotionalCode)
                .where(
                    PromotionalCode.id == code_id,
                    PromotionalCode.app_id == app_id,
                    PromotionalCode.redeemed_at.is_(None),
                )
                .values(redeemed_at=datetime.utcnow(), redeemed_by=redeemer_email)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        if result.rowcount == 1:
            return True

        exists = await self.db.execute(
            select(PromotionalCode.id).where(
                PromotionalCode.id == code_id,
                PromotionalCode.app_id == app_id,
            )
        )
        if exists.scalar_one_or_none() is None:
            logger.error(f"Attempted to redeem unknown promotional code {code_id} for app {app_id}")
            raise PromotionalCodeNotFoundError(code_id, app_id)

        return False
