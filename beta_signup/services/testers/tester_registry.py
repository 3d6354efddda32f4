"""Durable registry of testers for one app."""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup.models.tester import Tester, normalize_email, tester_key

logger = logging.getLogger(__name__)


class TesterAlreadyExistsError(Exception):
    """An insert collided with an existing record for the same (app, email)."""

    def __init__(self, app_id: str, email: str):
        self.app_id = app_id
        self.email = email
        super().__init__(f"Tester {email} already exists for app {app_id}")


class TesterRegistry:
    """Data access for the ``testers`` table.

    Records are keyed by ``tester_key(app_id, email)``; emails are stored
    normalized (trimmed, lower-case).
    """

    def __init__(self, db: AsyncSession):
        if db is None:
            raise ValueError("TesterRegistry requires a database session")
        self.db = db

    async def find_by_email(self, app_id: str, email: str) -> Tester | None:
        result = await self.db.execute(
            select(Tester)
            .where(Tester.id == tester_key(app_id, email))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        app_id: str,
        email: str,
        has_joined_group: bool,
        promotional_code: str | None = None,
    ) -> str:
        """Insert a tester and return its id.

        Raises:
            TesterAlreadyExistsError: a record for (app_id, email) exists,
                including one inserted concurrently by another request
        """
        tester = Tester(
            id=tester_key(app_id, email),
            app_id=app_id,
            email=normalize_email(email),
            has_joined_group=has_joined_group,
            promotional_code=promotional_code,
            joined_at=datetime.utcnow(),
        )
        self.db.add(tester)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # Foreign key failures (unknown app) are not duplicates
            if await self.find_by_email(app_id, email) is None:
                raise
            raise TesterAlreadyExistsError(app_id, normalize_email(email))
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(
            f"Created tester {tester.email} for app {app_id} "
            f"(joined_group={has_joined_group}, has_code={promotional_code is not None})"
        )
        return tester.id

    async def update(
        self,
        tester_id: str,
        app_id: str,
        has_joined_group: bool | None = None,
        promotional_code: str | None = None,
    ) -> bool:
        """Add group membership and/or a promotional code to a tester.

        Fields can only be set, never cleared: ``has_joined_group`` only
        accepts True and ``promotional_code`` is written only while the
        stored value is NULL.

        Returns:
            False if a promotional code was given but the tester already had
            one (so nothing about the code changed), True otherwise.
        """
        if has_joined_group is False:
            raise ValueError("has_joined_group can only be set to True")

        applied = True
        try:
            if promotional_code is not None:
                values = {"promotional_code": promotional_code, "updated_at": datetime.utcnow()}
                if has_joined_group:
                    values["has_joined_group"] = True
                result = await self.db.execute(
                    update(Tester)
                    .where(
                        Tester.id == tester_id,
                        Tester.app_id == app_id,
                        Tester.promotional_code.is_(None),
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                applied = result.rowcount == 1
                if not applied and has_joined_group:
                    await self._mark_joined(tester_id, app_id)
            elif has_joined_group:
                await self._mark_joined(tester_id, app_id)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        return applied

    async def _mark_joined(self, tester_id: str, app_id: str) -> None:
        await self.db.execute(
            update(Tester)
            .where(Tester.id == tester_id, Tester.app_id == app_id)
            .values(has_joined_group=True, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )

    async def list_for_app(self, app_id: str) -> list[Tester]:
        result = await self.db.execute(
            select(Tester)
            .where(Tester.app_id == app_id)
            .order_by(Tester.joined_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
