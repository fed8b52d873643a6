import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.settings import settings
from crud.dialect import insert_ignoring_conflicts
from models import Voter

logger = logging.getLogger(__name__)


class VoterCrud:

    def __init__(self):
        self.table = Voter

    async def get_voter(self, session: AsyncSession, voter_id: str) -> Optional[Voter]:
        stmt = select(Voter).where(Voter.id == voter_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def ensure_voter_exists(
        self,
        session: AsyncSession,
        voter_id: str,
        defaults: Optional[dict] = None,
    ) -> Voter:
        """Return the voter row, creating it with placeholder details if absent.

        The insert tolerates a concurrent insert of the same id, so two first
        votes racing for one voter both end up with the same row.
        """
        existing = await self.get_voter(session, voter_id)
        if existing:
            return existing

        defaults = defaults or {}
        values = {
            "id": voter_id,
            "display_name": defaults.get("display_name") or f"User {voter_id}",
            "email": defaults.get("email") or f"user{voter_id}@{settings.PLACEHOLDER_EMAIL_DOMAIN}",
        }
        stmt = insert_ignoring_conflicts(session, Voter, values, index_elements=["id"])
        result = await session.execute(stmt)
        if result.rowcount:
            logger.info(f"Created voter {voter_id}")

        return await self.get_voter(session, voter_id)

    async def lock_voter(self, session: AsyncSession, voter_id: str) -> Optional[Voter]:
        """Serialize writers for this voter until the surrounding transaction ends.

        PostgreSQL takes a row lock. SQLite has no row locks, so a no-op update
        is issued instead, which acquires the database write lock.
        """
        if session.get_bind().dialect.name == "sqlite":
            await session.execute(
                update(Voter)
                .where(Voter.id == voter_id)
                .values(display_name=Voter.display_name)
                .execution_options(synchronize_session=False)
            )
            return await self.get_voter(session, voter_id)

        stmt = select(Voter).where(Voter.id == voter_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()


voter_crud = VoterCrud()
