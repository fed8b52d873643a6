import logging
from typing import Optional, Sequence

from sqlalchemy import String, select, delete, insert, func, literal
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import VideoNotFound, VoteCapExceeded
from core.settings import settings
from core.store import Store
from crud.video_crud import video_crud as VideoCrud
from crud.voter_crud import voter_crud as VoterCrud
from models import Vote
from schemas.vote_schema import ToggleVoteResult, VoteEligibility, VoterVote

logger = logging.getLogger(__name__)


def is_duplicate_vote_error(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "uq_votes_voter_video" in message or "votes.voter_id, votes.video_id" in message


class VoteCrud:

    def __init__(self):
        self.table = Vote

    async def get_vote(self, session: AsyncSession, voter_id: str, video_id: str) -> Optional[Vote]:
        stmt = select(Vote).where(
            Vote.voter_id == voter_id,
            Vote.video_id == video_id
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def delete_vote(self, session: AsyncSession, voter_id: str, video_id: str) -> bool:
        stmt = delete(Vote).where(
            Vote.voter_id == voter_id,
            Vote.video_id == video_id
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def insert_vote_within_cap(
        self,
        session: AsyncSession,
        voter_id: str,
        video_id: str,
        video_title: str,
        max_votes: int,
    ) -> bool:
        """Insert the vote only if the voter holds fewer than ``max_votes``.

        The count and the insert are one statement, so the cap is checked
        against the same snapshot the row is written into.
        """
        current_count = (
            select(func.count())
            .select_from(Vote)
            .where(Vote.voter_id == voter_id)
            .correlate(None)
            .scalar_subquery()
        )
        source = select(
            literal(voter_id, String),
            literal(video_id, String),
            literal(video_title, String),
        ).where(current_count < max_votes)
        stmt = insert(Vote.__table__).from_select(["voter_id", "video_id", "video_title"], source)
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def count_votes_by_video(self, session: AsyncSession, video_id: str) -> int:
        stmt = select(func.count()).select_from(Vote).where(Vote.video_id == video_id)
        return await session.scalar(stmt) or 0

    async def count_votes_by_voter(self, session: AsyncSession, voter_id: str) -> int:
        stmt = select(func.count()).select_from(Vote).where(Vote.voter_id == voter_id)
        return await session.scalar(stmt) or 0

    async def get_votes_by_voter(self, session: AsyncSession, voter_id: str) -> Sequence[Vote]:
        stmt = (
            select(Vote)
            .where(Vote.voter_id == voter_id)
            .order_by(Vote.created_at.desc(), Vote.id.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_vote_counts(self, session: AsyncSession, video_ids: Sequence[str]) -> dict:
        if not video_ids:
            return {}
        stmt = select(
            Vote.video_id,
            func.count(Vote.id).label("vote_count")
        ).where(
            Vote.video_id.in_(video_ids)
        ).group_by(Vote.video_id)

        result = await session.execute(stmt)
        return {row.video_id: row.vote_count for row in result}

    async def get_voted_video_ids(self, session: AsyncSession, voter_id: str, video_ids: Sequence[str]) -> set:
        if not video_ids:
            return set()
        stmt = select(Vote.video_id).where(
            Vote.voter_id == voter_id,
            Vote.video_id.in_(video_ids)
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())

    async def get_eligibility(self, session: AsyncSession, voter_id: str, max_votes: int) -> VoteEligibility:
        current_count = await self.count_votes_by_voter(session, voter_id)
        votes = await self.get_votes_by_voter(session, voter_id)
        return VoteEligibility(
            voter_id=voter_id,
            current_count=current_count,
            max_votes=max_votes,
            remaining_votes=max(0, max_votes - current_count),
            can_vote_more=current_count < max_votes,
            voted_video_ids=[vote.video_id for vote in votes],
        )


vote_crud = VoteCrud()


class VoteLedger:
    """Toggle votes for videos with at most ``max_votes`` active votes per voter.

    Each toggle is a single transaction. The voter row is locked before the
    existing-vote lookup, so concurrent toggles from one voter are applied one
    after another even across processes; the unique constraint on
    (voter_id, video_id) and the conditional insert back that up.
    """

    def __init__(self, store: Store, max_votes: Optional[int] = None):
        self.store = store
        self.max_votes = settings.MAX_VOTES_PER_VOTER if max_votes is None else max_votes

    async def toggle_vote(self, voter_id: str, video_ref: str, video_title: Optional[str] = None) -> ToggleVoteResult:
        resolved = {}

        async def _toggle(session: AsyncSession) -> ToggleVoteResult:
            video = await VideoCrud.resolve_video(session, video_ref)
            if video is None:
                raise VideoNotFound(video_ref)
            resolved["video_id"] = video.id
            title = video.title or video_title or ""

            await VoterCrud.ensure_voter_exists(session, voter_id)
            await VoterCrud.lock_voter(session, voter_id)

            existing = await vote_crud.get_vote(session, voter_id, video.id)
            if existing:
                await vote_crud.delete_vote(session, voter_id, video.id)
                return ToggleVoteResult(
                    action="removed",
                    video_id=video.id,
                    new_video_vote_count=await vote_crud.count_votes_by_video(session, video.id),
                    voter_vote_count=await vote_crud.count_votes_by_voter(session, voter_id),
                )

            eligibility = await vote_crud.get_eligibility(session, voter_id, self.max_votes)
            if not eligibility.can_vote_more:
                raise VoteCapExceeded(eligibility.current_count, self.max_votes, eligibility.voted_video_ids)

            inserted = await vote_crud.insert_vote_within_cap(session, voter_id, video.id, title, self.max_votes)
            if not inserted:
                eligibility = await vote_crud.get_eligibility(session, voter_id, self.max_votes)
                raise VoteCapExceeded(eligibility.current_count, self.max_votes, eligibility.voted_video_ids)

            return ToggleVoteResult(
                action="added",
                video_id=video.id,
                new_video_vote_count=await vote_crud.count_votes_by_video(session, video.id),
                voter_vote_count=await vote_crud.count_votes_by_voter(session, voter_id),
            )

        try:
            result = await self.store.run(_toggle, label="toggle_vote")
        except VoteCapExceeded as e:
            logger.warning(f"Voter {voter_id} rejected at vote cap ({e.current_count}/{self.max_votes})")
            raise
        except IntegrityError as e:
            if not is_duplicate_vote_error(e):
                raise
            # A concurrent request already recorded this exact vote
            video_id = resolved["video_id"]
            logger.info(f"Vote by {voter_id} for {video_id} already recorded by a concurrent request")
            return await self._already_voted(voter_id, video_id)

        logger.info(f"Vote {result.action} by voter {voter_id} for video {result.video_id} "
                    f"(video count {result.new_video_vote_count})")
        return result

    async def _already_voted(self, voter_id: str, video_id: str) -> ToggleVoteResult:
        async def _counts(session: AsyncSession) -> ToggleVoteResult:
            return ToggleVoteResult(
                action="added",
                video_id=video_id,
                new_video_vote_count=await vote_crud.count_votes_by_video(session, video_id),
                voter_vote_count=await vote_crud.count_votes_by_voter(session, voter_id),
            )

        return await self.store.run(_counts, label="already_voted")

    async def get_vote_count(self, video_ref: str) -> int:
        """Live vote count for a video referenced by id or external id."""
        async def _count(session: AsyncSession) -> int:
            video = await VideoCrud.resolve_video(session, video_ref)
            if video is None:
                raise VideoNotFound(video_ref)
            return await vote_crud.count_votes_by_video(session, video.id)

        return await self.store.run(_count, label="get_vote_count")

    async def check_vote_eligibility(self, voter_id: str) -> VoteEligibility:
        async def _check(session: AsyncSession) -> VoteEligibility:
            return await vote_crud.get_eligibility(session, voter_id, self.max_votes)

        return await self.store.run(_check, label="check_vote_eligibility")

    async def get_voter_votes(self, voter_id: str) -> list[VoterVote]:
        async def _votes(session: AsyncSession) -> list[VoterVote]:
            votes = await vote_crud.get_votes_by_voter(session, voter_id)
            return [VoterVote.model_validate(vote) for vote in votes]

        return await self.store.run(_votes, label="get_voter_votes")
