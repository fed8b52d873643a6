import logging

from fastapi import HTTPException, APIRouter, Query, status

from core.depends import VoteLedgerDep, SessionToken
from core.exceptions import StoreUnavailable, VideoNotFound, VoteCapExceeded
from schemas.vote_schema import (
    ToggleVoteRequestSchema,
    ToggleVoteResponseSchema,
    VoteCountResponseSchema,
    VoteCheckResponseSchema,
    VoterVotesResponseSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def store_unavailable(e: StoreUnavailable) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Vote storage is temporarily unavailable: {str(e)}",
    )


@router.post("/videos/vote", response_model=ToggleVoteResponseSchema)
async def toggle_vote(
    vote_data: ToggleVoteRequestSchema,
    ledger: VoteLedgerDep,
    _token: SessionToken,
):
    """Cast a vote for a video, or retract it if the voter already voted for it."""
    try:
        result = await ledger.toggle_vote(vote_data.voter_id, vote_data.video_id, vote_data.video_title)

        if result.action == "added":
            message = (
                f"Vote added successfully! You have now voted for "
                f"{result.voter_vote_count} out of {ledger.max_votes} videos."
            )
        else:
            message = "Vote removed successfully"

        return ToggleVoteResponseSchema(
            action=result.action,
            message=message,
            video_id=result.video_id,
            current_vote_count=result.new_video_vote_count,
            user_vote_count=result.voter_vote_count,
        )

    except VoteCapExceeded as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(e),
                "current_vote_count": e.current_count,
                "max_votes": e.max_votes,
                "max_votes_reached": True,
                "user_voted_videos": e.voted_video_ids,
            },
        )
    except VideoNotFound:
        raise HTTPException(status_code=404, detail="Video not found")
    except StoreUnavailable as e:
        raise store_unavailable(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Vote toggle failed")
        raise HTTPException(status_code=500, detail=f"Failed to record vote: {str(e)}")


@router.get("/videos/vote", response_model=VoteCountResponseSchema)
async def get_vote_count(
    ledger: VoteLedgerDep,
    video_id: str = Query(..., min_length=1, description="Video id or its external id"),
):
    try:
        vote_count = await ledger.get_vote_count(video_id)
        return VoteCountResponseSchema(video_id=video_id, vote_count=vote_count)

    except VideoNotFound:
        raise HTTPException(status_code=404, detail="Video not found")
    except StoreUnavailable as e:
        raise store_unavailable(e)


@router.get("/vote-check", response_model=VoteCheckResponseSchema)
async def check_vote_eligibility(
    ledger: VoteLedgerDep,
    _token: SessionToken,
    voter_id: str = Query(..., min_length=1),
):
    """Report how many votes the voter has left; reports no votes left if the store is down."""
    try:
        eligibility = await ledger.check_vote_eligibility(voter_id)
    except StoreUnavailable as e:
        logger.error(f"Vote check for {voter_id} failed closed: {e}")
        return VoteCheckResponseSchema(
            success=False,
            can_vote=False,
            current_votes=0,
            max_votes=ledger.max_votes,
            remaining_votes=0,
            message="Unable to confirm your votes right now, please try again later",
        )

    if eligibility.can_vote_more:
        message = f"You can vote {eligibility.remaining_votes} more times"
    else:
        message = f"You have reached the maximum number of votes ({eligibility.max_votes})"

    return VoteCheckResponseSchema(
        success=True,
        can_vote=eligibility.can_vote_more,
        current_votes=eligibility.current_count,
        max_votes=eligibility.max_votes,
        remaining_votes=eligibility.remaining_votes,
        voted_video_ids=eligibility.voted_video_ids,
        message=message,
    )


@router.get("/voters/{voter_id}/votes", response_model=VoterVotesResponseSchema)
async def get_voter_votes(
    voter_id: str,
    ledger: VoteLedgerDep,
):
    try:
        votes = await ledger.get_voter_votes(voter_id)
        return VoterVotesResponseSchema(voter_id=voter_id, votes=votes)

    except StoreUnavailable as e:
        raise store_unavailable(e)
