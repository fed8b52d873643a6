from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class VoteEligibility(BaseModel):
    """Where a voter stands against the vote cap."""
    voter_id: str
    current_count: int
    max_votes: int
    remaining_votes: int
    can_vote_more: bool
    voted_video_ids: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class ToggleVoteResult(BaseModel):
    action: Literal["added", "removed"]
    video_id: str
    new_video_vote_count: int
    voter_vote_count: int


class VoterVote(BaseModel):
    video_id: str
    video_title: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ToggleVoteRequestSchema(BaseModel):
    video_id: str = Field(..., min_length=1, max_length=255, description="Video id or its external id")
    video_title: Optional[str] = Field(None, max_length=255)
    voter_id: str = Field(..., min_length=1, max_length=64)


class ToggleVoteResponseSchema(BaseModel):
    success: bool = True
    action: Literal["added", "removed"]
    message: str
    video_id: str
    current_vote_count: int
    user_vote_count: int


class VoteCountResponseSchema(BaseModel):
    success: bool = True
    video_id: str
    vote_count: int


class VoteCheckResponseSchema(BaseModel):
    success: bool
    can_vote: bool
    current_votes: int
    max_votes: int
    remaining_votes: int
    voted_video_ids: List[str] = Field(default_factory=list)
    message: str


class VoterVotesResponseSchema(BaseModel):
    voter_id: str
    votes: List[VoterVote] = Field(default_factory=list)
