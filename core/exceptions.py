from typing import Optional, Sequence


class LedgerError(Exception):
    """Base class for vote ledger failures."""


class VoteCapExceeded(LedgerError):

    def __init__(self, current_count: int, max_votes: int, voted_video_ids: Optional[Sequence[str]] = None):
        self.current_count = current_count
        self.max_votes = max_votes
        self.voted_video_ids = list(voted_video_ids or [])
        super().__init__(
            f"You have reached the maximum number of votes ({max_votes}). "
            f"You have already voted for {current_count} videos. "
            "Please remove a vote before adding a new one."
        )


class VideoNotFound(LedgerError):

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"Video {video_id} not found")


class StoreUnavailable(LedgerError):
    """The relational store could not be reached or refused our credentials."""

    def __init__(self, message: str, attempts: int = 1):
        self.attempts = attempts
        super().__init__(message)
