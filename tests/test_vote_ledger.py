import asyncio

import pytest
from sqlalchemy import func, select

from core.exceptions import VideoNotFound, VoteCapExceeded
from crud.vote_crud import vote_crud
from models import Vote, Voter
from schemas.vote_schema import VoteEligibility

MAX_VOTES = 5


async def count_rows(session_factory, **filters) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(Vote).filter_by(**filters)
        return await session.scalar(stmt)


@pytest.mark.asyncio
async def test_first_toggle_adds_and_second_removes(ledger, make_videos, session_factory):
    [video_id] = await make_videos(1)

    added = await ledger.toggle_vote("101", video_id)
    assert added.action == "added"
    assert added.video_id == video_id
    assert added.new_video_vote_count == 1
    assert added.voter_vote_count == 1

    removed = await ledger.toggle_vote("101", video_id)
    assert removed.action == "removed"
    assert removed.new_video_vote_count == 0
    assert removed.voter_vote_count == 0
    assert await count_rows(session_factory, voter_id="101") == 0


@pytest.mark.asyncio
async def test_vote_stores_video_title(ledger, make_videos):
    [video_id] = await make_videos(1)

    await ledger.toggle_vote("101", video_id, video_title="ignored when the video has one")
    [vote] = await ledger.get_voter_votes("101")

    assert vote.video_id == video_id
    assert vote.video_title.startswith("Sponsor video")


@pytest.mark.asyncio
async def test_sixth_vote_is_rejected_without_writing(ledger, make_videos, session_factory):
    video_ids = await make_videos(MAX_VOTES + 1)
    for video_id in video_ids[:MAX_VOTES]:
        await ledger.toggle_vote("202", video_id)

    with pytest.raises(VoteCapExceeded) as exc_info:
        await ledger.toggle_vote("202", video_ids[-1])

    assert exc_info.value.current_count == MAX_VOTES
    assert exc_info.value.max_votes == MAX_VOTES
    assert set(exc_info.value.voted_video_ids) == set(video_ids[:MAX_VOTES])
    assert "maximum number of votes (5)" in str(exc_info.value)
    assert await count_rows(session_factory, voter_id="202") == MAX_VOTES
    assert await count_rows(session_factory, video_id=video_ids[-1]) == 0


@pytest.mark.asyncio
async def test_removing_a_vote_at_the_cap_frees_a_slot(ledger, make_videos):
    video_ids = await make_videos(MAX_VOTES + 1)
    for video_id in video_ids[:MAX_VOTES]:
        await ledger.toggle_vote("303", video_id)

    removed = await ledger.toggle_vote("303", video_ids[0])
    assert removed.action == "removed"
    assert removed.voter_vote_count == MAX_VOTES - 1

    added = await ledger.toggle_vote("303", video_ids[-1])
    assert added.action == "added"
    assert added.voter_vote_count == MAX_VOTES

    eligibility = await ledger.check_vote_eligibility("303")
    assert set(eligibility.voted_video_ids) == set(video_ids[1:])


@pytest.mark.asyncio
async def test_concurrent_toggles_never_exceed_the_cap(ledger, make_videos, session_factory):
    video_ids = await make_videos(MAX_VOTES + 3)
    for video_id in video_ids[:MAX_VOTES - 1]:
        await ledger.toggle_vote("404", video_id)

    remaining = video_ids[MAX_VOTES - 1:]
    results = await asyncio.gather(
        *(ledger.toggle_vote("404", video_id) for video_id in remaining),
        return_exceptions=True,
    )

    added = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, VoteCapExceeded)]
    assert len(added) == 1
    assert added[0].action == "added"
    assert len(rejected) == len(remaining) - 1
    assert await count_rows(session_factory, voter_id="404") == MAX_VOTES


@pytest.mark.asyncio
async def test_concurrent_first_votes_from_a_new_voter(ledger, make_videos, session_factory):
    video_ids = await make_videos(MAX_VOTES + 2)

    results = await asyncio.gather(
        *(ledger.toggle_vote("505", video_id) for video_id in video_ids),
        return_exceptions=True,
    )

    added = [r for r in results if not isinstance(r, Exception)]
    assert len(added) == MAX_VOTES
    assert all(isinstance(r, VoteCapExceeded) for r in results if isinstance(r, Exception))
    assert await count_rows(session_factory, voter_id="505") == MAX_VOTES

    async with session_factory() as session:
        voters = await session.scalar(select(func.count()).select_from(Voter).where(Voter.id == "505"))
    assert voters == 1


@pytest.mark.asyncio
async def test_concurrent_toggles_of_the_same_pair_leave_at_most_one_row(ledger, make_videos, session_factory):
    [video_id] = await make_videos(1)

    results = await asyncio.gather(
        ledger.toggle_vote("606", video_id),
        ledger.toggle_vote("606", video_id),
    )

    assert await count_rows(session_factory, voter_id="606", video_id=video_id) <= 1
    assert {r.action for r in results} <= {"added", "removed"}


@pytest.mark.asyncio
async def test_external_id_and_id_resolve_to_one_vote(ledger, make_videos, session_factory):
    [video_id] = await make_videos(1, with_external_id=True)
    external_id = video_id.replace("video_test_", "drive_")

    added = await ledger.toggle_vote("707", external_id)
    assert added.action == "added"
    assert added.video_id == video_id

    removed = await ledger.toggle_vote("707", video_id)
    assert removed.action == "removed"
    assert await count_rows(session_factory, voter_id="707") == 0


@pytest.mark.asyncio
async def test_vote_count_matches_distinct_voters(ledger, make_videos):
    [video_id, other_id] = await make_videos(2)
    for voter_id in ("1", "2", "3"):
        await ledger.toggle_vote(voter_id, video_id)
    await ledger.toggle_vote("1", other_id)

    assert await ledger.get_vote_count(video_id) == 3
    assert await ledger.get_vote_count(other_id) == 1

    await ledger.toggle_vote("2", video_id)
    assert await ledger.get_vote_count(video_id) == 2


@pytest.mark.asyncio
async def test_vote_count_accepts_external_id(ledger, make_videos):
    [video_id] = await make_videos(1, with_external_id=True)
    await ledger.toggle_vote("808", video_id)

    assert await ledger.get_vote_count(video_id.replace("video_test_", "drive_")) == 1


@pytest.mark.asyncio
async def test_unknown_video_raises_not_found(ledger, session_factory):
    with pytest.raises(VideoNotFound):
        await ledger.toggle_vote("909", "no_such_video")
    with pytest.raises(VideoNotFound):
        await ledger.get_vote_count("no_such_video")

    # No placeholder voter is registered for a rejected toggle
    async with session_factory() as session:
        assert await session.get(Voter, "909") is None


@pytest.mark.asyncio
async def test_eligibility_reports_remaining_votes(ledger, make_videos):
    video_ids = await make_videos(2)
    for video_id in video_ids:
        await ledger.toggle_vote("111", video_id)

    eligibility = await ledger.check_vote_eligibility("111")
    assert eligibility.current_count == 2
    assert eligibility.max_votes == MAX_VOTES
    assert eligibility.remaining_votes == MAX_VOTES - 2
    assert eligibility.can_vote_more is True
    assert set(eligibility.voted_video_ids) == set(video_ids)


@pytest.mark.asyncio
async def test_eligibility_for_unknown_voter(ledger):
    eligibility = await ledger.check_vote_eligibility("never-voted")
    assert eligibility.current_count == 0
    assert eligibility.remaining_votes == MAX_VOTES
    assert eligibility.can_vote_more is True
    assert eligibility.voted_video_ids == []


@pytest.mark.asyncio
async def test_voter_votes_are_listed_newest_first(ledger, make_videos):
    video_ids = await make_videos(3)
    for video_id in video_ids:
        await ledger.toggle_vote("222", video_id)

    votes = await ledger.get_voter_votes("222")
    assert [vote.video_id for vote in votes] == list(reversed(video_ids))
    assert await ledger.get_voter_votes("nobody") == []


@pytest.mark.asyncio
async def test_duplicate_insert_reports_the_existing_vote(ledger, make_videos, session_factory, monkeypatch):
    [video_id] = await make_videos(1)
    await ledger.toggle_vote("121", video_id)

    # A lookup that misses the committed row, as a concurrent request would see it
    async def stale_get_vote(session, voter_id, video_id):
        return None

    monkeypatch.setattr(vote_crud, "get_vote", stale_get_vote)
    result = await ledger.toggle_vote("121", video_id)

    assert result.action == "added"
    assert result.video_id == video_id
    assert result.new_video_vote_count == 1
    assert result.voter_vote_count == 1
    assert await count_rows(session_factory, voter_id="121") == 1


@pytest.mark.asyncio
async def test_cap_enforced_by_insert_reports_voted_videos(ledger, make_videos, session_factory, monkeypatch):
    video_ids = await make_videos(MAX_VOTES + 1)
    for video_id in video_ids[:MAX_VOTES]:
        await ledger.toggle_vote("131", video_id)

    real_get_eligibility = vote_crud.get_eligibility
    calls = []

    # The first check sees a stale count; the conditional insert still refuses the row
    async def stale_then_real(session, voter_id, max_votes):
        calls.append(voter_id)
        if len(calls) == 1:
            return VoteEligibility(
                voter_id=voter_id,
                current_count=MAX_VOTES - 1,
                max_votes=max_votes,
                remaining_votes=1,
                can_vote_more=True,
            )
        return await real_get_eligibility(session, voter_id, max_votes)

    monkeypatch.setattr(vote_crud, "get_eligibility", stale_then_real)
    with pytest.raises(VoteCapExceeded) as exc_info:
        await ledger.toggle_vote("131", video_ids[-1])

    assert exc_info.value.current_count == MAX_VOTES
    assert set(exc_info.value.voted_video_ids) == set(video_ids[:MAX_VOTES])
    assert await count_rows(session_factory, voter_id="131") == MAX_VOTES
