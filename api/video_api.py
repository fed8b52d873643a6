import logging
from typing import Optional

from fastapi import HTTPException, APIRouter, Depends, Query, status
from fastapi_pagination import LimitOffsetPage, LimitOffsetParams
from sqlalchemy.ext.asyncio import AsyncSession

from core.depends import OperatorKey, StoreDep
from core.exceptions import StoreUnavailable
from crud.video_crud import video_crud as VideoCrud
from crud.vote_crud import vote_crud as VoteCrud
from models import Video
from schemas.video_schema import (
    VideoResponseSchema,
    CreateVideoRequestSchema,
    UpdateVideoStatusRequestSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/videos",
)


def build_video_response(video: Video, vote_count: int, user_has_voted: Optional[bool] = None) -> VideoResponseSchema:
    response = VideoResponseSchema.model_validate(video)
    response.vote_count = vote_count
    response.user_has_voted = user_has_voted
    return response


@router.get("/", response_model=LimitOffsetPage[VideoResponseSchema])
async def list_videos(
    store: StoreDep,
    params: LimitOffsetParams = Depends(),
    voter_id: Optional[str] = Query(None, description="Mark the videos this voter has voted for"),
):
    """Ready videos, newest first, each with its live vote count."""
    async def _list(session: AsyncSession):
        videos = await VideoCrud.get_ready_videos(session, params.limit, params.offset)
        total = await VideoCrud.count_ready_videos(session)
        video_ids = [video.id for video in videos]
        counts = await VoteCrud.get_vote_counts(session, video_ids)
        voted = await VoteCrud.get_voted_video_ids(session, voter_id, video_ids) if voter_id else None

        items = [
            build_video_response(
                video,
                counts.get(video.id, 0),
                (video.id in voted) if voted is not None else None,
            )
            for video in videos
        ]
        return items, total

    try:
        items, total = await store.run(_list, label="list_videos")
        return LimitOffsetPage[VideoResponseSchema].create(items=items, params=params, total=total)

    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to fetch videos: {str(e)}")


@router.get("/{video_id}", response_model=VideoResponseSchema)
async def get_video(
    video_id: str,
    store: StoreDep,
    voter_id: Optional[str] = Query(None),
):
    async def _get(session: AsyncSession):
        video = await VideoCrud.get_visible_video(session, video_id)
        if video is None:
            return None
        count = await VoteCrud.count_votes_by_video(session, video.id)
        voted = None
        if voter_id:
            voted = video.id in await VoteCrud.get_voted_video_ids(session, voter_id, [video.id])
        return build_video_response(video, count, voted)

    try:
        response = await store.run(_get, label="get_video")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to fetch video: {str(e)}")

    if response is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return response


@router.post("/", response_model=VideoResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_video(
    video_data: CreateVideoRequestSchema,
    store: StoreDep,
    _operator: OperatorKey,
):
    async def _create(session: AsyncSession):
        if video_data.external_id and await VideoCrud.resolve_video(session, video_data.external_id):
            return None
        video = await VideoCrud.create_video(session, video_data.model_dump())
        return build_video_response(video, 0)

    try:
        response = await store.run(_create, label="create_video")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to create video: {str(e)}")

    if response is None:
        raise HTTPException(status_code=409, detail="A video with this external id already exists")
    logger.info(f"Registered video {response.id}")
    return response


@router.patch("/{video_id}/status", response_model=VideoResponseSchema)
async def update_video_status(
    video_id: str,
    status_data: UpdateVideoStatusRequestSchema,
    store: StoreDep,
    _operator: OperatorKey,
):
    async def _update(session: AsyncSession):
        video = await VideoCrud.update_video_status(session, video_id, status_data.status)
        if video is None:
            return None
        return build_video_response(video, await VoteCrud.count_votes_by_video(session, video.id))

    try:
        response = await store.run(_update, label="update_video_status")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to update video: {str(e)}")

    if response is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return response


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    store: StoreDep,
    _operator: OperatorKey,
):
    async def _delete(session: AsyncSession):
        return await VideoCrud.soft_delete_video(session, video_id)

    try:
        video = await store.run(_delete, label="delete_video")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to delete video: {str(e)}")

    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return {"message": "Video deleted successfully", "id": video_id}
