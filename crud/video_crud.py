import random
import string
import time
from typing import Optional, Sequence

from sqlalchemy import select, update, func, case, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models import Video, VideoStatus


def generate_video_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"video_{int(time.time() * 1000)}_{suffix}"


class VideoCrud:

    def __init__(self):
        self.table = Video

    async def resolve_video(self, session: AsyncSession, video_ref: str) -> Optional[Video]:
        """Find a video by its own id or by its external (legacy) id.

        A direct id match wins if the reference happens to match two rows.
        """
        stmt = (
            select(Video)
            .where(or_(Video.id == video_ref, Video.external_id == video_ref))
            .order_by(case((Video.id == video_ref, 0), else_=1))
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_visible_video(self, session: AsyncSession, video_ref: str) -> Optional[Video]:
        video = await self.resolve_video(session, video_ref)
        if video is None or video.status == VideoStatus.deleted:
            return None
        return video

    async def get_ready_videos(self, session: AsyncSession, limit: int, offset: int) -> Sequence[Video]:
        stmt = (
            select(Video)
            .where(Video.status == VideoStatus.ready)
            .order_by(Video.created_at.desc(), Video.id)
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_ready_videos(self, session: AsyncSession) -> int:
        stmt = select(func.count()).select_from(Video).where(Video.status == VideoStatus.ready)
        return await session.scalar(stmt) or 0

    async def create_video(self, session: AsyncSession, video_data: dict) -> Video:
        video = Video(
            id=video_data.get("id") or generate_video_id(),
            external_id=video_data.get("external_id"),
            title=video_data["title"],
            description=video_data.get("description") or "",
            thumbnail_url=video_data.get("thumbnail_url"),
            status=video_data.get("status") or VideoStatus.processing,
        )
        session.add(video)
        await session.flush()
        await session.refresh(video)
        return video

    async def update_video_status(self, session: AsyncSession, video_id: str, status: VideoStatus) -> Optional[Video]:
        stmt = (
            update(Video)
            .where(Video.id == video_id)
            .values(status=status, updated_at=func.now())
            .returning(Video)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def soft_delete_video(self, session: AsyncSession, video_id: str) -> Optional[Video]:
        return await self.update_video_status(session, video_id, VideoStatus.deleted)


video_crud = VideoCrud()
