import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base


class VideoStatus(str, enum.Enum):
    processing = "processing"
    ready = "ready"
    error = "error"
    deleted = "deleted"


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_status_created_at", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Identifier from the originating system (Google Drive file id for imported videos)
    external_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[VideoStatus] = mapped_column(
        Enum(VideoStatus, name="video_status", native_enum=False, length=16),
        default=VideoStatus.processing,
        nullable=False,
    )
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
