from sqlalchemy import String, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SequenceIdMixin, CreatedAtMixin


class Vote(SequenceIdMixin, CreatedAtMixin, Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("voter_id", "video_id", name="uq_votes_voter_video"),
        Index("ix_votes_video_id", "video_id"),
    )

    voter_id: Mapped[str] = mapped_column(String(64), ForeignKey("voters.id"), nullable=False)
    video_id: Mapped[str] = mapped_column(String(64), ForeignKey("videos.id"), nullable=False)
    video_title: Mapped[str] = mapped_column(String(255), nullable=False)
