from datetime import datetime

from sqlalchemy import DateTime, Integer, Sequence, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class SequenceIdMixin:
    id: Mapped[int] = mapped_column(Integer, Sequence("id_seq", start=1000), primary_key=True)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)


class Base(DeclarativeBase):
    pass
