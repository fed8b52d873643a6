import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SequenceIdMixin, CreatedAtMixin


class MigrationStatus(str, enum.Enum):
    pending = "pending"
    success = "success"
    failed = "failed"
    duplicate = "duplicate"


class MigrationRequest(SequenceIdMixin, CreatedAtMixin, Base):
    __tablename__ = "migration_requests"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    migration_status: Mapped[MigrationStatus] = mapped_column(
        Enum(MigrationStatus, name="migration_status", native_enum=False, length=16),
        default=MigrationStatus.pending,
        nullable=False,
    )
    migration_source: Mapped[str] = mapped_column(String(100), nullable=False)
    upstream_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    upstream_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    request_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class MigrationAuditLog(SequenceIdMixin, CreatedAtMixin, Base):
    __tablename__ = "migration_audit_log"

    migration_request_id: Mapped[int] = mapped_column(ForeignKey("migration_requests.id"), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
