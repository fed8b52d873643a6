import json
import logging
from typing import Any, Optional, Sequence

from sqlalchemy import select, update, insert, func
from sqlalchemy.ext.asyncio import AsyncSession

from crud.dialect import upsert
from models import MigrationAuditLog, MigrationRequest, MigrationStatus

logger = logging.getLogger(__name__)

MIGRATION_SOURCE = "everide_partnerships_platform"


class MigrationCrud:

    def __init__(self):
        self.table = MigrationRequest

    async def record_migration_request(
        self,
        session: AsyncSession,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: Optional[str] = None,
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> MigrationRequest:
        """Record a migration request; a repeat request for the same email resets it to pending."""
        values = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone_number": phone_number,
            "migration_status": MigrationStatus.pending,
            "migration_source": MIGRATION_SOURCE,
            "request_ip": request_ip,
            "user_agent": user_agent,
        }
        stmt = upsert(
            session,
            MigrationRequest.__table__,
            values,
            index_elements=["email"],
            update_values={
                "first_name": first_name,
                "last_name": last_name,
                "phone_number": phone_number,
                "migration_status": MigrationStatus.pending,
                "updated_at": func.now(),
            },
        )
        await session.execute(stmt)
        migration = await self.get_migration_by_email(session, email, populate_existing=True)
        await self.add_migration_audit_log(session, migration.id, "requested", {"request_ip": request_ip})
        logger.info(f"Recorded migration request for {email}")
        return migration

    async def update_migration_status(
        self,
        session: AsyncSession,
        email: str,
        status: MigrationStatus,
        upstream_user_id: Optional[str] = None,
        upstream_response: Optional[Any] = None,
    ) -> Optional[MigrationRequest]:
        stmt = (
            update(MigrationRequest)
            .where(MigrationRequest.email == email)
            .values(
                migration_status=status,
                upstream_user_id=upstream_user_id,
                upstream_response=json.dumps(upstream_response) if upstream_response is not None else None,
                updated_at=func.now(),
            )
            .returning(MigrationRequest)
        )
        result = await session.execute(stmt)
        migration = result.scalars().first()
        if migration is None:
            return None

        await self.add_migration_audit_log(
            session,
            migration.id,
            f"status_{status.value}",
            {"upstream_user_id": upstream_user_id} if upstream_user_id else None,
        )
        logger.info(f"Migration for {email} moved to {status.value}")
        return migration

    async def get_migration_by_email(
        self, session: AsyncSession, email: str, populate_existing: bool = False
    ) -> Optional[MigrationRequest]:
        stmt = (
            select(MigrationRequest)
            .where(MigrationRequest.email == email)
            .order_by(MigrationRequest.created_at.desc())
            .limit(1)
        )
        if populate_existing:
            stmt = stmt.execution_options(populate_existing=True)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def list_migration_requests(
        self,
        session: AsyncSession,
        limit: int,
        offset: int,
        status: Optional[MigrationStatus] = None,
    ) -> Sequence[MigrationRequest]:
        stmt = select(MigrationRequest)
        if status is not None:
            stmt = stmt.where(MigrationRequest.migration_status == status)
        stmt = stmt.order_by(MigrationRequest.created_at.desc(), MigrationRequest.id.desc()).limit(limit).offset(offset)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_migration_requests(self, session: AsyncSession, status: Optional[MigrationStatus] = None) -> int:
        stmt = select(func.count()).select_from(MigrationRequest)
        if status is not None:
            stmt = stmt.where(MigrationRequest.migration_status == status)
        return await session.scalar(stmt) or 0

    async def get_migration_stats(self, session: AsyncSession) -> list[dict]:
        day = func.date(MigrationRequest.created_at)
        stmt = (
            select(
                MigrationRequest.migration_status,
                func.count(MigrationRequest.id).label("count"),
                day.label("day"),
            )
            .group_by(MigrationRequest.migration_status, day)
            .order_by(day.desc(), MigrationRequest.migration_status)
        )
        result = await session.execute(stmt)
        return [dict(row) for row in result.mappings()]

    async def add_migration_audit_log(
        self,
        session: AsyncSession,
        migration_request_id: int,
        action: str,
        details: Optional[Any] = None,
    ) -> None:
        stmt = insert(MigrationAuditLog).values(
            migration_request_id=migration_request_id,
            action=action,
            details=json.dumps(details) if details is not None else None,
        )
        await session.execute(stmt)

    async def get_audit_log(self, session: AsyncSession, migration_request_id: int) -> Sequence[MigrationAuditLog]:
        stmt = (
            select(MigrationAuditLog)
            .where(MigrationAuditLog.migration_request_id == migration_request_id)
            .order_by(MigrationAuditLog.id)
        )
        result = await session.execute(stmt)
        return result.scalars().all()


migration_crud = MigrationCrud()
