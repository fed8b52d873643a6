from typing import List, Optional

from fastapi import HTTPException, APIRouter, Depends, Query, Request, status
from fastapi_pagination import LimitOffsetPage, LimitOffsetParams
from sqlalchemy.ext.asyncio import AsyncSession

from core.depends import OperatorKey, StoreDep
from core.exceptions import StoreUnavailable
from crud.migration_crud import migration_crud as MigrationCrud
from models import MigrationStatus
from schemas.migration_schema import (
    MigrationRequestCreate,
    MigrationStatusUpdate,
    MigrationRequestResponse,
    MigrationStatRow,
)


router = APIRouter(
    prefix="/migrations",
    tags=["migrations"]
)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/", response_model=MigrationRequestResponse, status_code=status.HTTP_201_CREATED)
async def record_migration_request(
    migration_data: MigrationRequestCreate,
    request: Request,
    store: StoreDep,
):
    async def _record(session: AsyncSession):
        migration = await MigrationCrud.record_migration_request(
            session,
            first_name=migration_data.first_name,
            last_name=migration_data.last_name,
            email=migration_data.email,
            phone_number=migration_data.phone_number,
            request_ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
        return MigrationRequestResponse.model_validate(migration)

    try:
        return await store.run(_record, label="record_migration_request")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to record migration request: {str(e)}")


@router.get("/stats", response_model=List[MigrationStatRow])
async def get_migration_stats(store: StoreDep, _operator: OperatorKey):
    try:
        rows = await store.run(MigrationCrud.get_migration_stats, label="get_migration_stats")
        return [MigrationStatRow.model_validate(row) for row in rows]
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to fetch migration stats: {str(e)}")


@router.get("/", response_model=LimitOffsetPage[MigrationRequestResponse])
async def list_migration_requests(
    store: StoreDep,
    _operator: OperatorKey,
    params: LimitOffsetParams = Depends(),
    migration_status: Optional[MigrationStatus] = Query(None, alias="status"),
):
    async def _list(session: AsyncSession):
        migrations = await MigrationCrud.list_migration_requests(
            session, params.limit, params.offset, migration_status
        )
        total = await MigrationCrud.count_migration_requests(session, migration_status)
        return [MigrationRequestResponse.model_validate(m) for m in migrations], total

    try:
        items, total = await store.run(_list, label="list_migration_requests")
        return LimitOffsetPage[MigrationRequestResponse].create(items=items, params=params, total=total)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to fetch migration requests: {str(e)}")


@router.get("/{email}", response_model=MigrationRequestResponse)
async def get_migration(email: str, store: StoreDep, _operator: OperatorKey):
    async def _get(session: AsyncSession):
        migration = await MigrationCrud.get_migration_by_email(session, email)
        return MigrationRequestResponse.model_validate(migration) if migration else None

    try:
        response = await store.run(_get, label="get_migration")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to fetch migration request: {str(e)}")

    if response is None:
        raise HTTPException(status_code=404, detail="Migration request not found")
    return response


@router.patch("/{email}/status", response_model=MigrationRequestResponse)
async def update_migration_status(
    email: str,
    status_data: MigrationStatusUpdate,
    store: StoreDep,
    _operator: OperatorKey,
):
    async def _update(session: AsyncSession):
        migration = await MigrationCrud.update_migration_status(
            session,
            email,
            status_data.status,
            upstream_user_id=status_data.upstream_user_id,
            upstream_response=status_data.upstream_response,
        )
        return MigrationRequestResponse.model_validate(migration) if migration else None

    try:
        response = await store.run(_update, label="update_migration_status")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Failed to update migration request: {str(e)}")

    if response is None:
        raise HTTPException(status_code=404, detail="Migration request not found")
    return response
