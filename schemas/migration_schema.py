from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, EmailStr, Field

from models import MigrationStatus


class MigrationRequestCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=255)
    phone_number: Optional[str] = Field(None, max_length=50)


class MigrationStatusUpdate(BaseModel):
    status: MigrationStatus
    upstream_user_id: Optional[str] = Field(None, max_length=64)
    upstream_response: Optional[dict[str, Any]] = None


class MigrationRequestResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    migration_status: MigrationStatus
    migration_source: str
    upstream_user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MigrationStatRow(BaseModel):
    migration_status: MigrationStatus
    count: int
    day: date
