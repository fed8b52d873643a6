from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from models import VideoStatus


class VideoResponseSchema(BaseModel):
    id: str
    external_id: Optional[str] = None
    title: str
    description: str = ""
    status: VideoStatus
    thumbnail_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    vote_count: int = 0
    user_has_voted: Optional[bool] = None

    model_config = {"from_attributes": True}


class CreateVideoRequestSchema(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    external_id: Optional[str] = Field(None, max_length=255, description="Identifier in the originating system")
    thumbnail_url: Optional[str] = Field(None, max_length=512)


class UpdateVideoStatusRequestSchema(BaseModel):
    status: VideoStatus
