from fastapi import APIRouter
from api.vote_api import router as vote_router
from api.video_api import router as video_router
from api.migration_api import router as migration_router


api_router = APIRouter()
# Registered before the video router so /videos/vote is not captured by /videos/{video_id}
api_router.include_router(vote_router, tags=["votes"])
api_router.include_router(video_router, tags=["videos"])
api_router.include_router(migration_router, tags=["migrations"])
