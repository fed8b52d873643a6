import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
import uvicorn
from core.settings import settings
from api.api import api_router

logging.basicConfig(
    level=logging.DEBUG if settings.LOG_LEVEL.lower() == "trace" else settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Sponsorship Vote API", version="1.0.0")

if settings.BACKEND_CORS_ORIGINS:
    cors_origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]
else:
    logger.info("No CORS origins configured, using wildcard")
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],  # credentials are not allowed with a wildcard origin
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=32400,
)

add_pagination(app)

app.include_router(api_router)

@app.get("/")
async def root():
    return {"message": "Sponsorship Vote API", "version": "1.0.0"}

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "max_votes_per_voter": settings.MAX_VOTES_PER_VOTER,
    }


if __name__ == "__main__":
    run_args = {
        "app": "main:app",
        "host": settings.SERVER_ADDRESS or "0.0.0.0",
        "port": settings.SERVER_PORT,
        "log_level": settings.LOG_LEVEL,
        "reload": settings.WATCH_FILES,
    }

    uvicorn.run(**run_args)
