from fastapi import APIRouter

from app.api.routers.podcast import router as podcast_router

api_router = APIRouter()
api_router.include_router(podcast_router)
