"""API router configuration."""

from fastapi import APIRouter

from src.modules.feed.interfaces.router import router as feed_router

api_router = APIRouter()

# Store feed
api_router.include_router(feed_router)
