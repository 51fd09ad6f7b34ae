from fastapi import APIRouter
from app.api import feed, follows, health, notifications, posts, realtime, users
api_router = APIRouter()
api_router.include_router(users.router)
api_router.include_router(follows.router)
api_router.include_router(notifications.router)
api_router.include_router(feed.router)
api_router.include_router(posts.router)
api_router.include_router(realtime.router)
api_router.include_router(health.router)
