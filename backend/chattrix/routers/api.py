from fastapi import APIRouter
from . import auth, users, rooms, chat, friends, scheduled, ws

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(friends.router, prefix="/friends", tags=["friends"])
api_router.include_router(scheduled.router, prefix="/scheduled", tags=["scheduled"])
api_router.include_router(ws.router, prefix="/ws", tags=["ws"])
