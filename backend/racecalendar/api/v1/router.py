"""API v1 router aggregating all endpoint routers.

Session:
  /api/v1/auth/session, /logout

Races:
  /api/v1/race (list, create), /api/v1/race/{id} (read, update, delete)
  /api/v1/race/{id}/like, /comments

Users:
  /api/v1/user (create), /api/v1/user/{id} (read, update, delete)
"""

from fastapi import APIRouter

from racecalendar.api.v1.endpoints import auth, races, users

api_router = APIRouter()

# -------------------------------------------------------------------------
# Session
# -------------------------------------------------------------------------
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# -------------------------------------------------------------------------
# Races
# -------------------------------------------------------------------------
api_router.include_router(races.router, prefix="/race", tags=["races"])

# -------------------------------------------------------------------------
# Users
# -------------------------------------------------------------------------
api_router.include_router(users.router, prefix="/user", tags=["users"])
