"""Accounts API routes."""
from fastapi import APIRouter

from app.api.accounts import routes_skills, routes_users

router = APIRouter()

router.include_router(routes_users.router, prefix="/users", tags=["users"])
router.include_router(routes_skills.router, prefix="/skills", tags=["skills"])
