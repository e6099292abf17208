"""Skill browsing routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.accounts.routes_users import SkillResponse
from app.api.deps import get_current_user, get_user_service
from app.domain.accounts.models import User
from app.domain.accounts.services import UserService

router = APIRouter()


class SkillListingResponse(BaseModel):
    """An offered skill and the user offering it."""
    skill: SkillResponse
    user_id: str
    user_name: str
    user_avatar_url: Optional[str]


@router.get("", response_model=List[SkillListingResponse])
async def browse_skills(
    category: Optional[str] = Query(default=None),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Skills offered by other users, optionally filtered by category."""
    listings = await service.browse_skills(current_user.id)
    if category:
        listings = [listing for listing in listings if listing.skill.category.lower() == category.lower()]
    return [
        SkillListingResponse(
            skill=SkillResponse.from_entity(listing.skill),
            user_id=listing.user_id,
            user_name=listing.user_name,
            user_avatar_url=listing.user_avatar_url,
        )
        for listing in listings
    ]
