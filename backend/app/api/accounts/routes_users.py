"""User profile, balance and own-skill routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from app.api.deps import get_current_user, get_ledger_service, get_user_service
from app.domain.accounts.models import Skill, SkillKind, SkillLevel, User
from app.domain.accounts.services import UserService
from app.domain.ledger.services import LedgerService

router = APIRouter()


class SkillResponse(BaseModel):
    """Skill response."""
    id: str
    kind: SkillKind
    name: str
    category: str
    description: Optional[str]
    rate: int
    level: SkillLevel
    created_at: datetime

    @classmethod
    def from_entity(cls, skill: Skill) -> "SkillResponse":
        return cls(
            id=skill.id,
            kind=skill.kind,
            name=skill.name,
            category=skill.category,
            description=skill.description,
            rate=skill.rate,
            level=skill.level,
            created_at=skill.created_at,
        )


class SkillRequest(BaseModel):
    """Add-skill request."""
    kind: SkillKind
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    rate: int = Field(ge=1)
    level: SkillLevel = SkillLevel.BEGINNER
    description: Optional[str] = None


class SkillsResponse(BaseModel):
    """A user's offered and wanted skills."""
    offered: List[SkillResponse]
    wanted: List[SkillResponse]


class UserResponse(BaseModel):
    """Current user response."""
    id: str
    name: str
    email: str
    bio: Optional[str]
    avatar_url: Optional[str]
    credits: int
    skills_offered: List[SkillResponse]
    skills_wanted: List[SkillResponse]
    created_at: datetime


class CreditsResponse(BaseModel):
    """Balance response."""
    user_id: str
    credits: int


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
):
    """Get the current user with balance and skills."""
    return UserResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        bio=current_user.bio,
        avatar_url=current_user.avatar_url,
        credits=current_user.credits,
        skills_offered=[SkillResponse.from_entity(s) for s in current_user.skills_offered],
        skills_wanted=[SkillResponse.from_entity(s) for s in current_user.skills_wanted],
        created_at=current_user.created_at,
    )


@router.get("/me/credits", response_model=CreditsResponse)
async def get_my_credits(
    current_user: User = Depends(get_current_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Current credit balance."""
    balance = await ledger.get_balance(current_user.id)
    return CreditsResponse(user_id=current_user.id, credits=balance)


@router.get("/me/skills", response_model=SkillsResponse)
async def list_my_skills(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """List the current user's offered and wanted skills."""
    offered, wanted = await service.list_skills(current_user.id)
    return SkillsResponse(
        offered=[SkillResponse.from_entity(s) for s in offered],
        wanted=[SkillResponse.from_entity(s) for s in wanted],
    )


@router.post("/me/skills", response_model=SkillResponse, status_code=status.HTTP_201_CREATED)
async def add_my_skill(
    request: SkillRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Add a skill to the current user's offered or wanted list."""
    skill = await service.add_skill(
        user_id=current_user.id,
        kind=request.kind,
        name=request.name,
        category=request.category,
        rate=request.rate,
        level=request.level,
        description=request.description,
    )
    return SkillResponse.from_entity(skill)


@router.delete("/me/skills/{kind}/{skill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_my_skill(
    kind: SkillKind,
    skill_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Remove one of the current user's skills."""
    await service.remove_skill(current_user.id, kind, skill_id)
