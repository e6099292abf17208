"""Accounts domain models."""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from app.domain.common.types import generate_id


class SkillLevel(str, Enum):
    """Skill proficiency level."""
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class SkillKind(str, Enum):
    """Which list a skill belongs to on a user profile."""
    OFFERED = "offered"
    WANTED = "wanted"


class Skill(BaseModel):
    """Skill listed on a user profile."""

    id: str
    user_id: str
    kind: SkillKind
    name: str
    category: str
    description: Optional[str] = None
    rate: int = Field(ge=1)  # credits (hours) per session
    level: SkillLevel = SkillLevel.BEGINNER
    created_at: datetime

    @classmethod
    def create(
        cls,
        user_id: str,
        kind: SkillKind,
        name: str,
        category: str,
        rate: int,
        level: SkillLevel = SkillLevel.BEGINNER,
        description: Optional[str] = None,
    ) -> "Skill":
        """Create a new skill."""
        return cls(
            id=generate_id(),
            user_id=user_id,
            kind=kind,
            name=name,
            category=category,
            description=description,
            rate=rate,
            level=level,
            created_at=datetime.utcnow(),
        )


class User(BaseModel):
    """User domain model. `credits` is only mutated through the ledger."""

    id: str
    name: str
    email: EmailStr
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    credits: int = Field(default=0, ge=0)
    is_active: bool = True
    skills_offered: list[Skill] = []
    skills_wanted: list[Skill] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        name: str,
        email: EmailStr,
        credits: int = 0,
        bio: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> "User":
        """Create a new user."""
        now = datetime.utcnow()
        return cls(
            id=generate_id(),
            name=name,
            email=email,
            bio=bio,
            avatar_url=avatar_url,
            credits=credits,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    def offered_skill(self, skill_id: str) -> Optional[Skill]:
        """Return one of this user's offered skills by id."""
        for skill in self.skills_offered:
            if skill.id == skill_id:
                return skill
        return None


class SkillListing(BaseModel):
    """An offered skill annotated with its owner, for browsing."""

    skill: Skill
    user_id: str
    user_name: str
    user_avatar_url: Optional[str] = None
