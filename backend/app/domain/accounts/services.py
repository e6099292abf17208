"""Accounts domain services."""
import logging
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.accounts.models import Skill, SkillKind, SkillLevel, SkillListing, User
from app.domain.common.errors import NotFoundError, ValidationError, ConflictError

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """User repository protocol."""

    async def create(self, user: User) -> User:
        """Create a new user."""
        ...

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID (with skills)."""
        ...

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        ...

    async def list_others(self, user_id: str) -> list[User]:
        """List active users other than user_id (with skills)."""
        ...


class SkillRepository(Protocol):
    """Skill repository protocol."""

    async def add(self, skill: Skill) -> Skill:
        """Add a skill."""
        ...

    async def get(self, skill_id: str) -> Optional[Skill]:
        """Get skill by ID."""
        ...

    async def delete(self, skill_id: str) -> None:
        """Delete a skill."""
        ...


class UserService:
    """User and skill profile service."""

    def __init__(
        self,
        user_repo: UserRepository,
        skill_repo: SkillRepository,
        db: AsyncSession,
        starting_credits: int = 0,
    ):
        self.user_repo = user_repo
        self.skill_repo = skill_repo
        self.db = db
        self.starting_credits = starting_credits

    async def create_user(
        self,
        name: str,
        email: str,
        bio: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        """Create a new user with the configured starting balance."""
        if not name or not name.strip():
            raise ValidationError("Name is required")
        existing = await self.user_repo.get_by_email(email)
        if existing:
            raise ConflictError("User already exists")

        user = User.create(
            name=name.strip(),
            email=email,
            credits=self.starting_credits,
            bio=bio,
            avatar_url=avatar_url,
        )
        created = await self.user_repo.create(user)
        await self.db.commit()
        logger.info("Created user %s with %s credits", created.id, created.credits)
        return created

    async def get_user(self, user_id: str) -> User:
        """Get a user or raise NotFoundError."""
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def add_skill(
        self,
        user_id: str,
        kind: SkillKind,
        name: str,
        category: str,
        rate: int,
        level: SkillLevel = SkillLevel.BEGINNER,
        description: Optional[str] = None,
    ) -> Skill:
        """Append a skill to the user's offered or wanted list."""
        await self.get_user(user_id)
        if not name or not category:
            raise ValidationError("Name and category are required")
        if rate is None or rate < 1:
            raise ValidationError("Valid rate is required (must be at least 1)")

        skill = Skill.create(
            user_id=user_id,
            kind=kind,
            name=name,
            category=category,
            rate=rate,
            level=level,
            description=description,
        )
        created = await self.skill_repo.add(skill)
        await self.db.commit()
        return created

    async def remove_skill(self, user_id: str, kind: SkillKind, skill_id: str) -> None:
        """Remove one of the user's own skills."""
        skill = await self.skill_repo.get(skill_id)
        if not skill or skill.user_id != user_id or skill.kind != kind:
            raise NotFoundError("Skill", skill_id)
        await self.skill_repo.delete(skill_id)
        await self.db.commit()

    async def list_skills(self, user_id: str) -> tuple[list[Skill], list[Skill]]:
        """Return (offered, wanted) for a user."""
        user = await self.get_user(user_id)
        return user.skills_offered, user.skills_wanted

    async def browse_skills(self, viewer_id: str) -> list[SkillListing]:
        """Offered skills of every other user, flattened with owner info."""
        users = await self.user_repo.list_others(viewer_id)
        return [
            SkillListing(
                skill=skill,
                user_id=user.id,
                user_name=user.name,
                user_avatar_url=user.avatar_url,
            )
            for user in users
            for skill in user.skills_offered
        ]
