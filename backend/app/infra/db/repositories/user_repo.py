"""User and skill repository implementations."""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.domain.accounts.models import Skill, User
from app.domain.accounts.services import SkillRepository, UserRepository
from app.infra.db.models.skill import SkillModel
from app.infra.db.models.user import UserModel


class UserRepositoryImpl(UserRepository):
    """User repository implementation. Flushes; the calling service commits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _select_with_skills(self):
        # populate_existing: credits may have been changed by a bulk UPDATE in this session
        return (
            select(UserModel)
            .options(selectinload(UserModel.skills))
            .execution_options(populate_existing=True)
        )

    async def create(self, user: User) -> User:
        """Create a new user."""
        model = UserModel.from_entity(user)
        self.session.add(model)
        await self.session.flush()
        return await self.get_by_id(user.id)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID (with skills)."""
        result = await self.session.execute(
            self._select_with_skills().where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.session.execute(
            self._select_with_skills().where(UserModel.email == email)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def list_others(self, user_id: str) -> list[User]:
        """List active users other than user_id (with skills)."""
        result = await self.session.execute(
            self._select_with_skills()
            .where(UserModel.id != user_id, UserModel.is_active.is_(True))
            .order_by(UserModel.created_at, UserModel.id)
        )
        return [model.to_entity() for model in result.scalars().all()]


class SkillRepositoryImpl(SkillRepository):
    """Skill repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, skill: Skill) -> Skill:
        """Add a skill."""
        model = SkillModel.from_entity(skill)
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def get(self, skill_id: str) -> Optional[Skill]:
        """Get skill by ID."""
        result = await self.session.execute(select(SkillModel).where(SkillModel.id == skill_id))
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def delete(self, skill_id: str) -> None:
        """Delete a skill."""
        model = await self.session.get(SkillModel, skill_id)
        if model:
            await self.session.delete(model)
            await self.session.flush()
