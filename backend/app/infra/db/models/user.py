"""User database model."""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, CheckConstraint
from sqlalchemy.orm import relationship

from app.infra.db.base import Base
from app.domain.accounts.models import SkillKind, User as UserEntity


class UserModel(Base):
    """User database model. `credits` is the ledger balance."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    credits = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    skills = relationship(
        "SkillModel",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="SkillModel.created_at",
    )

    def to_entity(self, with_skills: bool = True) -> UserEntity:
        """Convert to domain entity. Skills must be eagerly loaded when with_skills is set."""
        skills = [s.to_entity() for s in self.skills] if with_skills else []
        return UserEntity(
            id=self.id,
            name=self.name,
            email=self.email,
            bio=self.bio,
            avatar_url=self.avatar_url,
            credits=self.credits,
            is_active=self.is_active,
            skills_offered=[s for s in skills if s.kind == SkillKind.OFFERED],
            skills_wanted=[s for s in skills if s.kind == SkillKind.WANTED],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_entity(cls, entity: UserEntity) -> "UserModel":
        """Create from domain entity (skills are persisted separately)."""
        return cls(
            id=entity.id,
            name=entity.name,
            email=entity.email,
            bio=entity.bio,
            avatar_url=entity.avatar_url,
            credits=entity.credits,
            is_active=entity.is_active,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
