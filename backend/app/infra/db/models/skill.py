"""Skill database model."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, CheckConstraint, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from app.infra.db.base import Base
from app.domain.accounts.models import Skill as SkillEntity, SkillKind, SkillLevel


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class SkillModel(Base):
    """A skill on a user's offered or wanted list."""

    __tablename__ = "skills"
    __table_args__ = (
        CheckConstraint("rate >= 1", name="ck_skills_rate_positive"),
        Index("ix_skills_user_id_kind", "user_id", "kind"),
    )

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    kind = Column(
        SAEnum(SkillKind, name="skill_kind", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    rate = Column(Integer, nullable=False)
    level = Column(
        SAEnum(SkillLevel, name="skill_level", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=SkillLevel.BEGINNER,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("UserModel", back_populates="skills")

    def to_entity(self) -> SkillEntity:
        """Convert to domain entity."""
        return SkillEntity(
            id=self.id,
            user_id=self.user_id,
            kind=self.kind,
            name=self.name,
            category=self.category,
            description=self.description,
            rate=self.rate,
            level=self.level,
            created_at=self.created_at,
        )

    @classmethod
    def from_entity(cls, entity: SkillEntity) -> "SkillModel":
        """Create from domain entity."""
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            kind=entity.kind,
            name=entity.name,
            category=entity.category,
            description=entity.description,
            rate=entity.rate,
            level=entity.level,
            created_at=entity.created_at,
        )
