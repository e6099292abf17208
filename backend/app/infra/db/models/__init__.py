"""Database models."""
from app.infra.db.models.user import UserModel
from app.infra.db.models.skill import SkillModel
from app.infra.db.models.message import MessageModel

__all__ = [
    "UserModel",
    "SkillModel",
    "MessageModel",
]
