"""
Seed two demo users with offered/wanted skills and print access tokens for them.
Run after migrations.

Usage (from repo root):
  cd backend && python scripts/seed_demo_users.py
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.domain.accounts.models import SkillKind, SkillLevel
from app.domain.accounts.services import UserService
from app.domain.common.errors import ConflictError
from app.infra.db import base
from app.infra.db.repositories.user_repo import SkillRepositoryImpl, UserRepositoryImpl
from app.infra.security.jwt import create_access_token
from app.settings import settings

DEMO_USERS = [
    {
        "name": "Ana Lima",
        "email": "ana@skillswap.dev",
        "bio": "Guitar instructor, learning Spanish.",
        "offered": [("Guitar", "Music", 2, SkillLevel.EXPERT)],
        "wanted": [("Spanish", "Languages", 1, SkillLevel.BEGINNER)],
    },
    {
        "name": "Ben Ortiz",
        "email": "ben@skillswap.dev",
        "bio": "Native Spanish speaker who wants to play guitar.",
        "offered": [("Spanish", "Languages", 1, SkillLevel.EXPERT)],
        "wanted": [("Guitar", "Music", 2, SkillLevel.BEGINNER)],
    },
]


async def seed_demo_users():
    if base.AsyncSessionLocal is None:
        print("ERROR: database engine is not configured")
        sys.exit(1)

    async with base.AsyncSessionLocal() as db:
        service = UserService(
            UserRepositoryImpl(db),
            SkillRepositoryImpl(db),
            db,
            starting_credits=settings.starting_credits,
        )
        for demo in DEMO_USERS:
            try:
                user = await service.create_user(demo["name"], demo["email"], bio=demo["bio"])
            except ConflictError:
                print(f"{demo['email']} already exists, skipping")
                continue
            for kind, skills in ((SkillKind.OFFERED, demo["offered"]), (SkillKind.WANTED, demo["wanted"])):
                for name, category, rate, level in skills:
                    await service.add_skill(user.id, kind, name, category, rate, level)
            print(f"\n{user.name} <{user.email}> id={user.id} credits={user.credits}")
            print(f"   token: {create_access_token(user.id)}")


if __name__ == "__main__":
    asyncio.run(seed_demo_users())
