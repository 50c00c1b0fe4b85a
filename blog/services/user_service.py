"""
User service — authors of articles and comments.

Email uniqueness is enforced by the database; the router turns the
resulting integrity error into a 409.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import User
from blog.schemas import UserCreate


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    user = User(name=data.name, email=data.email, is_admin=data.is_admin, photo=data.photo)
    db.add(user)
    await db.flush()
    return user
