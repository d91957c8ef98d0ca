import pydantic
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.exceptions import ConflictError, ValidationError
from family_graph.models.user import User
from family_graph.schemas.user import UserCreate
from family_graph.utils.validators import normalize_email
from typing import Optional

class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).filter(User.id == user_id))
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).filter(func.lower(User.email) == normalize_email(email)))
        return result.scalars().first()

    async def create_user(self, email: str, display_name: str) -> User:
        try:
            fields = UserCreate(email=email.strip(), display_name=display_name)
        except pydantic.ValidationError as exc:
            raise ValidationError("Invalid email address") from exc
        email = normalize_email(fields.email)

        if await self.get_user_by_email(email):
            raise ConflictError("A user with that email already exists")

        user = User(email=email, display_name=fields.display_name)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("A user with that email already exists") from exc
        await self.db.refresh(user)
        return user

    async def get_or_create_user(self, email: str, display_name: str) -> User:
        user = await self.get_user_by_email(email)
        if not user:
            user = await self.create_user(email, display_name)
        return user
