from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from dhakacart.data.models.user import UserModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def list_users(self, role: str | None, page: int, limit: int) -> List[UserModel]:
        stmt = select(UserModel)
        if role:
            stmt = stmt.where(UserModel.role == role)
        return list(
            self.db.execute(
                stmt.order_by(UserModel.created_at.desc(), UserModel.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            ).scalars().all()
        )

    def update_role(self, user_id: int, role: str) -> UserModel | None:
        user = self.get_user(user_id)
        if user:
            user.role = role
            user.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(user)
        return user
