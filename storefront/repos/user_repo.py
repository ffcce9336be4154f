from sqlalchemy import select
from sqlalchemy.orm import Session
from storefront.data.models.user import UserModel

ADMIN_ROLES = ("admin", "superadmin")


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_admins(self) -> list[UserModel]:
        return list(
            self.db.execute(
                select(UserModel).where(UserModel.role.in_(ADMIN_ROLES))
            ).scalars().all()
        )

    def save_user(self, user: UserModel) -> UserModel:
        user = self.db.merge(user)
        self.db.commit()
        self.db.refresh(user)
        return user
