from sqlalchemy.orm import Session
from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFound
from storefront.repos.user_repo import UserRepo
from storefront.domain.schemas import UserUpsert, UserRead


class UserService:
    """Lokalna kopia profilu z serwisu tozsamosci (email i rola do powiadomien)."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def upsert_user(self, payload: UserUpsert) -> UserRead:
        user = self.repo.save_user(
            UserModel(id=payload.id, name=payload.name, email=payload.email, role=payload.role)
        )
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("Uzytkownik nie istnieje")
        return UserRead.model_validate(user)
