from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from storefront.api.deps import require_admin
from storefront.data.database import get_db
from storefront.services.user_service import UserService
from storefront.domain.schemas import UserUpsert, UserRead

#synchronizacja profili z serwisu tozsamosci
router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.put("/", response_model=UserRead)
def upsert_user(payload: UserUpsert, db: Session = Depends(get_db)):
    return UserService(db).upsert_user(payload)


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_user(user_id)
