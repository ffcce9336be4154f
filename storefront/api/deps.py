# storefront/api/deps.py
from dataclasses import dataclass

from fastapi import Depends, Header

from storefront.domain.errors import Forbidden, Unauthorized
from storefront.services.lock_service import LockService
from storefront.utils.settings import CHECKOUT_LOCK_ENABLED

ADMIN_ROLES = ("admin", "superadmin")


@dataclass(frozen=True)
class CurrentUser:
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default="user"),
) -> CurrentUser:
    #tozsamosc weryfikuje gateway, tu dostajemy gotowe id + role
    if not x_user_id:
        raise Unauthorized("Brak tozsamosci uzytkownika")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise Unauthorized("Nieprawidlowy identyfikator uzytkownika")
    if user_id <= 0:
        raise Unauthorized("Nieprawidlowy identyfikator uzytkownika")
    return CurrentUser(id=user_id, role=(x_user_role or "user").lower())


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise Forbidden("Wymagane uprawnienia administratora")
    return user


_lock_service: LockService | None = None


def get_lock_service() -> LockService | None:
    global _lock_service
    if not CHECKOUT_LOCK_ENABLED:
        return None
    if _lock_service is None:
        _lock_service = LockService()
    return _lock_service
