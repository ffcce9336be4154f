# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import CurrentUser, get_current_user, get_lock_service
from storefront.data.database import get_db
from storefront.domain.schemas import (
    CancelIn,
    CheckoutIn,
    OrderListOut,
    OrderOut,
    OrderStatus,
    TrackingOut,
)
from storefront.services.checkout_service import CheckoutService
from storefront.services.lock_service import LockService
from storefront.services.order_service import OrderService, order_to_dict
from storefront.utils.pagination import get_pagination

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    user: CurrentUser = Depends(get_current_user),
    lock_service: LockService | None = Depends(get_lock_service),
    db: Session = Depends(get_db),
):
    """
    Tworzy zamówienie z koszyka użytkownika.
    Wysyła powiadomienie asynchronicznie.
    """
    order = CheckoutService(db, lock_service=lock_service).checkout(user.id, payload)
    return order_to_dict(order)


@router.get("", response_model=OrderListOut)
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: OrderStatus | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).list_orders(
        get_pagination(page, limit), user_id=user.id, status=status
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return order_to_dict(get_service(db).get_user_order(order_id, user.id))


@router.put("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: CancelIn | None = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    order = svc.get_user_order(order_id, user.id)
    order = svc.cancel(order, payload.reason if payload else None)
    return order_to_dict(order)


@router.get("/{order_id}/track", response_model=TrackingOut)
def track_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.track(svc.get_user_order(order_id, user.id))
