# storefront/api/routers/admin.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.data.database import get_db
from storefront.domain.schemas import (
    CouponCreate,
    CouponListOut,
    CouponOut,
    CouponUpdate,
    OrderListOut,
    OrderOut,
    OrderStatus,
    OrderStatusUpdateIn,
)
from storefront.services.coupon_service import CouponService
from storefront.services.order_service import OrderService, order_to_dict
from storefront.utils.pagination import get_pagination

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ==================== ORDERS ====================


@router.get("/orders", response_model=OrderListOut)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    status: OrderStatus | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    db: Session = Depends(get_db),
):
    return OrderService(db).list_orders(
        get_pagination(page, limit, sort, order),
        status=status,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return order_to_dict(OrderService(db).get_order(order_id))


@router.put("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdateIn,
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    order = svc.update_status(
        svc.get_order(order_id),
        payload.status,
        note=payload.note,
        tracking_number=payload.tracking_number,
        estimated_delivery=payload.estimated_delivery,
    )
    return order_to_dict(order)


# ==================== COUPONS ====================


@router.get("/coupons", response_model=CouponListOut)
def list_coupons(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return CouponService(db).list_coupons(get_pagination(page, limit))


@router.post("/coupons", response_model=CouponOut, status_code=201)
def create_coupon(payload: CouponCreate, db: Session = Depends(get_db)):
    return CouponService(db).create_coupon(payload)


@router.get("/coupons/{coupon_id}", response_model=CouponOut)
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    return CouponService(db).get_coupon(coupon_id)


@router.put("/coupons/{coupon_id}", response_model=CouponOut)
def update_coupon(coupon_id: int, payload: CouponUpdate, db: Session = Depends(get_db)):
    return CouponService(db).update_coupon(coupon_id, payload)


@router.delete("/coupons/{coupon_id}", status_code=204)
def delete_coupon(coupon_id: int, db: Session = Depends(get_db)):
    CouponService(db).delete_coupon(coupon_id)
