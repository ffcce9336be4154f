# storefront/services/coupon_service.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.coupon import CouponModel
from storefront.domain.errors import Conflict, NotFound, ValidationError
from storefront.domain.schemas import CouponCreate, CouponUpdate, CouponValidateIn
from storefront.services.coupon_ledger import CouponLedger, normalize_code
from storefront.utils.clock import as_utc, utcnow
from storefront.utils.logging import get_logger
from storefront.utils.pagination import Page, get_pagination_info

logger = get_logger(__name__)


class CouponService:
    """Zarzadzanie kuponami (admin) i publiczna walidacja kodu."""

    def __init__(self, db: Session):
        self.ledger = CouponLedger(db)
        self.repo = self.ledger.repo

    def validate_code(self, payload: CouponValidateIn) -> Dict[str, Any]:
        coupon = self.ledger.find_by_code(payload.code)
        if not coupon:
            raise NotFound("Nieprawidlowy kod kuponu")
        if not self.ledger.is_usable(coupon):
            raise ValidationError("Kupon wygasl lub nie jest juz wazny")

        return {
            "code": coupon.code,
            "type": coupon.type,
            "value": coupon.value,
            "discount": self.ledger.discount_for(coupon, payload.cart_total),
            "min_order_amount": coupon.min_order_amount,
            "description": coupon.description,
        }

    def list_coupons(self, page: Page) -> Dict[str, Any]:
        coupons, total = self.repo.list_coupons(page.offset, page.limit)
        return {
            "coupons": coupons,
            "pagination": get_pagination_info(page.page, page.limit, total),
        }

    def get_coupon(self, coupon_id: int) -> CouponModel:
        return self.ledger.get(coupon_id)

    def create_coupon(self, payload: CouponCreate) -> CouponModel:
        data = payload.model_dump()
        data["code"] = normalize_code(data["code"])
        data["starts_at"] = data["starts_at"] or utcnow()

        try:
            coupon = self.repo.create_coupon(CouponModel(used_count=0, **data))
        except IntegrityError:
            self.repo.rollback()
            raise Conflict(f"Kupon {data['code']} juz istnieje")

        logger.info(f"Utworzono kupon {coupon.code} ({coupon.type} {coupon.value})")
        return coupon

    def update_coupon(self, coupon_id: int, payload: CouponUpdate) -> CouponModel:
        coupon = self.ledger.get(coupon_id)
        changes = payload.model_dump(exclude_unset=True)
        if "code" in changes and changes["code"]:
            changes["code"] = normalize_code(changes["code"])

        #used_count zmienia tylko ledger
        for field, value in changes.items():
            if value is None and field not in ("max_discount",):
                continue
            setattr(coupon, field, value)

        if coupon.type == "percentage" and coupon.value > 100:
            self.repo.rollback()
            raise ValidationError("Rabat procentowy nie moze przekraczac 100%")
        if as_utc(coupon.starts_at) > as_utc(coupon.expires_at):
            self.repo.rollback()
            raise ValidationError("starts_at musi byc przed expires_at")

        try:
            self.repo.commit()
        except IntegrityError:
            self.repo.rollback()
            raise Conflict(f"Kupon {changes.get('code')} juz istnieje")

        logger.info(f"Zaktualizowano kupon {coupon_id}: {sorted(changes)}")
        return self.ledger.get(coupon_id)

    def delete_coupon(self, coupon_id: int):
        coupon = self.ledger.get(coupon_id)
        self.repo.delete_coupon(coupon)
        logger.info(f"Usunieto kupon {coupon_id}")
