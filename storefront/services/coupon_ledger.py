# storefront/services/coupon_ledger.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.coupon import CouponModel
from storefront.domain.errors import Conflict, NotFound
from storefront.repos.coupon_repo import CouponRepo
from storefront.services.pricing import ZERO, round2, to_money
from storefront.utils.clock import as_utc, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PERCENTAGE = "percentage"
FIXED = "fixed"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def is_usable(coupon: CouponModel | None, now: datetime | None = None) -> bool:
    """Aktywny, w oknie [starts_at, expires_at] i ponizej globalnego limitu. Brak okna = nieuzywalny."""
    if coupon is None or not coupon.is_active:
        return False

    starts_at = as_utc(coupon.starts_at)
    expires_at = as_utc(coupon.expires_at)
    if starts_at is None or expires_at is None or starts_at > expires_at:
        return False

    now = as_utc(now) or utcnow()
    if now < starts_at or now > expires_at:
        return False

    usage_limit = coupon.usage_limit or 0
    if usage_limit > 0 and (coupon.used_count or 0) >= usage_limit:
        return False
    return True


def discount_for(coupon: CouponModel | None, cart_total, now: datetime | None = None) -> Decimal:
    if not is_usable(coupon, now):
        return ZERO

    cart_total = to_money(cart_total)
    if cart_total < to_money(coupon.min_order_amount or 0):
        return ZERO

    value = to_money(coupon.value)
    if coupon.type == PERCENTAGE:
        discount = cart_total * value / 100
        if coupon.max_discount is not None and discount > to_money(coupon.max_discount):
            discount = to_money(coupon.max_discount)
    elif coupon.type == FIXED:
        discount = min(value, cart_total)
    else:
        return ZERO

    return round2(discount)


class CouponLedger:
    """Liczniki uzyc kuponow. Zmiany tylko przez warunkowe UPDATE w repo."""

    def __init__(self, db: Session):
        self.repo = CouponRepo(db)

    def find_by_code(self, code: str) -> CouponModel | None:
        code = normalize_code(code)
        if not code:
            return None
        return self.repo.get_by_code(code)

    def find(self, coupon_id: int) -> CouponModel | None:
        return self.repo.get_coupon(coupon_id)

    def get(self, coupon_id: int) -> CouponModel:
        coupon = self.repo.get_coupon(coupon_id)
        if not coupon:
            raise NotFound("Kupon nie istnieje")
        return coupon

    def is_usable(self, coupon: CouponModel | None, now: datetime | None = None) -> bool:
        return is_usable(coupon, now)

    def discount_for(self, coupon: CouponModel | None, cart_total, now: datetime | None = None) -> Decimal:
        return discount_for(coupon, cart_total, now)

    def user_eligible(self, coupon: CouponModel, user_id: int) -> bool:
        used = self.repo.count_user_usages(coupon.id, user_id)
        return used < (coupon.per_user_limit or 1)

    def record_usage(self, coupon: CouponModel, user_id: int):
        coupon_id, code = coupon.id, coupon.code
        per_user_limit = coupon.per_user_limit or 1
        try:
            #UPDATE blokuje wiersz kuponu do commita, rownolegle uzycia tego kuponu ida po kolei
            rowcount = self.repo.increment_usage(coupon_id)
            if rowcount == 0:
                raise Conflict(f"Limit uzyc kuponu {code} zostal wyczerpany")

            rowcount = self.repo.add_usage_within_limit(coupon_id, user_id, per_user_limit)
            if rowcount == 0:
                raise Conflict(f"Kupon {code} zostal juz wykorzystany przez uzytkownika")
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Kupon {code} uzyty przez uzytkownika {user_id}")

    def reverse_usage(self, coupon_id: int, user_id: int):
        try:
            self.repo.decrement_usage(coupon_id)
            removed = self.repo.remove_one_usage(coupon_id, user_id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if not removed:
            logger.warning(f"Kupon {coupon_id}: brak wpisu uzycia dla uzytkownika {user_id}")
        logger.info(f"Cofnieto uzycie kuponu {coupon_id} dla uzytkownika {user_id}")
