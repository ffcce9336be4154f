# storefront/repos/coupon_repo.py
from sqlalchemy import DateTime, select, insert, update, delete, func, literal, or_
from sqlalchemy.orm import Session, aliased

from storefront.data.models.coupon import CouponModel, CouponUsageModel
from storefront.utils.clock import utcnow


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_coupon(self, coupon_id: int) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel)
            .where(CouponModel.id == coupon_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_by_code(self, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel)
            .where(CouponModel.code == code)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_coupons(self, offset: int, limit: int) -> tuple[list[CouponModel], int]:
        rows = self.db.execute(
            select(CouponModel)
            .order_by(CouponModel.created_at.desc(), CouponModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        total = self.db.execute(select(func.count(CouponModel.id))).scalar_one()
        return list(rows), total

    def create_coupon(self, coupon: CouponModel) -> CouponModel:
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete_coupon(self, coupon: CouponModel):
        self.db.delete(coupon)
        self.db.commit()

    def count_user_usages(self, coupon_id: int, user_id: int) -> int:
        return self.db.execute(
            select(func.count(CouponUsageModel.id)).where(
                CouponUsageModel.coupon_id == coupon_id,
                CouponUsageModel.user_id == user_id,
            )
        ).scalar_one()

    def increment_usage(self, coupon_id: int) -> int:
        # limit sprawdzany w tym samym UPDATE, nie na podstawie wczesniejszego odczytu
        result = self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon_id,
                CouponModel.is_active.is_(True),
                or_(
                    CouponModel.usage_limit == 0,
                    CouponModel.used_count < CouponModel.usage_limit,
                ),
            )
            .values(used_count=CouponModel.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def decrement_usage(self, coupon_id: int) -> int:
        result = self.db.execute(
            update(CouponModel)
            .where(CouponModel.id == coupon_id, CouponModel.used_count > 0)
            .values(used_count=CouponModel.used_count - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_usage_within_limit(self, coupon_id: int, user_id: int, per_user_limit: int) -> int:
        # INSERT INTO coupon_usages (...) SELECT ?, ?, ? WHERE (SELECT count(*) ...) < limit
        # limit usera sprawdzany w tym samym INSERT, 0 wierszy = limit wyczerpany
        usages = aliased(CouponUsageModel)
        used = (
            select(func.count(usages.id))
            .where(usages.coupon_id == coupon_id, usages.user_id == user_id)
            .scalar_subquery()
        )
        result = self.db.execute(
            insert(CouponUsageModel.__table__).from_select(
                ["coupon_id", "user_id", "used_at"],
                select(
                    literal(coupon_id),
                    literal(user_id),
                    literal(utcnow(), DateTime(timezone=True)),
                ).where(used < per_user_limit),
            )
        )
        return result.rowcount

    def remove_one_usage(self, coupon_id: int, user_id: int) -> int:
        usage_id = self.db.execute(
            select(CouponUsageModel.id)
            .where(
                CouponUsageModel.coupon_id == coupon_id,
                CouponUsageModel.user_id == user_id,
            )
            .order_by(CouponUsageModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        if usage_id is None:
            return 0
        result = self.db.execute(
            delete(CouponUsageModel)
            .where(CouponUsageModel.id == usage_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
