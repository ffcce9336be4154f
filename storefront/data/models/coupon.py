from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False, unique=True, index=True)
    description = Column(String(200), nullable=False, default="")

    type = Column(String(20), nullable=False)  # percentage, fixed
    value = Column(Numeric(10, 2), nullable=False)
    min_order_amount = Column(Numeric(10, 2), nullable=False, default=0)
    max_discount = Column(Numeric(10, 2), nullable=True)

    usage_limit = Column(Integer, nullable=False, default=0)  # 0 = bez limitu
    per_user_limit = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    usages = relationship(
        "CouponUsageModel",
        back_populates="coupon",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("used_count >= 0", name="ck_coupon_used_count_non_negative"),
    )


class CouponUsageModel(Base):
    """Jeden wiersz = jedno uzycie kuponu przez usera."""

    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    used_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    coupon = relationship("CouponModel", back_populates="usages")
