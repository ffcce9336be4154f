# storefront/data/seed.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import CouponModel, ProductModel, UserModel

PRODUCTS = [
    {"id": 1, "name": "Keyboard", "price": Decimal("1999.00"), "sale_price": Decimal("1499.00"), "stock": 25},
    {"id": 2, "name": "Mouse", "price": Decimal("499.50"), "sale_price": None, "stock": 100},
    {"id": 3, "name": "Monitor", "price": Decimal("8999.00"), "sale_price": None, "stock": 5},
]


def seed(db=None):
    own_session = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return False

        for p in PRODUCTS:
            db.add(ProductModel(images=[f"/images/products/{p['id']}.jpg"], is_active=True, **p))

        now = datetime.now(timezone.utc)
        db.add(
            CouponModel(
                code="WELCOME10",
                description="10% na pierwsze zamowienie",
                type="percentage",
                value=Decimal("10"),
                min_order_amount=Decimal("500"),
                max_discount=Decimal("200"),
                usage_limit=0,
                per_user_limit=1,
                used_count=0,
                is_active=True,
                starts_at=now,
                expires_at=now + timedelta(days=90),
            )
        )
        db.add(UserModel(id=1, name="Admin", email="admin@storefront.local", role="admin"))
        db.commit()
        return True
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    seed()
