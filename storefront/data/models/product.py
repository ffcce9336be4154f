from sqlalchemy import Column, Integer, String, Boolean, Numeric, JSON, CheckConstraint

from storefront.data.database import Base


class ProductModel(Base):
    """
    Produkt nalezy do katalogu.
    Tutaj zmieniamy tylko stock (commit / restock), zawsze warunkowym UPDATE.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    images = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("sale_price IS NULL OR sale_price < price", name="ck_product_sale_below_price"),
    )
