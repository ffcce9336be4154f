from sqlalchemy import Column, Integer, String
from storefront.data.database import Base


class UserModel(Base):
    """Projekcja uzytkownika z serwisu tozsamosci (do powiadomien)."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default="user")
