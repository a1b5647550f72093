"""Sweet (product) model definitions."""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, Float, Integer, String

from kata.database import Base, utcnow

# Fits a 32-bit INTEGER column on every supported backend.
MAX_STOCK_QUANTITY = 2**31 - 1


class SweetCategory(str, enum.Enum):
    CHOCOLATE = "chocolate"
    CANDY = "candy"
    CAKE = "cake"
    COOKIE = "cookie"
    PASTRY = "pastry"
    ICE_CREAM = "ice cream"
    TRADITIONAL = "traditional"
    OTHER = "other"


class Sweet(Base):
    """Represents a sellable item and its available stock."""
    __tablename__ = "sweets"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_sweets_price_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_sweets_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    category = Column(
        Enum(SweetCategory, values_callable=lambda categories: [c.value for c in categories], native_enum=False),
        nullable=False,
        index=True,
    )
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    description = Column(String(500), nullable=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
