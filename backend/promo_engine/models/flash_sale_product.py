"""FlashSaleProduct model holding the limited stock of one variant in a flash sale."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
    func,
)

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class FlashSaleProduct(Base):
    """FlashSaleProduct model - quantity_sold never exceeds quantity_limit."""

    __tablename__ = "flash_sale_products"
    __table_args__ = (
        UniqueConstraint(
            "flash_sale_id", "product_variant_id", name="uq_flash_sale_products_sale_variant"
        ),
        CheckConstraint(
            "quantity_sold >= 0 AND quantity_sold <= quantity_limit",
            name="ck_flash_sale_products_sold_within_limit",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    flash_sale_id = Column(
        UUIDType, ForeignKey("flash_sales.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_variant_id = Column(UUIDType, nullable=False, index=True)
    flash_sale_price = Column(Numeric(12, 2), nullable=False)
    quantity_limit = Column(Integer, nullable=False)
    quantity_sold = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
