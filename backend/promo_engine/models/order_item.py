"""OrderItem model - price and catalog snapshot taken when the order is placed."""

from sqlalchemy import Column, DateTime, Integer, Numeric, String, UniqueConstraint, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class OrderItem(Base):
    """OrderItem model."""

    __tablename__ = "order_items"
    __table_args__ = (UniqueConstraint("order_id", "line_id", name="uq_order_items_order_line"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(UUIDType, nullable=False, index=True)
    line_id = Column(String(64), nullable=False)
    product_variant_id = Column(UUIDType, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    product_name_snapshot = Column(String(255), nullable=True)
    variant_sku_snapshot = Column(String(100), nullable=True)
    unit_price_at_purchase = Column(Numeric(12, 2), nullable=False)
    line_item_total_amount = Column(Numeric(15, 2), nullable=False)
    line_item_discount_amount = Column(Numeric(15, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
