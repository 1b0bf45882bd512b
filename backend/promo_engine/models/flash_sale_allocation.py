"""FlashSaleAllocation model - committed reservation of flash stock by one order line."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class FlashSaleAllocation(Base):
    """FlashSaleAllocation model."""

    __tablename__ = "flash_sale_allocations"
    __table_args__ = (
        UniqueConstraint(
            "order_id",
            "flash_sale_product_id",
            "line_id",
            name="uq_flash_sale_allocations_order_product_line",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(UUIDType, nullable=False, index=True)
    flash_sale_product_id = Column(
        UUIDType,
        ForeignKey("flash_sale_products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    line_id = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    allocated_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
