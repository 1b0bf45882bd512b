"""FlashSale model for time-boxed price overrides."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class FlashSale(Base):
    """FlashSale model - a window during which listed variants sell at a fixed price."""

    __tablename__ = "flash_sales"
    __table_args__ = (CheckConstraint("starts_at < ends_at", name="ck_flash_sales_window"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    banner_media_id = Column(UUIDType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
