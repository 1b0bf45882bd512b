"""OrderStatusHistory model - append-only audit trail of order lifecycle changes."""

from enum import Enum

from sqlalchemy import Column, DateTime, String, Text, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class OrderStatus(str, Enum):
    PENDING_CONFIRMATION = "pending_confirmation"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class OrderStatusHistory(Base):
    """OrderStatusHistory model - rows are appended, never updated."""

    __tablename__ = "order_status_histories"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(UUIDType, nullable=False, index=True)
    previous_status_code = Column(String(50), nullable=True)
    new_status_code = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    changed_by_user_id = Column(UUIDType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
