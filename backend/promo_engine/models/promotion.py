"""Promotion model for coupon-style discounts."""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT_ORDER = "fixed_amount_order"
    FREE_SHIPPING = "free_shipping"


class Promotion(Base):
    """Promotion redeemable by code within an active window."""

    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_promotions_window"),
        CheckConstraint(
            "maximum_usage_limit IS NULL OR current_usage_count <= maximum_usage_limit",
            name="ck_promotions_usage_within_limit",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)

    discount_type = Column(String(30), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)
    minimum_order_value = Column(Numeric(15, 2), nullable=True)

    maximum_usage_limit = Column(Integer, nullable=True)
    current_usage_count = Column(Integer, nullable=False, default=0)
    usage_limit_per_user = Column(Integer, nullable=True)

    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
