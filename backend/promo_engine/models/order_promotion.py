"""OrderPromotion model - durable evidence that an order redeemed a promotion."""

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, UniqueConstraint, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class OrderPromotion(Base):
    """One committed redemption of a promotion by an order."""

    __tablename__ = "order_promotions"
    __table_args__ = (
        UniqueConstraint("order_id", "promotion_id", name="uq_order_promotions_order_promotion"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(UUIDType, nullable=False, index=True)
    promotion_id = Column(
        UUIDType, ForeignKey("promotions.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    user_id = Column(UUIDType, nullable=True, index=True)
    amount_discounted = Column(Numeric(15, 2), nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
